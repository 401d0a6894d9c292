from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from vanish.dependencies import get_optional_user
from vanish.errors import StorageUnavailableError
from vanish.main import create_app
from vanish.models.user import User


@pytest.fixture
def app(message_service) -> FastAPI:
    app = create_app()
    app.state.message_service = message_service
    return app


@pytest.fixture
def anonymous_client(app: FastAPI) -> TestClient:
    app.dependency_overrides[get_optional_user] = lambda: None
    return TestClient(app)


@pytest.fixture
def client(app: FastAPI, test_user: User) -> TestClient:
    app.dependency_overrides[get_optional_user] = lambda: test_user
    return TestClient(app)


@pytest.mark.unit
class TestMessagesApi:
    def test_health(self, anonymous_client: TestClient):
        response = anonymous_client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_anonymous_post_and_list(self, anonymous_client: TestClient):
        # Act
        created = anonymous_client.post("/api/messages", json={"content": "hello"})
        listed = anonymous_client.get("/api/messages")

        # Assert
        assert created.status_code == 201
        body = created.json()
        assert body["content"] == "hello"
        assert body["author_id"] is None
        assert listed.status_code == 200
        [item] = listed.json()
        assert item["message_id"] == body["message_id"]
        assert item["likes"] == 0
        assert item["dislikes"] == 0
        assert item["user_reaction"] is None
        assert item["remaining_seconds"] == int(timedelta(hours=24).total_seconds())

    def test_post_too_long_is_rejected_verbatim(self, anonymous_client: TestClient):
        response = anonymous_client.post("/api/messages", json={"content": "x" * 501})

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Message content cannot exceed 500 characters"
        }

    def test_authenticated_post_records_author(
        self, client: TestClient, test_user: User
    ):
        response = client.post("/api/messages", json={"content": "signed"})

        assert response.json()["author_id"] == str(test_user.user_id)

    def test_delete_missing_message(self, anonymous_client: TestClient):
        response = anonymous_client.delete(f"/api/messages/{uuid4()}")

        assert response.status_code == 200
        assert response.json() == {"success": False}

    def test_delete_non_uuid_id(self, anonymous_client: TestClient):
        response = anonymous_client.delete("/api/messages/999999")

        assert response.status_code == 200
        assert response.json() == {"success": False}

    def test_delete_existing_message(self, anonymous_client: TestClient):
        message_id = anonymous_client.post(
            "/api/messages", json={"content": "bye"}
        ).json()["message_id"]

        response = anonymous_client.delete(f"/api/messages/{message_id}")

        assert response.json() == {"success": True}
        assert anonymous_client.get("/api/messages").json() == []

    def test_react_requires_sign_in(self, anonymous_client: TestClient):
        message_id = anonymous_client.post(
            "/api/messages", json={"content": "like me"}
        ).json()["message_id"]

        response = anonymous_client.post(
            f"/api/messages/{message_id}/reactions", json={"kind": "like"}
        )

        assert response.status_code == 401

    def test_react(self, client: TestClient):
        message_id = client.post("/api/messages", json={"content": "like me"}).json()[
            "message_id"
        ]

        response = client.post(
            f"/api/messages/{message_id}/reactions", json={"kind": "dislike"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "likes": 0,
            "dislikes": 1,
            "user_reaction": "dislike",
        }

    def test_react_with_unknown_kind(self, client: TestClient):
        response = client.post(
            f"/api/messages/{uuid4()}/reactions", json={"kind": "love"}
        )

        assert response.status_code == 422

    def test_storage_failure_is_generic(
        self, anonymous_client: TestClient, message_store, mocker
    ):
        mocker.patch.object(
            message_store,
            "list_active",
            side_effect=StorageUnavailableError("bolt://db:7687 refused"),
        )

        response = anonymous_client.get("/api/messages")

        assert response.status_code == 503
        assert response.json() == {"detail": "Service temporarily unavailable"}


@pytest.mark.unit
class TestDashboardApi:
    def test_requires_sign_in(self, anonymous_client: TestClient):
        response = anonymous_client.get("/api/dashboard/preferences")

        assert response.status_code == 401

    def test_my_messages(self, client: TestClient):
        client.post("/api/messages", json={"content": "one"})
        client.post("/api/messages", json={"content": "two"})

        response = client.get("/api/dashboard/messages")

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_preferences_round_trip(self, client: TestClient, test_user: User):
        # Act
        defaults = client.get("/api/dashboard/preferences").json()
        updated = client.put(
            "/api/dashboard/preferences",
            json={"notifications_enabled": False, "notify_before_minutes": 1440},
        )
        current = client.get("/api/dashboard/preferences").json()

        # Assert
        assert defaults["user_id"] == str(test_user.user_id)
        assert defaults["notifications_enabled"] is True
        assert defaults["notify_before_minutes"] == 60
        assert updated.json() == {"success": True}
        assert current["notifications_enabled"] is False
        assert current["notify_before_minutes"] == 1440

    @pytest.mark.parametrize("minutes", [0, 2000])
    def test_preferences_out_of_range(self, client: TestClient, minutes: int):
        response = client.put(
            "/api/dashboard/preferences",
            json={"notifications_enabled": True, "notify_before_minutes": minutes},
        )

        assert response.status_code == 400

    def test_reminders(self, client: TestClient, clock):
        client.post("/api/messages", json={"content": "soon gone"})
        clock.advance(timedelta(hours=23, minutes=30))

        response = client.get("/api/dashboard/reminders")

        assert response.status_code == 200
        assert [m["content"] for m in response.json()] == ["soon gone"]

    def test_me(self, client: TestClient, test_user: User):
        response = client.get("/api/me")

        assert response.json()["auth_id"] == test_user.auth_id
