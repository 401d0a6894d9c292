from os import environ
from typing import Any, cast

import httpx
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from vanish.models.user import User
from vanish.stores.user import UserStore


class TokenClaims(BaseModel):
    """The subset of access token claims this service relies on.

    An email the provider sends that is not a valid address is dropped
    rather than failing sign-in.

    Attributes:
        sub: Stable identifier of the user at the identity provider
        name: User's display name if the provider includes it
        email: User's email address if the provider includes a valid one
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    sub: str = Field(min_length=1, description="Identity provider user ID")
    name: str | None = Field(None, description="User's display name")
    email: EmailStr | None = Field(None, description="User's email address")

    @field_validator("email", mode="wrap")
    @classmethod
    def drop_invalid_email(cls, v, handler):
        try:
            return handler(v)
        except PydanticValidationError:
            return None


class AuthError(Exception):
    """Base exception for auth-related errors."""

    pass


class InvalidTokenError(AuthError):
    """Exception raised when a token is invalid."""

    pass


class TokenExpiredError(AuthError):
    """Exception raised when a token has expired."""

    pass


class UserNotFoundError(AuthError):
    """Exception raised when a user cannot be resolved."""

    pass


class AuthService:
    """Service that turns a bearer token into a known user.

    Tokens are RS256 JWTs issued by the identity provider. The ``sub`` claim
    is treated as an opaque, stable identifier and mapped onto a local user
    record on every successful validation.

    Attributes:
        domain: Identity provider domain
        audience: Expected token audience
        algorithms: List of supported JWT algorithms
    """

    def __init__(self, user_store: UserStore) -> None:
        """Initialize the auth service with identity provider configuration."""
        self.domain: str = environ.get("AUTH0_DOMAIN", "")
        self.audience: str = environ.get("AUTH0_AUDIENCE", "")
        self.algorithms: list[str] = ["RS256"]
        self._user_store = user_store
        self._jwks: dict[str, Any] | None = None

    async def _get_jwks(self) -> dict[str, Any]:
        """Fetch and cache the provider's signing keys.

        Raises:
            InvalidTokenError: If the key set cannot be fetched
        """
        if self._jwks is None:
            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        f"https://{self.domain}/.well-known/jwks.json"
                    )
                    response.raise_for_status()
                    self._jwks = response.json()
            except httpx.HTTPError as e:
                raise InvalidTokenError(f"Failed to fetch signing keys: {str(e)}")
        return self._jwks

    async def validate_token(self, token: str) -> TokenClaims:
        """Validate a JWT and return its claims.

        Args:
            token: The JWT token to validate

        Returns:
            The decoded claims

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
        """
        try:
            unverified_header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        jwks = await self._get_jwks()
        rsa_key = {}
        for key in jwks.get("keys", []):
            if key.get("kid") == unverified_header.get("kid"):
                rsa_key = {
                    "kty": key["kty"],
                    "kid": key["kid"],
                    "use": key["use"],
                    "n": key["n"],
                    "e": key["e"],
                }
                break

        if not rsa_key:
            raise InvalidTokenError("Unable to find appropriate key")

        try:
            payload = jwt.decode(
                token,
                rsa_key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=f"https://{self.domain}/",
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except JWTClaimsError as e:
            raise InvalidTokenError(f"Invalid claims: {str(e)}")
        except JWTError as e:
            raise InvalidTokenError(f"Invalid token: {str(e)}")

        try:
            return TokenClaims(**cast(dict[str, Any], payload))
        except ValueError as e:
            raise InvalidTokenError(f"Invalid claims: {str(e)}")

    async def get_current_user(self, token: str) -> User:
        """Get the current authenticated user from token.

        Args:
            token: The JWT token string

        Returns:
            The user the token belongs to, created on first sign-in

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
            UserNotFoundError: If the user record cannot be resolved
            StorageUnavailableError: If the user store fails
        """
        claims = await self.validate_token(token)
        try:
            return await self._user_store.upsert(
                claims.sub, name=claims.name, email=claims.email
            )
        except ValueError as e:
            raise UserNotFoundError(f"Failed to get or create user: {str(e)}")
