import logging
from contextlib import asynccontextmanager
from os import environ
from typing import AsyncIterator

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession
from neo4j.exceptions import DriverError, Neo4jError

from vanish.errors import StorageUnavailableError
from vanish.utils.meta import SingletonMeta

log = logging.getLogger("vanish.db")

SCHEMA_STATEMENTS = (
    "CREATE CONSTRAINT message_id_unique IF NOT EXISTS "
    "FOR (m:Message) REQUIRE m.message_id IS UNIQUE",
    "CREATE CONSTRAINT user_id_unique IF NOT EXISTS "
    "FOR (u:User) REQUIRE u.user_id IS UNIQUE",
    "CREATE CONSTRAINT user_auth_id_unique IF NOT EXISTS "
    "FOR (u:User) REQUIRE u.auth_id IS UNIQUE",
    "CREATE CONSTRAINT preference_user_unique IF NOT EXISTS "
    "FOR (p:UserPreference) REQUIRE p.user_id IS UNIQUE",
    "CREATE INDEX message_expires_at IF NOT EXISTS "
    "FOR (m:Message) ON (m.expires_at)",
)


class DatabaseManager(metaclass=SingletonMeta):
    """Singleton manager for Neo4j database connections.

    This class owns the async driver, hands out sessions to the stores and
    translates driver faults into ``StorageUnavailableError`` so callers never
    see neo4j exception types.

    Attributes:
        _driver: The Neo4j async driver instance
        _uri: URI of the Neo4j database
        _auth: Tuple of username and password for authentication
        _database: Name of the Neo4j database to connect to
    """

    def __init__(self) -> None:
        """Initialize connection parameters from the environment."""
        self._driver: AsyncDriver | None = None
        self._uri: str = environ.get("NEO4J_URI", "bolt://localhost:7687")
        self._auth: tuple[str, str] = (
            environ.get("NEO4J_USER", ""),
            environ.get("NEO4J_PASSWORD", ""),
        )
        self._database: str = environ.get("NEO4J_DATABASE", "neo4j")

    @property
    def driver(self) -> AsyncDriver:
        """Get or create the Neo4j driver instance.

        Returns:
            The async driver used for all database operations
        """
        if not self._driver:
            self._driver = AsyncGraphDatabase.driver(
                self._uri,
                auth=self._auth,
                max_connection_pool_size=10,  # Default is 100
                connection_timeout=30,  # Seconds
            )
        return self._driver

    @property
    def database(self) -> str:
        """Get the name of the Neo4j database.

        Returns:
            The configured database name to use for operations
        """
        return self._database

    async def verify_connectivity(self) -> None:
        """Verify the database is reachable with the configured credentials.

        Raises:
            StorageUnavailableError: If the database cannot be reached
        """
        try:
            await self.driver.verify_connectivity()
        except (DriverError, Neo4jError) as e:
            raise StorageUnavailableError(f"Database unreachable: {str(e)}") from e

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session on the configured database.

        Yields:
            An async session; closed when the block exits

        Raises:
            StorageUnavailableError: If the driver fails while the session is open
        """
        try:
            async with self.driver.session(database=self._database) as session:
                yield session
        except (DriverError, Neo4jError) as e:
            log.error(f"Storage operation failed: {e}")
            raise StorageUnavailableError(f"Storage operation failed: {str(e)}") from e

    async def ensure_schema(self) -> None:
        """Create the uniqueness constraints and indexes the stores rely on.

        Every statement is idempotent, so this is safe to run on each start.
        """
        async with self.session() as session:
            for statement in SCHEMA_STATEMENTS:
                result = await session.run(statement)
                await result.consume()
        log.info("Database schema ensured")

    async def close(self) -> None:
        """Close the database connection.

        If no connection exists, this is a no-op.
        """
        if self._driver:
            await self._driver.close()
            self._driver = None
