"""Async Cassandra connection using cassandra-asyncio-driver.

The driver adds ``session.aexecute()`` on top of the regular
cassandra-driver session, so services can await queries while keeping
prepared statements and the standard result API.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from learnhub.certificates.models import CERTIFICATES_TABLES_CQL
from learnhub.config import get_settings
from learnhub.courses.models import COURSES_TABLES_CQL
from learnhub.notifications.models import NOTIFICATIONS_TABLES_CQL
from learnhub.progress.models import PROGRESS_TABLES_CQL
from learnhub.quizzes.models import QUIZZES_TABLES_CQL


logger = structlog.get_logger(__name__)

# Creation order only matters for readability; tables are independent.
SCHEMA: dict[str, list[str]] = {
    "courses": COURSES_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
    "quizzes": QUIZZES_TABLES_CQL,
    "certificates": CERTIFICATES_TABLES_CQL,
    "notifications": NOTIFICATIONS_TABLES_CQL,
}


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Connect to the cluster, reusing the session if already open.

        Raises:
            ConnectionError: If no host can be reached.
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cls._cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            protocol_version=settings.cassandra_protocol_version,
            load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error("async_cassandra_connection_failed", error=str(e))
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "async_cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
        logger.info("async_cassandra_closed")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


async def init_async_keyspace(session, keyspace: str) -> None:
    """Create the keyspace if it does not exist."""
    settings = get_settings()

    if settings.is_production:
        replication = "'class': 'NetworkTopologyStrategy', 'datacenter1': 3"
    else:
        replication = "'class': 'SimpleStrategy', 'replication_factor': 1"

    await session.aexecute(
        f"""
        CREATE KEYSPACE IF NOT EXISTS {keyspace}
        WITH replication = {{{replication}}}
        AND durable_writes = true
        """
    )
    logger.info("async_keyspace_created", keyspace=keyspace)


async def init_async_tables(session, keyspace: str) -> None:
    """Create every module's tables."""
    for module, statements in SCHEMA.items():
        for cql_template in statements:
            await session.aexecute(cql_template.format(keyspace=keyspace))
        logger.info("async_tables_created", module=module, keyspace=keyspace)


async def init_async_cassandra():
    """Connect, then create the keyspace and tables.

    Returns:
        Session with ``aexecute()`` support, bound to the keyspace.
    """
    settings = get_settings()
    session = AsyncCassandraConnection.connect()

    await init_async_keyspace(session, settings.cassandra_keyspace)
    session.set_keyspace(settings.cassandra_keyspace)
    await init_async_tables(session, settings.cassandra_keyspace)

    logger.info("async_cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
