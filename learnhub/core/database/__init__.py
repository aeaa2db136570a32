"""Cassandra connection and schema bootstrap."""

from learnhub.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
