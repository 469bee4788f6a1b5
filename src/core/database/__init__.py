"""Cassandra connection module for Inkwell.

Importing this package loads the Cassandra drivers; only the Cassandra
datastore backend does so.
"""

from src.core.database.async_cassandra import (
    AsyncCassandraConnection,
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "AsyncCassandraConnection",
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
