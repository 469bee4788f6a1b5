"""Record storage backends.

`build_datastore` picks the backend named by `DATASTORE_BACKEND`. The
Cassandra backend (and the Cassandra drivers) are only imported when
selected. Outside production an unreachable cluster falls back to the
in-memory store; any other failure propagates.
"""

import structlog

from src.config.settings import Settings
from src.datastore.base import Datastore
from src.datastore.memory import MemoryDatastore


logger = structlog.get_logger(__name__)


async def build_datastore(settings: Settings) -> Datastore:
    if settings.datastore_backend == "memory":
        return MemoryDatastore()

    from cassandra import OperationTimedOut  # noqa: PLC0415
    from cassandra.cluster import NoHostAvailable  # noqa: PLC0415

    from src.core.database import (  # noqa: PLC0415
        init_async_cassandra,
        shutdown_async_cassandra,
    )
    from src.datastore.cassandra import CassandraDatastore  # noqa: PLC0415

    try:
        session = await init_async_cassandra(settings)
    except (ConnectionError, NoHostAvailable, OperationTimedOut) as e:
        await shutdown_async_cassandra()
        if settings.is_production:
            raise
        logger.warning(
            "cassandra_unavailable",
            error=str(e),
            message="Falling back to in-memory datastore",
        )
        return MemoryDatastore()

    return CassandraDatastore(session, settings.cassandra_keyspace)


__all__ = ["Datastore", "MemoryDatastore", "build_datastore"]
