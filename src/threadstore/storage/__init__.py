"""
Storage Layer - DatabaseClient implementations and the RecordStore façade.

1. DatabaseClient → interface to a thread database (Hub or in-process)
2. RecordStore    → CRUD/query over one collection in one thread
3. Subscription   → cancellable change listener

All record access should go through RecordStore.
"""

from threadstore.core.config import Settings, get_logger, settings as default_settings
from threadstore.storage.client import DatabaseClient, schema_from_object
from threadstore.storage.hub import HubClient
from threadstore.storage.memory import MemoryClient
from threadstore.storage.records import RecordStore
from threadstore.storage.subscription import Subscription

logger = get_logger("storage")


async def open_client(settings: Settings | None = None) -> DatabaseClient:
    """Open the DatabaseClient selected by ``settings.backend``."""
    settings = settings or default_settings

    if settings.backend == "memory":
        client: DatabaseClient = MemoryClient()
    else:
        client = await HubClient.with_key_info(
            settings.key_info,
            base_url=settings.hub_url,
            timeout=settings.request_timeout,
        )

    await client.get_token(settings.identity)
    logger.info(f"Opened {settings.backend} client")
    return client


__all__ = [
    "DatabaseClient",
    "HubClient",
    "MemoryClient",
    "RecordStore",
    "Subscription",
    "open_client",
    "schema_from_object",
]
