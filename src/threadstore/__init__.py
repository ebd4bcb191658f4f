"""
threadstore

Record store façade over a threaded document database, with a CLI, an HTTP
API and a schema-seeding utility for the astronaut demo collection.
"""

__version__ = "0.1.0"

from threadstore.core.config import settings
from threadstore.core.exceptions import NotFoundError, StoreError, StoreUnavailableError
from threadstore.core.types import Astronaut, Query, Record, ThreadID, where
from threadstore.storage import RecordStore, open_client

__all__ = [
    "settings",
    "NotFoundError",
    "StoreError",
    "StoreUnavailableError",
    "Astronaut",
    "Query",
    "Record",
    "ThreadID",
    "where",
    "RecordStore",
    "open_client",
]
