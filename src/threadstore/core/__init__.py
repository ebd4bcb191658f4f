"""
Core module - Configuration, types and exceptions.
"""

from threadstore.core.config import settings
from threadstore.core.exceptions import (
    ConflictError,
    InvalidThreadIDError,
    NotFoundError,
    StoreError,
    StoreUnavailableError,
)
from threadstore.core.types import (
    ActionType,
    Astronaut,
    KeyInfo,
    ListenEvent,
    ListenFilter,
    Query,
    Record,
    ThreadID,
    ThreadInfo,
    where,
)

__all__ = [
    "settings",
    "ConflictError",
    "InvalidThreadIDError",
    "NotFoundError",
    "StoreError",
    "StoreUnavailableError",
    "ActionType",
    "Astronaut",
    "KeyInfo",
    "ListenEvent",
    "ListenFilter",
    "Query",
    "Record",
    "ThreadID",
    "ThreadInfo",
    "where",
]
