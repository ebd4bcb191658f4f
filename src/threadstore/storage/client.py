"""
DatabaseClient - the seam between RecordStore and a thread database.

The hierarchy mirrors a document database:
- A Thread is a named logical database with an opaque ThreadID
- A Thread contains Collections (tables)
- A Collection contains Instances (rows), keyed by ``_id``

Implementations raise the exceptions in ``threadstore.core.exceptions``.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from threadstore.core.types import ListenFilter, Query, ThreadID, ThreadInfo
from threadstore.storage.subscription import EventCallback, Subscription


_JSON_TYPES: dict[type, str] = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
}


def schema_from_object(obj: Mapping[str, Any]) -> dict[str, Any]:
    """
    Infer a JSON schema (draft-07) from a sample instance.

    Nested mappings become nested object schemas; lists take the type of
    their first element.
    """
    properties: dict[str, Any] = {}
    for key, value in obj.items():
        properties[key] = _schema_for_value(value)

    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": properties,
    }


def _schema_for_value(value: Any) -> dict[str, Any]:
    if isinstance(value, Mapping):
        nested = schema_from_object(value)
        nested.pop("$schema")
        return nested
    if isinstance(value, (list, tuple)):
        items = _schema_for_value(value[0]) if value else {}
        return {"type": "array", "items": items}
    for py_type, json_type in _JSON_TYPES.items():
        # bool is checked before int since bool subclasses int
        if type(value) is py_type:
            return {"type": json_type}
    if value is None:
        return {"type": "null"}
    return {}


class DatabaseClient(ABC):
    """
    Async interface to a thread database.

    All calls are network round trips in real deployments; nothing is cached.
    """

    @abstractmethod
    async def get_token(self, identity: str) -> str:
        """Obtain (and keep) a session token for ``identity``."""

    @abstractmethod
    async def new_db(self, name: str, thread_id: ThreadID | None = None) -> ThreadID:
        """Create a thread. A ThreadID is generated when none is given."""

    @abstractmethod
    async def new_collection_from_object(
        self,
        thread_id: ThreadID,
        obj: Mapping[str, Any],
        name: str,
    ) -> None:
        """Create a collection whose schema is inferred from ``obj``."""

    @abstractmethod
    async def list_collections(self, thread_id: ThreadID) -> list[str]:
        """Names of the collections in a thread."""

    @abstractmethod
    async def create(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> list[str]:
        """Insert instances; returns their identifiers in submission order."""

    @abstractmethod
    async def save(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> None:
        """Replace existing instances by ``_id``."""

    @abstractmethod
    async def find_by_id(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_id: str,
    ) -> dict[str, Any]:
        """Fetch one instance or raise NotFoundError."""

    @abstractmethod
    async def find(
        self,
        thread_id: ThreadID,
        collection_name: str,
        query: Query,
    ) -> list[dict[str, Any]]:
        """All instances matching ``query``."""

    @abstractmethod
    async def delete(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_ids: list[str],
    ) -> None:
        """Delete instances by identifier."""

    @abstractmethod
    async def get_thread(self, name: str) -> ThreadInfo:
        """Look up a thread by name or raise NotFoundError."""

    @abstractmethod
    async def listen(
        self,
        thread_id: ThreadID,
        filters: list[ListenFilter],
        callback: EventCallback,
    ) -> Subscription:
        """Push matching changes on ``thread_id`` to ``callback``."""

    async def close(self) -> None:
        """Release transport resources."""

    async def __aenter__(self) -> "DatabaseClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
