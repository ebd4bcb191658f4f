"""
In-process DatabaseClient.

Keeps threads, collections and instances in dictionaries for the lifetime of
the client. Behaves like the Hub for everything RecordStore relies on:
- ``_id`` assigned on create when empty
- ``delete`` of an unknown identifier is a no-op
- changes are pushed to listeners asynchronously, in the order observed
"""

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any, Mapping
from uuid import uuid4

from threadstore.core.config import get_logger
from threadstore.core.exceptions import ConflictError, NotFoundError
from threadstore.core.types import (
    ActionType,
    ListenEvent,
    ListenFilter,
    Query,
    ThreadID,
    ThreadInfo,
)
from threadstore.storage.client import DatabaseClient, schema_from_object
from threadstore.storage.subscription import EventCallback, Subscription, dispatch

logger = get_logger("storage.memory")


@dataclass
class _Collection:
    name: str
    schema: dict[str, Any]
    instances: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class _Thread:
    thread_id: ThreadID
    name: str
    collections: dict[str, _Collection] = field(default_factory=dict)
    listeners: list[tuple[list[ListenFilter], asyncio.Queue]] = field(default_factory=list)


class MemoryClient(DatabaseClient):
    """Dictionary-backed thread database. Not shared between processes."""

    def __init__(self):
        self._threads: dict[ThreadID, _Thread] = {}
        self._names: dict[str, ThreadID] = {}
        self.token: str | None = None

    # ==========================================
    # Lookup helpers
    # ==========================================

    def _thread(self, thread_id: ThreadID) -> _Thread:
        try:
            return self._threads[thread_id]
        except KeyError:
            raise NotFoundError(f"thread not found: {thread_id}") from None

    def _collection(self, thread_id: ThreadID, name: str) -> _Collection:
        thread = self._thread(thread_id)
        try:
            return thread.collections[name]
        except KeyError:
            raise NotFoundError(f"collection not found: {name}") from None

    def _publish(
        self,
        thread_id: ThreadID,
        collection_name: str,
        action: ActionType,
        instance_id: str,
        instance: dict[str, Any] | None,
    ) -> None:
        event = ListenEvent(
            collection_name=collection_name,
            instance_id=instance_id,
            action=action,
            instance=copy.deepcopy(instance),
        )
        for filters, queue in self._thread(thread_id).listeners:
            if not filters or any(f.matches(event) for f in filters):
                queue.put_nowait(event)

    # ==========================================
    # DatabaseClient
    # ==========================================

    async def get_token(self, identity: str) -> str:
        self.token = f"memory-{uuid4().hex}"
        logger.debug(f"Issued token for identity {identity or '<anonymous>'}")
        return self.token

    async def new_db(self, name: str, thread_id: ThreadID | None = None) -> ThreadID:
        if name in self._names:
            raise ConflictError(f"thread already exists: {name}")
        thread_id = thread_id or ThreadID.random()
        if thread_id in self._threads:
            raise ConflictError(f"thread already exists: {thread_id}")

        self._threads[thread_id] = _Thread(thread_id=thread_id, name=name)
        self._names[name] = thread_id
        logger.info(f"Created thread {name} ({thread_id})")
        return thread_id

    async def new_collection_from_object(
        self,
        thread_id: ThreadID,
        obj: Mapping[str, Any],
        name: str,
    ) -> None:
        thread = self._thread(thread_id)
        if name in thread.collections:
            raise ConflictError(f"collection already exists: {name}")
        thread.collections[name] = _Collection(name=name, schema=schema_from_object(obj))
        logger.info(f"Created collection {name} in thread {thread.name}")

    async def list_collections(self, thread_id: ThreadID) -> list[str]:
        return list(self._thread(thread_id).collections)

    async def create(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> list[str]:
        collection = self._collection(thread_id, collection_name)

        # Validate the whole batch before writing anything
        prepared = []
        seen: set[str] = set()
        for instance in instances:
            doc = copy.deepcopy(dict(instance))
            instance_id = doc.get("_id") or uuid4().hex
            if instance_id in collection.instances or instance_id in seen:
                raise ConflictError(f"instance already exists: {instance_id}")
            seen.add(instance_id)
            doc["_id"] = instance_id
            prepared.append(doc)

        for doc in prepared:
            collection.instances[doc["_id"]] = doc
            self._publish(thread_id, collection_name, ActionType.CREATE, doc["_id"], doc)

        return [doc["_id"] for doc in prepared]

    async def save(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instances: list[dict[str, Any]],
    ) -> None:
        collection = self._collection(thread_id, collection_name)

        for instance in instances:
            instance_id = instance.get("_id")
            if not instance_id or instance_id not in collection.instances:
                raise NotFoundError(f"instance not found: {instance_id}")

        for instance in instances:
            doc = copy.deepcopy(dict(instance))
            collection.instances[doc["_id"]] = doc
            self._publish(thread_id, collection_name, ActionType.SAVE, doc["_id"], doc)

    async def find_by_id(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_id: str,
    ) -> dict[str, Any]:
        collection = self._collection(thread_id, collection_name)
        try:
            return copy.deepcopy(collection.instances[instance_id])
        except KeyError:
            raise NotFoundError(f"instance not found: {instance_id}") from None

    async def find(
        self,
        thread_id: ThreadID,
        collection_name: str,
        query: Query,
    ) -> list[dict[str, Any]]:
        collection = self._collection(thread_id, collection_name)
        return [
            copy.deepcopy(doc)
            for doc in collection.instances.values()
            if query.matches(doc)
        ]

    async def delete(
        self,
        thread_id: ThreadID,
        collection_name: str,
        instance_ids: list[str],
    ) -> None:
        collection = self._collection(thread_id, collection_name)
        for instance_id in instance_ids:
            if collection.instances.pop(instance_id, None) is None:
                # Unknown ids are ignored, like the Hub
                logger.debug(f"Delete of unknown instance {instance_id} ignored")
                continue
            self._publish(thread_id, collection_name, ActionType.DELETE, instance_id, None)

    async def get_thread(self, name: str) -> ThreadInfo:
        try:
            thread_id = self._names[name]
        except KeyError:
            raise NotFoundError(f"thread not found: {name}") from None
        return ThreadInfo(id=str(thread_id), name=name)

    async def listen(
        self,
        thread_id: ThreadID,
        filters: list[ListenFilter],
        callback: EventCallback,
    ) -> Subscription:
        thread = self._thread(thread_id)
        queue: asyncio.Queue[ListenEvent] = asyncio.Queue()
        entry = (list(filters), queue)
        thread.listeners.append(entry)

        async def deliver() -> None:
            while True:
                event = await queue.get()
                await dispatch(callback, event)

        def detach() -> None:
            if entry in thread.listeners:
                thread.listeners.remove(entry)

        task = asyncio.get_running_loop().create_task(deliver())
        return Subscription(task, on_close=detach)
