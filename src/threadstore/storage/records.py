"""
RecordStore - CRUD and query façade over one collection in one thread.

Every operation looks the thread up by name first and converts the returned
string id into a ThreadID. The lookup is never cached, so a thread that is
recreated under the same name is picked up on the next call.

The store keeps no record state. Callers own their in-memory view and must
reconcile it after create/delete using the identifiers returned here.
"""

from typing import Any, Generic, Iterable, Mapping, TypeVar

from threadstore.core.config import get_logger
from threadstore.core.types import ActionType, ListenFilter, Query, Record, ThreadID
from threadstore.storage.client import DatabaseClient
from threadstore.storage.subscription import EventCallback, Subscription

logger = get_logger("storage.records")

R = TypeVar("R", bound=Record)

DEFAULT_EVENT_KINDS = (ActionType.CREATE, ActionType.DELETE)


class RecordStore(Generic[R]):
    """
    Façade over a single collection.

    Errors from the client (NotFoundError, StoreUnavailableError, ...)
    propagate unchanged. Nothing is retried.
    """

    def __init__(
        self,
        client: DatabaseClient,
        thread_name: str = "nasa",
        collection_name: str = "astronauts",
        model: type[R] = Record,
    ):
        self.client = client
        self.thread_name = thread_name
        self.collection_name = collection_name
        self.model = model

    def _to_record(self, instance: Mapping[str, Any]) -> R:
        return self.model.model_validate(instance)

    async def resolve_thread(self) -> ThreadID:
        """Look the thread up by name and return its ThreadID."""
        info = await self.client.get_thread(self.thread_name)
        return ThreadID.from_string(info.id)

    # ==========================================
    # Writes
    # ==========================================

    async def create(self, record: R) -> str:
        """Insert one record and return its store-assigned identifier."""
        [instance_id] = await self.create_many([record])
        return instance_id

    async def create_many(self, records: Iterable[R]) -> list[str]:
        """Insert a batch; identifiers come back in submission order."""
        instances = [r.to_instance() for r in records]
        if not instances:
            raise ValueError("create_many needs at least one record")

        thread_id = await self.resolve_thread()
        ids = await self.client.create(thread_id, self.collection_name, instances)
        logger.debug(f"Created {len(ids)} record(s) in {self.collection_name}")
        return ids

    async def save(self, record: R) -> None:
        """Replace an existing record, matched by its identifier."""
        thread_id = await self.resolve_thread()
        await self.client.save(thread_id, self.collection_name, [record.to_instance()])
        logger.debug(f"Saved record {record.id} in {self.collection_name}")

    async def delete_by_id(self, instance_id: str) -> str:
        """
        Delete a record and hand back the same identifier.

        There is no existence check: an identifier the store never issued is
        accepted without error.
        """
        thread_id = await self.resolve_thread()
        await self.client.delete(thread_id, self.collection_name, [instance_id])
        logger.debug(f"Deleted record {instance_id} from {self.collection_name}")
        return instance_id

    # ==========================================
    # Reads
    # ==========================================

    async def find_by_id(self, instance_id: str) -> R:
        thread_id = await self.resolve_thread()
        instance = await self.client.find_by_id(thread_id, self.collection_name, instance_id)
        return self._to_record(instance)

    async def find_all(self, query: Query | Mapping[str, Any] | None = None) -> list[R]:
        """All records matching ``query``; no query means the whole collection."""
        thread_id = await self.resolve_thread()
        instances = await self.client.find(thread_id, self.collection_name, Query.coerce(query))
        return [self._to_record(i) for i in instances]

    async def list_collections(self) -> list[str]:
        thread_id = await self.resolve_thread()
        return await self.client.list_collections(thread_id)

    # ==========================================
    # Setup & Notifications
    # ==========================================

    async def provision(
        self,
        sample: R,
        seed: Iterable[R] = (),
    ) -> tuple[ThreadID, list[str]]:
        """
        Create the thread and the collection, then insert ``seed``.

        The collection schema is inferred from ``sample``.
        """
        thread_id = await self.client.new_db(self.thread_name)
        await self.client.new_collection_from_object(
            thread_id,
            sample.to_instance(),
            name=self.collection_name,
        )
        logger.info(f"Provisioned {self.thread_name}/{self.collection_name} ({thread_id})")

        seed_instances = [r.to_instance() for r in seed]
        ids: list[str] = []
        if seed_instances:
            ids = await self.client.create(thread_id, self.collection_name, seed_instances)
        return thread_id, ids

    async def subscribe(
        self,
        callback: EventCallback,
        kinds: Iterable[ActionType] = DEFAULT_EVENT_KINDS,
        thread_id: ThreadID | None = None,
    ) -> Subscription:
        """
        Push matching changes to ``callback`` until the handle is cancelled.

        Delivery runs on its own task and is unordered with respect to the
        caller's writes.
        """
        if thread_id is None:
            thread_id = await self.resolve_thread()
        filters = [ListenFilter(action_types=list(kinds))]
        return await self.client.listen(thread_id, filters, callback)
