"""Tests for RecordStore over the in-process client."""

import pytest

from threadstore.core.exceptions import NotFoundError, StoreUnavailableError
from threadstore.core.types import Astronaut, Query, Record, ThreadID, where
from threadstore.storage.memory import MemoryClient
from threadstore.storage.records import RecordStore


class CountingClient(MemoryClient):
    """MemoryClient that records which calls were made."""

    def __init__(self):
        super().__init__()
        self.calls: list[str] = []

    async def get_thread(self, name):
        self.calls.append("get_thread")
        return await super().get_thread(name)

    async def create(self, thread_id, collection_name, instances):
        self.calls.append("create")
        return await super().create(thread_id, collection_name, instances)

    async def find(self, thread_id, collection_name, query):
        self.calls.append("find")
        return await super().find(thread_id, collection_name, query)

    async def find_by_id(self, thread_id, collection_name, instance_id):
        self.calls.append("find_by_id")
        return await super().find_by_id(thread_id, collection_name, instance_id)

    async def delete(self, thread_id, collection_name, instance_ids):
        self.calls.append("delete")
        return await super().delete(thread_id, collection_name, instance_ids)


class FailingClient(MemoryClient):
    """MemoryClient whose transport is down for writes."""

    async def create(self, thread_id, collection_name, instances):
        raise StoreUnavailableError("connection refused")


class TestResolveThread:
    """Tests for thread name resolution."""

    @pytest.mark.asyncio
    async def test_resolves_to_thread_id(self, provisioned_store):
        """Test that the name resolves to the provisioned ThreadID."""
        thread_id = await provisioned_store.resolve_thread()

        assert isinstance(thread_id, ThreadID)
        info = await provisioned_store.client.get_thread("nasa")
        assert str(thread_id) == info.id

    @pytest.mark.asyncio
    async def test_unknown_thread_fails_without_downstream_calls(self):
        """Test that a missing thread stops every operation before it starts."""
        client = CountingClient()
        store = RecordStore(client, "nowhere", "astronauts", model=Astronaut)

        with pytest.raises(NotFoundError):
            await store.resolve_thread()
        with pytest.raises(NotFoundError):
            await store.create(Astronaut(name="Buzz", missions=5))
        with pytest.raises(NotFoundError):
            await store.find_all()
        with pytest.raises(NotFoundError):
            await store.find_by_id("abc")
        with pytest.raises(NotFoundError):
            await store.delete_by_id("abc")

        assert set(client.calls) == {"get_thread"}

    @pytest.mark.asyncio
    async def test_every_operation_resolves_again(self):
        """Test that the thread lookup is not cached between calls."""
        client = CountingClient()
        store = RecordStore(client, model=Astronaut)
        await store.provision(Astronaut(name="Buzz", missions=5))

        instance_id = await store.create(Astronaut(name="Buzz", missions=5))
        await store.find_by_id(instance_id)
        await store.find_all()
        await store.delete_by_id(instance_id)

        assert client.calls.count("get_thread") == 4


class TestCreateAndFind:
    """Tests for create, find_by_id and find_all."""

    @pytest.mark.asyncio
    async def test_create_then_find_by_id(self, provisioned_store, lightyear):
        """Test that a created record reads back equal except for its id."""
        instance_id = await provisioned_store.create(lightyear)

        assert instance_id
        found = await provisioned_store.find_by_id(instance_id)
        assert found.id == instance_id
        assert found.model_copy(update={"id": ""}) == lightyear

    @pytest.mark.asyncio
    async def test_create_does_not_mutate_input(self, provisioned_store, lightyear):
        """Test that the caller's record keeps its empty id."""
        await provisioned_store.create(lightyear)

        assert lightyear.id == ""

    @pytest.mark.asyncio
    async def test_buzz_and_lightyear(self, provisioned_store, buzz, lightyear):
        """Test the two-astronaut scenario."""
        await provisioned_store.create(lightyear)
        await provisioned_store.create(buzz)

        astronauts = await provisioned_store.find_all()

        assert sorted(a.name for a in astronauts) == ["Buzz", "Lightyear"]
        assert all(a.id for a in astronauts)
        assert all(a.missions == 5 for a in astronauts)

    @pytest.mark.asyncio
    async def test_create_many_keeps_submission_order(self, provisioned_store):
        """Test that batch ids come back in submission order."""
        crew = [Astronaut(name=f"Cadet {i}", missions=i) for i in range(5)]

        ids = await provisioned_store.create_many(crew)

        assert len(ids) == 5
        assert len(set(ids)) == 5
        for instance_id, astronaut in zip(ids, crew):
            assert (await provisioned_store.find_by_id(instance_id)).name == astronaut.name

    @pytest.mark.asyncio
    async def test_create_many_rejects_empty_batch(self, provisioned_store):
        """Test that an empty batch is a caller error."""
        with pytest.raises(ValueError):
            await provisioned_store.create_many([])

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self):
        """Test that transport errors reach the caller unchanged."""
        store = RecordStore(FailingClient(), model=Astronaut)
        await store.provision(Astronaut(name="Buzz", missions=5))

        with pytest.raises(StoreUnavailableError, match="connection refused"):
            await store.create(Astronaut(name="Buzz", missions=5))

    @pytest.mark.asyncio
    async def test_find_by_unknown_id(self, provisioned_store):
        """Test that a missing record raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await provisioned_store.find_by_id("never-issued")

    @pytest.mark.asyncio
    async def test_find_all_with_query(self, provisioned_store):
        """Test filtered queries."""
        await provisioned_store.create_many([
            Astronaut(name="Buzz", missions=5),
            Astronaut(name="Lightyear", missions=5),
            Astronaut(name="Carl", missions=5000),
        ])

        veterans = await provisioned_store.find_all(where("missions").gt(100))
        buzz_only = await provisioned_store.find_all({"name": "Buzz"})
        everyone = await provisioned_store.find_all(Query())

        assert [a.name for a in veterans] == ["Carl"]
        assert [a.name for a in buzz_only] == ["Buzz"]
        assert len(everyone) == 3

    @pytest.mark.asyncio
    async def test_find_all_returns_list(self, provisioned_store):
        """Test that an empty collection yields an empty list."""
        assert await provisioned_store.find_all() == []

    @pytest.mark.asyncio
    async def test_schemaless_store(self, memory_client):
        """Test a store over plain Records."""
        store = RecordStore(memory_client, "misc", "things")
        await store.provision(Record.model_validate({"label": "x"}))

        instance_id = await store.create(Record.model_validate({"label": "y", "size": 3}))
        found = await store.find_by_id(instance_id)

        assert found.to_instance() == {"_id": instance_id, "label": "y", "size": 3}


class TestDelete:
    """Tests for delete_by_id."""

    @pytest.mark.asyncio
    async def test_delete_then_find(self, provisioned_store, buzz):
        """Test that a deleted record is gone."""
        instance_id = await provisioned_store.create(buzz)

        assert await provisioned_store.delete_by_id(instance_id) == instance_id
        with pytest.raises(NotFoundError):
            await provisioned_store.find_by_id(instance_id)

    @pytest.mark.asyncio
    async def test_delete_never_issued_id_is_silent(self, provisioned_store):
        """Test that deleting an unknown id does not raise and echoes the id."""
        assert await provisioned_store.delete_by_id("never-issued") == "never-issued"

    @pytest.mark.asyncio
    async def test_find_all_after_deletes(self, provisioned_store):
        """Test N creates minus M deletes leaves N - M records."""
        ids = await provisioned_store.create_many(
            [Astronaut(name=f"Cadet {i}", missions=i) for i in range(6)]
        )
        deleted = set(ids[:4:2]) | {ids[5]}

        for instance_id in deleted:
            await provisioned_store.delete_by_id(instance_id)

        remaining = await provisioned_store.find_all()
        assert len(remaining) == len(ids) - len(deleted)
        assert not {a.id for a in remaining} & deleted


class TestSaveAndSetup:
    """Tests for save, list_collections and provision."""

    @pytest.mark.asyncio
    async def test_save_updates_record(self, provisioned_store, buzz):
        """Test an explicit update."""
        instance_id = await provisioned_store.create(buzz)
        updated = Astronaut(id=instance_id, name="Buzz", missions=6)

        await provisioned_store.save(updated)

        assert (await provisioned_store.find_by_id(instance_id)).missions == 6

    @pytest.mark.asyncio
    async def test_save_unknown_record(self, provisioned_store, buzz):
        """Test that saving a record that was never created fails."""
        with pytest.raises(NotFoundError):
            await provisioned_store.save(buzz)

    @pytest.mark.asyncio
    async def test_list_collections(self, provisioned_store):
        """Test collection listing."""
        assert await provisioned_store.list_collections() == ["astronauts"]

    @pytest.mark.asyncio
    async def test_provision_with_seed(self, astronaut_store, buzz, lightyear):
        """Test creating the thread, collection and seed records in one go."""
        thread_id, ids = await astronaut_store.provision(buzz, [buzz, lightyear])

        assert thread_id == await astronaut_store.resolve_thread()
        assert len(ids) == 2
        assert len(await astronaut_store.find_all()) == 2
