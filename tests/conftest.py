"""
Pytest configuration and fixtures for threadstore tests.
"""

import os

import pytest
import pytest_asyncio

# Set test environment before importing app modules
os.environ["THREADSTORE_BACKEND"] = "memory"
os.environ["THREADSTORE_KEY_ID"] = "test-key"
os.environ["THREADSTORE_MODE"] = "dev"
os.environ["THREADSTORE_THREAD_NAME"] = "nasa"
os.environ["THREADSTORE_COLLECTION_NAME"] = "astronauts"

from threadstore.core.types import Astronaut  # noqa: E402
from threadstore.storage.memory import MemoryClient  # noqa: E402
from threadstore.storage.records import RecordStore  # noqa: E402


@pytest.fixture
def memory_client() -> MemoryClient:
    """Empty in-process thread database."""
    return MemoryClient()


@pytest.fixture
def astronaut_store(memory_client) -> RecordStore[Astronaut]:
    """Astronaut store over a client with no thread yet."""
    return RecordStore(memory_client, "nasa", "astronauts", model=Astronaut)


@pytest_asyncio.fixture
async def provisioned_store(astronaut_store) -> RecordStore[Astronaut]:
    """Astronaut store whose thread and collection exist but are empty."""
    await astronaut_store.provision(Astronaut(name="Buzz", missions=5))
    return astronaut_store


@pytest.fixture
def lightyear() -> Astronaut:
    return Astronaut(name="Lightyear", missions=5)


@pytest.fixture
def buzz() -> Astronaut:
    return Astronaut(name="Buzz", missions=5)


# ============================================
# Hub Fixtures (require a running Hub)
# ============================================

@pytest.fixture(scope="session")
def hub_settings():
    """Settings for integration tests against a real Hub."""
    hub_url = os.environ.get("THREADSTORE_INTEGRATION_HUB_URL")
    key_id = os.environ.get("THREADSTORE_INTEGRATION_KEY_ID")
    if not hub_url or not key_id:
        pytest.skip("Hub not configured (THREADSTORE_INTEGRATION_HUB_URL / _KEY_ID)")

    from threadstore.core.config import Settings

    return Settings(
        backend="hub",
        hub_url=hub_url,
        key_id=key_id,
        key_secret=os.environ.get("THREADSTORE_INTEGRATION_KEY_SECRET") or None,
        mode=os.environ.get("THREADSTORE_INTEGRATION_MODE", "dev"),
        identity=os.environ.get("THREADSTORE_INTEGRATION_IDENTITY", ""),
    )
