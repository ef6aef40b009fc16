import hashlib
import logging

from fakeredis import FakeServer, aioredis
import pytest
import pytest_asyncio
import structlog

from tron_events.cache import EventCache
from tron_events.config import Settings
from tron_events.monitoring import ByteCountingWriteObserver

CONTRACT_ADDRESS = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"
OTHER_CONTRACT_ADDRESS = "TEkxiTehnzSmSe2XqrBj4w32RUN966rdz8"


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo logging configuration done by a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def settings():
    """Settings for tests, independent of any .env file."""
    return Settings(
        _env_file=None,
        REDIS_URL="redis://localhost:6379/15",
        CACHE_TTL=3600,
        DEFAULT_PAGE_SIZE=20,
        DB_URL="sqlite://"
    )


@pytest.fixture
def make_event():
    """Factory for events; ``n`` drives the transaction id, block and timestamp."""
    def factory(n, contract_address=CONTRACT_ADDRESS, event_name="Transfer", event_index=0, **overrides):
        event = {
            "block_number": 1000 + n,
            "block_timestamp": 1_600_000_000 + n * 3,
            "contract_address": contract_address,
            "event_index": event_index,
            "event_name": event_name,
            "result": {"from": "TXa" + str(n), "to": "TXb" + str(n), "value": str(n * 100)},
            "result_type": "{\"from\":\"address\",\"to\":\"address\",\"value\":\"uint256\"}",
            "transaction_id": hashlib.sha256(str(n).encode()).hexdigest(),
            "resource_node": "solidityNode",
        }
        event.update(overrides)
        return event
    return factory


@pytest_asyncio.fixture
async def redis_client():
    server = FakeServer()
    client = aioredis.FakeRedis(server=server, decode_responses=True)
    yield client


@pytest.fixture
def observer():
    return ByteCountingWriteObserver()


@pytest_asyncio.fixture
async def cache(settings, redis_client, observer):
    event_cache = EventCache(settings, client=redis_client, observer=observer)
    await event_cache.connect()
    yield event_cache
    await event_cache.close()
