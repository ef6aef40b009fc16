import pytest

from tron_events.cache import ConfirmationStore
from tron_events.models import ConfirmationState


@pytest.mark.asyncio
async def test_unknown_fingerprint_is_absent(redis_client):
    store = ConfirmationStore(redis_client)
    assert await store.get_status("7NHqjeKQ:6789abcdef:Transfer:0") is ConfirmationState.ABSENT


@pytest.mark.asyncio
async def test_mark_unconfirmed_then_confirmed(redis_client):
    store = ConfirmationStore(redis_client)
    fp = "7NHqjeKQ:6789abcdef:Transfer:0"

    await store.mark_unconfirmed(fp, ttl=60)
    assert await store.get_status(fp) is ConfirmationState.UNCONFIRMED

    await store.mark_confirmed(fp, ttl=60)
    assert await store.get_status(fp) is ConfirmationState.CONFIRMED

    # Marking twice is harmless
    await store.mark_confirmed(fp, ttl=60)
    assert await store.get_status(fp) is ConfirmationState.CONFIRMED


@pytest.mark.asyncio
async def test_mark_sets_ttl(redis_client):
    store = ConfirmationStore(redis_client)
    fp = "7NHqjeKQ:6789abcdef:Transfer:1"

    await store.mark_unconfirmed(fp, ttl=120)
    assert 0 < await redis_client.ttl(fp) <= 120


@pytest.mark.asyncio
async def test_get_statuses(redis_client):
    store = ConfirmationStore(redis_client)
    await store.mark_unconfirmed("a:b:Transfer:0")
    await store.mark_confirmed("a:b:Transfer:1")

    statuses = await store.get_statuses(["a:b:Transfer:0", "a:b:Transfer:1", "a:b:Transfer:2"])

    assert statuses == {
        "a:b:Transfer:0": ConfirmationState.UNCONFIRMED,
        "a:b:Transfer:1": ConfirmationState.CONFIRMED,
        "a:b:Transfer:2": ConfirmationState.ABSENT
    }
    assert await store.get_statuses([]) == {}
