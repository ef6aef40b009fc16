import pytest

from tron_events.cache import fingerprint
from tron_events.models import SetResult

from .conftest import CONTRACT_ADDRESS, OTHER_CONTRACT_ADDRESS


async def _ingest(cache, events, **options):
    for event in events:
        await cache.set_event(event, **options)


def _newest_first(events):
    return sorted(events, key=lambda e: e["block_timestamp"], reverse=True)


@pytest.mark.asyncio
async def test_set_event_indexes_new_events(cache, make_event):
    """Test a compressed event is retrievable by transaction and by contract."""
    event = make_event(1)
    assert await cache.set_event(event, compressed=True) is SetResult.SET_UNCONFIRMED

    assert await cache.get_by_transaction_id(event["transaction_id"]) == [event]
    assert await cache.get_by_contract_address(CONTRACT_ADDRESS) == [event]
    assert await cache.get_timestamp_by_block_number(event["block_number"]) == event["block_timestamp"]


@pytest.mark.asyncio
async def test_set_event_does_not_reindex_confirmations(cache, redis_client, make_event):
    event = make_event(1)
    await cache.set_event(event)
    await redis_client.delete("$" + CONTRACT_ADDRESS)

    assert await cache.set_event(event) is SetResult.SET_CONFIRMED
    assert await redis_client.exists("$" + CONTRACT_ADDRESS) == 0


@pytest.mark.asyncio
async def test_first_page_is_most_recent(cache, make_event):
    events = [make_event(n) for n in range(30)]
    await _ingest(cache, events)

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=5)

    assert page == _newest_first(events)[:5]


@pytest.mark.asyncio
async def test_default_page_size(cache, make_event, settings):
    events = [make_event(n) for n in range(settings.DEFAULT_PAGE_SIZE + 5)]
    await _ingest(cache, events)

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS)

    assert len(page) == settings.DEFAULT_PAGE_SIZE


@pytest.mark.asyncio
async def test_fewer_events_than_page_size(cache, make_event):
    events = [make_event(n) for n in range(3)]
    await _ingest(cache, events)

    assert await cache.get_by_contract_address(CONTRACT_ADDRESS, size=20) == _newest_first(events)
    assert await cache.get_by_contract_address(OTHER_CONTRACT_ADDRESS) == []


@pytest.mark.asyncio
async def test_pages_by_number(cache, make_event):
    events = [make_event(n) for n in range(12)]
    await _ingest(cache, events)
    expected = _newest_first(events)

    assert await cache.get_by_contract_address(CONTRACT_ADDRESS, size=5, page=2) == expected[5:10]
    assert await cache.get_by_contract_address(CONTRACT_ADDRESS, size=5, page=3) == expected[10:]


@pytest.mark.asyncio
async def test_pages_by_previous_fingerprint(cache, make_event):
    """Test that a cursor walks every event exactly once."""
    events = [make_event(n) for n in range(23)]
    await _ingest(cache, events)

    seen = []
    previous = None
    page_number = 1
    while True:
        page = await cache.get_by_contract_address(
            CONTRACT_ADDRESS,
            size=5,
            page=page_number,
            previous_fingerprint=previous
        )
        if not page:
            break
        seen.extend(page)
        previous = fingerprint(page[-1])
        page_number += 1

    assert seen == _newest_first(events)
    assert page_number == 6


@pytest.mark.asyncio
async def test_cursor_survives_new_events(cache, make_event):
    events = [make_event(n) for n in range(10)]
    await _ingest(cache, events)
    expected = _newest_first(events)

    first = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=4)
    assert first == expected[:4]

    # Newer events shift every rank down
    await _ingest(cache, [make_event(n) for n in range(100, 103)])

    second = await cache.get_by_contract_address(
        CONTRACT_ADDRESS,
        size=4,
        page=2,
        previous_fingerprint=fingerprint(first[-1])
    )
    assert second == expected[4:8]


@pytest.mark.asyncio
async def test_stale_cursor_gives_empty_page(cache, make_event):
    await _ingest(cache, [make_event(n) for n in range(5)])

    page = await cache.get_by_contract_address(
        CONTRACT_ADDRESS,
        size=2,
        page=2,
        previous_fingerprint="gone:gone:Transfer:0"
    )
    assert page == []


@pytest.mark.asyncio
async def test_since_timestamp_stops_scan(cache, make_event):
    events = [make_event(n) for n in range(10)]
    await _ingest(cache, events)

    since = events[6]["block_timestamp"]
    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, since_timestamp=since, size=20)

    assert page == _newest_first(events[6:])


@pytest.mark.asyncio
async def test_filter_by_event_name(cache, make_event):
    transfers = [make_event(n) for n in range(4)]
    approvals = [make_event(n, event_name="Approval") for n in range(10, 13)]
    await _ingest(cache, transfers + approvals)

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, event_name="Approval")

    assert page == _newest_first(approvals)


@pytest.mark.asyncio
async def test_transaction_with_several_events(cache, make_event):
    older = make_event(1)
    multi = [make_event(2), make_event(2, event_index=1), make_event(2, event_index=2)]
    await _ingest(cache, [older] + multi)

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=2)
    assert page == multi[:2]

    page = await cache.get_by_contract_address(
        CONTRACT_ADDRESS,
        size=2,
        page=2,
        previous_fingerprint=fingerprint(page[-1])
    )
    assert page == [multi[2], older]


@pytest.mark.asyncio
async def test_only_confirmed_spans_scan_windows(cache, make_event):
    """Test that filtering thins the first window and the page continues past it."""
    events = [make_event(n) for n in range(12)]
    await _ingest(cache, events)
    confirmed = events[:5]
    for event in confirmed:
        await cache.set_event(event)

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=3, only_confirmed=True)
    assert page == _newest_first(confirmed)[:3]

    page = await cache.get_by_contract_address(
        CONTRACT_ADDRESS,
        size=3,
        page=2,
        previous_fingerprint=fingerprint(page[-1]),
        only_confirmed=True
    )
    assert page == _newest_first(confirmed)[3:]


@pytest.mark.asyncio
async def test_compressed_events_in_pages(cache, make_event):
    events = [make_event(n) for n in range(6)]
    await _ingest(cache, events, compressed=True)

    assert await cache.get_by_contract_address(CONTRACT_ADDRESS, size=6) == _newest_first(events)


@pytest.mark.asyncio
async def test_set_events_concurrently(cache, observer, make_event):
    events = [make_event(n) for n in range(40)]
    results = await cache.set_events(events, compressed=True)

    assert results == [SetResult.SET_UNCONFIRMED] * 40
    assert observer.writes == 40

    results = await cache.set_events(events)
    assert results == [SetResult.SET_CONFIRMED] * 40

    page = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=50, only_confirmed=True)
    assert page == _newest_first(events)


@pytest.mark.asyncio
async def test_events_of_other_contracts_in_same_transaction(cache, make_event):
    ours = make_event(1)
    theirs = make_event(1, contract_address=OTHER_CONTRACT_ADDRESS, event_index=1)
    approval = make_event(1, event_name="Approval", event_index=2)
    await _ingest(cache, [ours, theirs, approval])

    assert await cache.get_by_contract_address(CONTRACT_ADDRESS) == [ours, approval]
    assert await cache.get_by_contract_address(CONTRACT_ADDRESS, event_name="Approval") == [approval]
    assert await cache.get_by_contract_address(OTHER_CONTRACT_ADDRESS) == [theirs]



@pytest.mark.asyncio
async def test_cursor_without_page_number_gives_next_page(cache, make_event):
    events = [make_event(n) for n in range(6)]
    await _ingest(cache, events)
    expected = _newest_first(events)

    first = await cache.get_by_contract_address(CONTRACT_ADDRESS, size=3)
    assert first == expected[:3]

    following = await cache.get_by_contract_address(
        CONTRACT_ADDRESS,
        size=3,
        previous_fingerprint=fingerprint(first[-1])
    )
    assert following == expected[3:]


async def _follow_cursor(cache, size, numbered):
    """Collect every page by following the cursor, optionally with page numbers."""
    seen = []
    previous = None
    page_number = 1
    while True:
        page = await cache.get_by_contract_address(
            CONTRACT_ADDRESS,
            size=size,
            page=page_number if numbered else 1,
            previous_fingerprint=previous
        )
        if not page:
            return seen, page_number
        seen.extend(page)
        previous = fingerprint(page[-1])
        page_number += 1


def _ids(events):
    return [(e["block_number"], e["event_index"]) for e in events]


@pytest.mark.asyncio
@pytest.mark.parametrize("numbered", [True, False])
async def test_cursor_walks_transactions_with_several_events(cache, make_event, numbered):
    """Test a cursor reaches every event once when transactions hold several events."""
    events = [make_event(n, event_index=i) for n in range(4) for i in range(3)]
    await _ingest(cache, events)
    expected = sorted(events, key=lambda e: (-e["block_timestamp"], e["event_index"]))

    seen, page_number = await _follow_cursor(cache, size=2, numbered=numbered)

    assert _ids(seen) == _ids(expected)
    assert len(set(_ids(seen))) == len(events)
    assert page_number == 7


@pytest.mark.asyncio
async def test_cursor_walks_uneven_transactions(cache, make_event):
    events = [make_event(n, event_index=i) for n in range(8) for i in range(n % 3 + 1)]
    await _ingest(cache, events)
    expected = sorted(events, key=lambda e: (-e["block_timestamp"], e["event_index"]))

    seen, _ = await _follow_cursor(cache, size=3, numbered=True)

    assert _ids(seen) == _ids(expected)
