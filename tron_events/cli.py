#!/usr/bin/env python3
import asyncio
import json
import sys
from collections import Counter
from typing import Any, Awaitable, Callable, List, Optional

import click
from pydantic import ValidationError

from .cache import EventCache
from .config import Settings, configure_logging, get_settings
from .errors import BackingStoreUnavailable, DecodeError
from .models import EventRecord
from .monitoring import ByteCountingWriteObserver
from .store import EventLogWriter, EventStore


def _run(settings: Settings, action: Callable[[EventCache], Awaitable[Any]], observer=None) -> Any:
    async def main():
        async with EventCache(settings, observer=observer) as cache:
            return await action(cache)

    try:
        return asyncio.run(main())
    except BackingStoreUnavailable as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except DecodeError as e:
        click.echo(f"Error: corrupted cache entry: {e}", err=True)
        sys.exit(2)


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, default=str))


@click.group()
@click.option("--redis-url", default=None, help="Redis URL, overrides TRON_EVENTS_REDIS_URL")
@click.option("--log-level", default=None, help="Log level, overrides TRON_EVENTS_LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, redis_url: Optional[str], log_level: Optional[str]):
    """Tron events cache command line interface"""
    overrides = {}
    if redis_url:
        overrides["REDIS_URL"] = redis_url
    if log_level:
        overrides["LOG_LEVEL"] = log_level.upper()
    settings = get_settings(**overrides)
    configure_logging(settings.LOG_LEVEL)
    ctx.obj = settings


@cli.command()
@click.argument("events_file", type=click.File("r"))
@click.option("--compressed", is_flag=True, help="Store events with shortened field names")
@click.option("--force-confirmed", is_flag=True, help="Store events as confirmed")
@click.option("--cache-only", is_flag=True, help="Do not write to the events log")
@click.pass_obj
def ingest(settings: Settings, events_file, compressed: bool, force_confirmed: bool, cache_only: bool):
    """Ingest a JSON array of events concurrently"""
    try:
        payloads = json.load(events_file)
    except ValueError as e:
        click.echo(f"Error: {events_file.name} is not valid JSON: {e}", err=True)
        sys.exit(1)
    if not isinstance(payloads, list):
        click.echo("Error: expected a JSON array of events", err=True)
        sys.exit(1)

    records: List[dict] = []
    for position, payload in enumerate(payloads):
        try:
            records.append(EventRecord.model_validate(payload).to_cache())
        except ValidationError as e:
            click.echo(f"Error: event {position} is malformed: {e}", err=True)
            sys.exit(1)

    writer = None
    if not cache_only:
        writer = EventLogWriter(settings.DB_URL)
        writer.create_schema()

    observer = ByteCountingWriteObserver()

    async def action(cache: EventCache):
        store = EventStore(cache, writer)
        return await asyncio.gather(*(
            store.save_event(record, compressed, force_confirmed, cache_only)
            for record in records
        ))

    results = _run(settings, action, observer=observer)
    counts = Counter(result.name for result in results)
    _echo_json({
        "events": len(records),
        "outcomes": dict(counts),
        "records_written": observer.writes,
        "bytes_written": observer.total_bytes
    })


@cli.command()
@click.argument("transaction_id")
@click.option("--only-confirmed", is_flag=True, help="Skip unconfirmed events")
@click.pass_obj
def transaction(settings: Settings, transaction_id: str, only_confirmed: bool):
    """Show the cached events of a transaction"""
    events = _run(settings, lambda cache: cache.get_by_transaction_id(transaction_id, only_confirmed))
    _echo_json(events)


@cli.command()
@click.argument("contract_address")
@click.option("--event-name", default=None, help="Only events with this name")
@click.option("--since", type=int, default=None, help="Oldest block timestamp to return")
@click.option("--size", type=int, default=None, help="Page size")
@click.option("--page", type=int, default=1, show_default=True, help="Page number")
@click.option("--previous", default=None, help="Fingerprint of the last event of the previous page")
@click.option("--only-confirmed", is_flag=True, help="Skip unconfirmed events")
@click.pass_obj
def contract(
    settings: Settings,
    contract_address: str,
    event_name: Optional[str],
    since: Optional[int],
    size: Optional[int],
    page: int,
    previous: Optional[str],
    only_confirmed: bool
):
    """Show a page of a contract's cached events, newest first"""
    events = _run(settings, lambda cache: cache.get_by_contract_address(
        contract_address,
        since_timestamp=since,
        event_name=event_name,
        size=size,
        page=page,
        previous_fingerprint=previous,
        only_confirmed=only_confirmed
    ))
    _echo_json(events)


@cli.command()
@click.argument("contract_address")
@click.option("--older-than", type=int, required=True, help="Remove entries with an older block timestamp")
@click.option("--event-name", "event_names", multiple=True, help="Also prune this event name's index")
@click.pass_obj
def prune(settings: Settings, contract_address: str, older_than: int, event_names):
    """Remove old entries from a contract's indexes"""
    removed = _run(settings, lambda cache: cache.prune_indexes(contract_address, older_than, event_names))
    _echo_json({"contract_address": contract_address, "removed": removed})


if __name__ == "__main__":
    cli()
