"""Accept path chaining the event cache and the durable events log."""
from typing import Any, Mapping, Optional

import structlog

from ..cache import EventCache
from ..models import EventRecord, SetResult
from .database import EventLogWriter

logger = structlog.get_logger()


class EventStore:
    def __init__(self, cache: EventCache, writer: Optional[EventLogWriter] = None):
        self.cache = cache
        self.writer = writer

    async def save_event(
        self,
        record: Mapping[str, Any],
        compressed: bool = False,
        force_confirmed: bool = False,
        cache_only: bool = False,
        ttl: Optional[int] = None
    ) -> SetResult:
        """
        Cache an event, then write the outcome to the events log.

        Args:
            record: Validated event with long field names
            compressed: Store the event with shortened field names
            force_confirmed: Store the event as confirmed
            cache_only: Skip the events log
            ttl: Seconds to keep the event cached, or None for the default

        Returns:
            The cache outcome
        """
        result = await self.cache.set_event(record, compressed, force_confirmed, ttl)
        if not cache_only and self.writer is not None:
            await self.writer.write(record, result)
        logger.debug("event_saved", outcome=result.name, cache_only=cache_only)
        return result

    async def save_payload(self, payload: Mapping[str, Any], **options) -> SetResult:
        """
        Validate a raw payload and save it.

        Raises:
            pydantic.ValidationError: If the payload is not a valid event
        """
        record = EventRecord.model_validate(payload)
        return await self.save_event(record.to_cache(), **options)
