"""
Primary record store.

Events are kept in one Redis hash per transaction id, one hash field per
``event_name:event_index``. The confirmation state of each event lives
next to it under the event fingerprint, with the same TTL.
"""
from typing import Any, Dict, List, Mapping, Optional

import redis.asyncio as redis
import structlog

from ..errors import DecodeError
from ..models import ConfirmationState, SetResult
from ..monitoring import NullWriteObserver, WriteObserver
from .codec import (
    FIELDS_BY_TRANSACTION_ID,
    FieldSpec,
    KEY_SEPARATOR,
    compress,
    concat_keys,
    dumps,
    fingerprint,
    format_key,
    is_compressed,
    loads,
    uncompress,
)
from .confirmation import ConfirmationStore

logger = structlog.get_logger()


class RecordStore:
    """Stores events by transaction id and drives their confirmation state."""

    def __init__(
        self,
        client: redis.Redis,
        confirmations: ConfirmationStore,
        default_ttl: int,
        observer: Optional[WriteObserver] = None,
        fields: FieldSpec = FIELDS_BY_TRANSACTION_ID
    ):
        self.redis = client
        self.confirmations = confirmations
        self.default_ttl = default_ttl
        self.observer = observer or NullWriteObserver()
        self.fields = fields
        self._excluded = concat_keys(
            KEY_SEPARATOR.join(fields.key),
            KEY_SEPARATOR.join(fields.sub_key)
        )

    def keys_for(self, record: Mapping[str, Any]) -> tuple:
        """Return the (key, subkey) an event is stored under."""
        return format_key(record, self.fields.key), format_key(record, self.fields.sub_key)

    async def set_by_transaction_id(
        self,
        record: Mapping[str, Any],
        compressed: bool = False,
        force_confirmed: bool = False,
        ttl: Optional[int] = None
    ) -> SetResult:
        """
        Store an event, or confirm it if it was already seen.

        A first submission stores the event as unconfirmed. Submitting it
        again while it is unconfirmed promotes it to confirmed without
        rewriting it. Once confirmed, submissions are no-ops. With
        ``force_confirmed`` the current state is not read and the event is
        stored as confirmed straight away.

        Args:
            record: Event with long field names
            compressed: Store the event with shortened field names
            force_confirmed: Store the event as confirmed
            ttl: Seconds to keep the event, or None for the default

        Returns:
            The outcome of the submission
        """
        ttl = ttl or self.default_ttl
        key, sub_key = self.keys_for(record)
        fp = fingerprint(record)

        if force_confirmed:
            state = ConfirmationState.ABSENT
        else:
            state = await self.confirmations.get_status(fp)

        if state is ConfirmationState.UNCONFIRMED:
            await self._promote(key, sub_key, fp, ttl)
            logger.debug("event_confirmed", fingerprint=fp)
            return SetResult.SET_CONFIRMED

        if state is ConfirmationState.CONFIRMED:
            logger.debug("event_already_set", fingerprint=fp)
            return SetResult.ALREADY_SET

        value = compress(record, self._excluded) if compressed else dict(record)
        serialized = dumps(value)

        # The hash field, the fingerprint state and both TTLs go in one MULTI
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.hset(key, sub_key, serialized)
            pipe.expire(key, ttl)
            self.confirmations.stage(pipe, fp, force_confirmed, ttl)
            await pipe.execute()

        self.observer.on_write(key, len(serialized.encode("utf-8")))
        logger.debug(
            "event_cached",
            transaction_id=key,
            sub_key=sub_key,
            compressed=compressed,
            force_confirmed=force_confirmed
        )
        return SetResult.SET_FORCED_CONFIRMED if force_confirmed else SetResult.SET_UNCONFIRMED

    async def _promote(self, key: str, sub_key: str, fp: str, ttl: int) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            self.confirmations.stage(pipe, fp, True, ttl)
            pipe.expire(key, ttl)
            pipe.hexists(key, sub_key)
            _, _, record_exists = await pipe.execute()

        if not record_exists:
            # The record expired between the state read and this write
            logger.warning(
                "partial_consistency_drift",
                fingerprint=fp,
                transaction_id=key,
                sub_key=sub_key
            )

    async def get_by_transaction_id(self, transaction_id: str, only_confirmed: bool = False) -> List[Dict[str, Any]]:
        """
        Get every cached event of a transaction, in insertion order.

        Raises:
            DecodeError: If a stored event is not valid JSON
        """
        stored = await self.redis.hgetall(transaction_id)
        events = []
        for sub_key, data in stored.items():
            value = loads(data)
            if not isinstance(value, dict):
                raise DecodeError(f"Stored event {transaction_id}:{sub_key} is not an object")
            if is_compressed(value):
                value = uncompress(value, self.fields, transaction_id, sub_key)
            events.append(value)

        if only_confirmed and events:
            fingerprints = [fingerprint(e) for e in events]
            states = await self.confirmations.get_statuses(fingerprints)
            events = [
                e for e, fp in zip(events, fingerprints)
                if states[fp] is ConfirmationState.CONFIRMED
            ]
        return events
