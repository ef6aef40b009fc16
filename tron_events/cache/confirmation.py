"""
Confirmation state of cached events, keyed by event fingerprint.

A fingerprint is absent, unconfirmed or confirmed. The state is written
by the record store only; TTLs are supplied by the caller.
"""
from typing import Dict, Iterable, List, Optional

import redis.asyncio as redis
from redis.asyncio.client import Pipeline

from ..models import ConfirmationState

UNCONFIRMED = "1"
CONFIRMED = "2"

_STATES = {
    None: ConfirmationState.ABSENT,
    UNCONFIRMED: ConfirmationState.UNCONFIRMED,
    CONFIRMED: ConfirmationState.CONFIRMED,
}


def _state(value: Optional[str]) -> ConfirmationState:
    return _STATES.get(value, ConfirmationState.ABSENT)


class ConfirmationStore:
    def __init__(self, client: redis.Redis):
        self.redis = client

    async def get_status(self, fingerprint: str) -> ConfirmationState:
        return _state(await self.redis.get(fingerprint))

    async def get_statuses(self, fingerprints: Iterable[str]) -> Dict[str, ConfirmationState]:
        """Look up several fingerprints in one round-trip."""
        fingerprints = list(fingerprints)
        if not fingerprints:
            return {}
        values: List[Optional[str]] = await self.redis.mget(fingerprints)
        return {fp: _state(v) for fp, v in zip(fingerprints, values)}

    async def mark_unconfirmed(self, fingerprint: str, ttl: Optional[int] = None) -> None:
        await self.redis.set(fingerprint, UNCONFIRMED, ex=ttl)

    async def mark_confirmed(self, fingerprint: str, ttl: Optional[int] = None) -> None:
        await self.redis.set(fingerprint, CONFIRMED, ex=ttl)

    @staticmethod
    def stage(pipe: Pipeline, fingerprint: str, confirmed: bool, ttl: Optional[int] = None) -> None:
        """Queue a state write on a pipeline instead of sending it."""
        pipe.set(fingerprint, CONFIRMED if confirmed else UNCONFIRMED, ex=ttl)
