"""
Secondary indexes of cached events by contract address.

Each index is a sorted set named ``$`` + the joined index key fields,
holding transaction ids scored by block timestamp. Index entries do not
expire; ``prune`` removes entries older than a given timestamp.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import redis.asyncio as redis
import structlog

from .codec import KEY_SEPARATOR, format_key

logger = structlog.get_logger()

INDEX_PREFIX = "$"
TIMESTAMP_BY_BLOCK_NUMBER = "timestampByBlockNumber"


@dataclass(frozen=True)
class IndexDefinition:
    key: Sequence[str]
    member: Sequence[str] = ("transaction_id",)


FIELDS_BY_CONTRACT_ADDRESS = (
    IndexDefinition(key=("contract_address",)),
    IndexDefinition(key=("contract_address", "event_name")),
)


def index_key(contract_address: str, event_name: Optional[str] = None) -> str:
    """Name of the sorted set indexing a contract, optionally one event name."""
    key = INDEX_PREFIX + contract_address
    if event_name:
        key += KEY_SEPARATOR + event_name
    return key


class ContractIndex:
    def __init__(
        self,
        client: redis.Redis,
        definitions: Sequence[IndexDefinition] = FIELDS_BY_CONTRACT_ADDRESS
    ):
        self.redis = client
        self.definitions = definitions

    async def set_index(self, record: Mapping[str, Any]) -> None:
        """
        Add an event's transaction to every index, scored by its block
        timestamp, and record the timestamp of its block number.
        """
        score = int(record["block_timestamp"])
        async with self.redis.pipeline(transaction=False) as pipe:
            for definition in self.definitions:
                key = INDEX_PREFIX + format_key(record, definition.key)
                member = format_key(record, definition.member)
                pipe.zadd(key, {member: score})
            pipe.hset(TIMESTAMP_BY_BLOCK_NUMBER, str(record["block_number"]), score)
            await pipe.execute()

    async def get_timestamp_by_block_number(self, block_number: int) -> Optional[int]:
        timestamp = await self.redis.hget(TIMESTAMP_BY_BLOCK_NUMBER, str(block_number))
        return int(timestamp) if timestamp is not None else None

    async def get_members(self, key: str, start: int, stop: int) -> List[Tuple[str, int]]:
        """
        Members of an index between two ranks, newest first.

        Both ranks are inclusive, as in ZREVRANGE.
        """
        members = await self.redis.zrevrange(key, start, stop, withscores=True)
        return [(member, int(score)) for member, score in members]

    async def prune(
        self,
        contract_address: str,
        older_than: int,
        event_names: Iterable[str] = ()
    ) -> int:
        """
        Remove index entries with a block timestamp before ``older_than``.

        Args:
            contract_address: Contract whose indexes are pruned
            older_than: Entries scored strictly below this are removed
            event_names: Event names whose per-event indexes are pruned too

        Returns:
            Number of entries removed
        """
        keys = [index_key(contract_address)]
        keys.extend(index_key(contract_address, name) for name in event_names)

        async with self.redis.pipeline(transaction=False) as pipe:
            for key in keys:
                pipe.zremrangebyscore(key, "-inf", f"({older_than}")
            removed = sum(await pipe.execute())

        logger.info(
            "index_pruned",
            contract_address=contract_address,
            older_than=older_than,
            removed=removed
        )
        return removed
