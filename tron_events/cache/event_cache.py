"""
Write-through cache of Tron log events.

``EventCache`` owns one Redis connection and composes the confirmation
store, the record store, the contract index and the query engine. Build
one per process from ``Settings`` and pass it to ingestion and query
code.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional

import redis.asyncio as redis
import structlog

from ..config import Settings
from ..models import ConfirmationState, SetResult
from ..monitoring import NullWriteObserver, PrometheusWriteObserver, WriteObserver
from .confirmation import ConfirmationStore
from .index import ContractIndex
from .query import EventQuery
from .records import RecordStore
from .redis_manager import RedisManager

logger = structlog.get_logger()


class EventCache:
    """Caches, confirms and indexes events, and answers queries over them."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[redis.Redis] = None,
        observer: Optional[WriteObserver] = None
    ):
        """
        Initialize the cache.

        Args:
            settings: Process settings
            client: Redis client to use instead of connecting to ``settings.REDIS_URL``
            observer: Receives every record write, defaults to a no-op
        """
        self.settings = settings
        self.manager = RedisManager(settings.REDIS_URL, client=client)
        self.observer = observer or self._default_observer(settings)
        self.confirmations: Optional[ConfirmationStore] = None
        self.records: Optional[RecordStore] = None
        self.index: Optional[ContractIndex] = None
        self.query: Optional[EventQuery] = None

    @staticmethod
    def _default_observer(settings: Settings) -> WriteObserver:
        if settings.METRICS_ENABLED:
            return PrometheusWriteObserver()
        return NullWriteObserver()

    async def connect(self) -> "EventCache":
        """
        Connect to Redis and build the stores.

        Raises:
            BackingStoreUnavailable: If Redis cannot be reached
        """
        client = await self.manager.connect()
        self.confirmations = ConfirmationStore(client)
        self.records = RecordStore(
            client,
            self.confirmations,
            default_ttl=self.settings.CACHE_TTL,
            observer=self.observer
        )
        self.index = ContractIndex(client)
        self.query = EventQuery(self.records, self.index, self.settings.DEFAULT_PAGE_SIZE)
        return self

    async def close(self) -> None:
        await self.manager.disconnect()

    async def __aenter__(self) -> "EventCache":
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _require_connection(self) -> None:
        if self.records is None:
            raise RuntimeError("EventCache must be connected before use")

    async def set_event(
        self,
        record: Mapping[str, Any],
        compressed: bool = False,
        force_confirmed: bool = False,
        ttl: Optional[int] = None
    ) -> SetResult:
        """
        Accept an event: store or confirm it, and index it when it is new.

        Args:
            record: Event with long field names
            compressed: Store the event with shortened field names
            force_confirmed: Store the event as confirmed
            ttl: Seconds to keep the event, or None for the default

        Returns:
            The outcome of the submission
        """
        self._require_connection()
        result = await self.records.set_by_transaction_id(record, compressed, force_confirmed, ttl)
        if result.is_new:
            await self.index.set_index(record)
        return result

    async def set_events(
        self,
        records: Iterable[Mapping[str, Any]],
        compressed: bool = False,
        force_confirmed: bool = False,
        ttl: Optional[int] = None
    ) -> List[SetResult]:
        """Accept many events concurrently; outcomes are in input order."""
        return list(await asyncio.gather(*(
            self.set_event(record, compressed, force_confirmed, ttl)
            for record in records
        )))

    async def set_by_transaction_id(
        self,
        record: Mapping[str, Any],
        compressed: bool = False,
        force_confirmed: bool = False,
        ttl: Optional[int] = None
    ) -> SetResult:
        self._require_connection()
        return await self.records.set_by_transaction_id(record, compressed, force_confirmed, ttl)

    async def set_index(self, record: Mapping[str, Any]) -> None:
        self._require_connection()
        await self.index.set_index(record)

    async def get_status(self, fingerprint: str) -> ConfirmationState:
        self._require_connection()
        return await self.confirmations.get_status(fingerprint)

    async def get_by_transaction_id(self, transaction_id: str, only_confirmed: bool = False) -> List[Dict[str, Any]]:
        self._require_connection()
        return await self.records.get_by_transaction_id(transaction_id, only_confirmed)

    async def get_by_contract_address(
        self,
        contract_address: str,
        since_timestamp: Optional[int] = None,
        event_name: Optional[str] = None,
        size: Optional[int] = None,
        page: int = 1,
        previous_fingerprint: Optional[str] = None,
        only_confirmed: bool = False
    ) -> List[Dict[str, Any]]:
        self._require_connection()
        return await self.query.get_by_contract_address(
            contract_address,
            since_timestamp=since_timestamp,
            event_name=event_name,
            size=size,
            page=page,
            previous_fingerprint=previous_fingerprint,
            only_confirmed=only_confirmed
        )

    async def get_timestamp_by_block_number(self, block_number: int) -> Optional[int]:
        self._require_connection()
        return await self.index.get_timestamp_by_block_number(block_number)

    async def prune_indexes(
        self,
        contract_address: str,
        older_than: int,
        event_names: Iterable[str] = ()
    ) -> int:
        self._require_connection()
        return await self.index.prune(contract_address, older_than, event_names)
