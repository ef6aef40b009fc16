"""
Paginated queries of cached events by contract address.

The contract index is walked newest first in windows of ranks. Each
transaction id found is resolved through the record store, so a window of
N index members can give more or fewer than N events; further windows are
read until the page is full or the index is exhausted.

Pages can be addressed by number, or by the fingerprint of the last event
of the previous page. With a fingerprint every event up to and including
the one matching it is skipped, which keeps pages contiguous while new
events are indexed. The page number then only says where to start looking
for the cursor; if it is not found there the index is scanned from the top.
"""
from typing import Any, Dict, List, Optional, Tuple

import structlog

from .codec import fingerprint
from .index import ContractIndex, index_key
from .records import RecordStore

logger = structlog.get_logger()


class EventQuery:
    def __init__(self, records: RecordStore, index: ContractIndex, default_page_size: int = 20):
        self.records = records
        self.index = index
        self.default_page_size = default_page_size

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
        """
        Get a page of a contract's events, newest first.

        Args:
            contract_address: Contract to query
            since_timestamp: Stop at the first event older than this block timestamp
            event_name: Only return events with this name
            size: Page size, or None for the default
            page: Page number, starting at 1
            previous_fingerprint: Fingerprint of the last event of the previous page
            only_confirmed: Skip events that are not confirmed

        Returns:
            At most ``size`` events
        """
        size = size or self.default_page_size
        page = max(page, 1)
        key = index_key(contract_address, event_name)
        resuming = previous_fingerprint is not None

        # The page number only hints where the cursor is
        start = size * (page - (2 if resuming else 1)) if page > 1 else 0
        events, cursor_found = await self._scan(
            key, start, contract_address, since_timestamp, event_name,
            size, previous_fingerprint, only_confirmed
        )
        if not cursor_found and start > 0:
            # Ranks count transactions, not events, so the cursor can sit before the hint
            logger.debug("query_cursor_rescan", contract_address=contract_address, start=start)
            events, cursor_found = await self._scan(
                key, 0, contract_address, since_timestamp, event_name,
                size, previous_fingerprint, only_confirmed
            )

        if not cursor_found:
            logger.debug(
                "query_cursor_not_found",
                contract_address=contract_address,
                previous_fingerprint=previous_fingerprint
            )
        return events

    async def _scan(
        self,
        key: str,
        start: int,
        contract_address: str,
        since_timestamp: Optional[int],
        event_name: Optional[str],
        size: int,
        previous_fingerprint: Optional[str],
        only_confirmed: bool
    ) -> Tuple[List[Dict[str, Any]], bool]:
        """Walk an index from ``start``; returns the page and whether the cursor was seen."""
        events: List[Dict[str, Any]] = []
        cursor_found = previous_fingerprint is None
        stop = start + size - 1 + (0 if cursor_found else 1)

        while True:
            members = await self.index.get_members(key, start, stop)
            if not members:
                break

            for transaction_id, block_timestamp in members:
                if since_timestamp is not None and block_timestamp < since_timestamp:
                    return events, cursor_found

                for event in await self.records.get_by_transaction_id(transaction_id, only_confirmed):
                    # A transaction can also hold events of other contracts or names
                    if event.get("contract_address") != contract_address:
                        continue
                    if event_name and event.get("event_name") != event_name:
                        continue
                    if not cursor_found:
                        if fingerprint(event) == previous_fingerprint:
                            cursor_found = True
                        continue
                    events.append(event)
                    if len(events) >= size:
                        return events, cursor_found

            start = stop + 1
            stop = start + max(size - len(events), 1) - 1

        return events, cursor_found
