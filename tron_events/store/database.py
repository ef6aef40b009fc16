"""
Durable events log.

Every event the cache accepts is written to the ``events_log`` table,
keyed by (transaction_id, event_name, event_index). Confirmations found
by the cache promote the stored row.
"""
import asyncio
from typing import Any, Dict, Mapping, Optional

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..cache.codec import fingerprint
from ..config import log_error
from ..models import SetResult
from .models import Base, EventLog

logger = structlog.get_logger()

EVENT_COLUMNS = (
    'block_number',
    'block_timestamp',
    'contract_address',
    'event_index',
    'event_name',
    'result',
    'result_type',
    'transaction_id',
    'resource_node',
    'raw_data',
)


def is_duplicate_key(error: IntegrityError) -> bool:
    """True when an integrity error comes from a unique constraint."""
    message = str(error.orig).lower()
    return "duplicate key" in message or "unique constraint" in message


class EventLogWriter:
    """Writes cache outcomes to the events log."""

    def __init__(self, db_url: Optional[str] = None, engine: Optional[Engine] = None):
        """Initialize the writer.

        Args:
            db_url: SQLAlchemy database URL.
            engine: Engine to use instead of creating one from ``db_url``.
        """
        if engine is None:
            if db_url is None:
                raise ValueError("Either db_url or engine must be provided")
            # Writes run in worker threads
            connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
            engine = create_engine(db_url, pool_pre_ping=True, connect_args=connect_args)
        self.engine = engine
        self.Session = sessionmaker(bind=self.engine)

    def create_schema(self) -> None:
        """Create the events log table if it does not exist."""
        Base.metadata.create_all(self.engine)
        logger.info("events_log_schema_ready", url=self.engine.url.render_as_string(hide_password=True))

    def get_session(self) -> Session:
        return self.Session()

    async def write(self, record: Mapping[str, Any], outcome: SetResult) -> bool:
        """Write a cache outcome without blocking the event loop.

        Args:
            record: Event accepted by the cache.
            outcome: What the cache did with it.

        Returns:
            False when the outcome needs no write, True otherwise.

        Raises:
            SQLAlchemyError: On any failure other than a duplicate key.
        """
        return await asyncio.to_thread(self.write_sync, record, outcome)

    def write_sync(self, record: Mapping[str, Any], outcome: SetResult) -> bool:
        if outcome is SetResult.ALREADY_SET:
            return False

        values = self._row_values(record)
        try:
            with self.Session() as session:
                if outcome is SetResult.SET_CONFIRMED:
                    updated = session.query(EventLog).filter_by(
                        transaction_id=values['transaction_id'],
                        event_name=values['event_name'],
                        event_index=values['event_index']
                    ).update({'confirmed': True})
                    if not updated:
                        session.add(EventLog(**values, confirmed=True))
                else:
                    session.add(EventLog(
                        **values,
                        confirmed=outcome is SetResult.SET_FORCED_CONFIRMED
                    ))
                session.commit()
        except IntegrityError as e:
            if not is_duplicate_key(e):
                log_error(logger, e, {"fingerprint": values['fingerprint']}, event="event_log_integrity_error")
                raise
            # Another writer inserted the same event first
            logger.info(
                "event_log_duplicate_key",
                fingerprint=values['fingerprint'],
                outcome=outcome.name
            )
        except SQLAlchemyError as e:
            log_error(
                logger,
                e,
                {"fingerprint": values['fingerprint'], "outcome": outcome.name},
                event="event_log_write_failed"
            )
            raise
        return True

    def get_event(self, transaction_id: str, event_name: str, event_index: int) -> Optional[Dict[str, Any]]:
        """Get one logged event as a dictionary, or None if it was never written."""
        with self.Session() as session:
            row = session.query(EventLog).filter_by(
                transaction_id=transaction_id,
                event_name=event_name,
                event_index=event_index
            ).first()
            if row is None:
                return None
            data = {name: getattr(row, name) for name in EVENT_COLUMNS}
            data['fingerprint'] = row.fingerprint
            data['confirmed'] = row.confirmed
            return data

    @staticmethod
    def _row_values(record: Mapping[str, Any]) -> Dict[str, Any]:
        values = {name: record.get(name) for name in EVENT_COLUMNS}
        values['fingerprint'] = fingerprint(record)
        return values
