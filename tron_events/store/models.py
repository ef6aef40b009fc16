from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class EventLog(Base):
    __tablename__ = 'events_log'
    __table_args__ = (
        UniqueConstraint('transaction_id', 'event_name', 'event_index', name='uq_events_log_event'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    block_number = Column(BigInteger, nullable=False, index=True)
    block_timestamp = Column(BigInteger, nullable=False)
    contract_address = Column(String(64), nullable=False, index=True)
    event_index = Column(Integer, nullable=False)
    event_name = Column(String(128), nullable=False)
    result = Column(JSON)
    result_type = Column(Text)
    transaction_id = Column(String(128), nullable=False)
    resource_node = Column(String(64))
    raw_data = Column(JSON)
    fingerprint = Column(String(256), nullable=False)
    confirmed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
