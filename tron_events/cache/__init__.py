"""
Tron events caching module.

Redis backed cache of blockchain log events. Events are deduplicated by
fingerprint, promoted from unconfirmed to confirmed when seen again,
stored by transaction id and indexed by contract address, and expire
after a configurable TTL.
"""

from .codec import (
    EVENT_FIELDS,
    FIELDS_BY_TRANSACTION_ID,
    FieldSpec,
    FieldType,
    compress,
    concat_keys,
    fingerprint,
    format_key,
    to_compressed_keys,
    to_expanded_keys,
    uncompress
)
from .confirmation import ConfirmationStore
from .event_cache import EventCache
from .index import ContractIndex, IndexDefinition, index_key
from .query import EventQuery
from .records import RecordStore
from .redis_manager import RedisManager

__all__ = [
    'EVENT_FIELDS',
    'FIELDS_BY_TRANSACTION_ID',
    'FieldSpec',
    'FieldType',
    'compress',
    'concat_keys',
    'fingerprint',
    'format_key',
    'to_compressed_keys',
    'to_expanded_keys',
    'uncompress',
    'ConfirmationStore',
    'EventCache',
    'ContractIndex',
    'IndexDefinition',
    'index_key',
    'EventQuery',
    'RecordStore',
    'RedisManager'
]
