"""
Key codec for cached Tron events.

Events are stored in Redis with their long field names replaced by one
character codes. Fields that are already part of the Redis key or subkey
are left out of the stored value and re-injected from the key on read.
"""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Sequence, Union

from ..errors import DecodeError

KEY_SEPARATOR = ":"


class FieldType(str, Enum):
    """Storage type of an event field."""
    STRING = "string"
    INTEGER = "integer"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class EventField:
    name: str
    code: str
    type: FieldType = FieldType.STRING

    def coerce(self, value: Any) -> Any:
        """
        Convert a stored value to the field's type.

        Raises:
            DecodeError: If an integer field holds something else
        """
        if value is None or self.type is not FieldType.INTEGER:
            return value
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Stored {self.name} is not an integer: {value!r}") from e

    def normalize(self, value: Any) -> Any:
        """Like ``coerce``, but a value that does not convert is kept as it is."""
        try:
            return self.coerce(value)
        except DecodeError:
            return value


EVENT_FIELDS = (
    EventField("block_number", "b", FieldType.INTEGER),
    EventField("block_timestamp", "t", FieldType.INTEGER),
    EventField("contract_address", "a"),
    EventField("event_index", "i", FieldType.INTEGER),
    EventField("event_name", "n"),
    EventField("result", "r", FieldType.OPAQUE),
    EventField("result_type", "e"),
    EventField("transaction_id", "x"),
    EventField("resource_node", "s"),
    EventField("raw_data", "w", FieldType.OPAQUE),
)

FIELDS_BY_NAME: Dict[str, EventField] = {f.name: f for f in EVENT_FIELDS}
FIELDS_BY_CODE: Dict[str, EventField] = {f.code: f for f in EVENT_FIELDS}


@dataclass(frozen=True)
class FieldSpec:
    """Ordered field names encoded in a Redis key and subkey."""
    key: Sequence[str]
    sub_key: Sequence[str] = ()


# Primary record layout: transaction_id -> {event_name:event_index -> event}
FIELDS_BY_TRANSACTION_ID = FieldSpec(
    key=("transaction_id",),
    sub_key=("event_name", "event_index"),
)


def to_compressed_keys() -> Dict[str, str]:
    return {f.name: f.code for f in EVENT_FIELDS}


def to_expanded_keys() -> Dict[str, str]:
    return {f.code: f.name for f in EVENT_FIELDS}


def compress(record: Mapping[str, Any], exclude: str = "") -> Dict[str, Any]:
    """
    Shorten the field names of an event.

    Args:
        record: Event with long field names
        exclude: Colon separated field names to leave out, usually the
            concatenation of the record's key and subkey field names

    Returns:
        Dictionary keyed by field code. Integer fields are converted when
        they hold an integer string; other values are kept as they are.
        Fields missing from the record are omitted.
    """
    excluded = set(exclude.split(KEY_SEPARATOR)) if exclude else set()
    compressed = {}
    for field in EVENT_FIELDS:
        if field.name in excluded:
            continue
        if field.name in record:
            compressed[field.code] = field.normalize(record[field.name])
    return compressed


def uncompress(
    compressed: Union[str, Mapping[str, Any]],
    fields: FieldSpec,
    key: str,
    sub_key: str = "",
) -> Dict[str, Any]:
    """
    Expand a compressed event and restore the fields held in its key.

    Args:
        compressed: Compressed event, or its JSON serialization
        fields: Field names encoded in ``key`` and ``sub_key``
        key: Redis key the event was stored under
        sub_key: Hash field the event was stored under

    Returns:
        Event with long field names

    Raises:
        DecodeError: If ``compressed`` is a string that is not valid JSON,
            or an integer field does not hold an integer
    """
    if isinstance(compressed, (str, bytes)):
        compressed = loads(compressed)

    expanded = {}
    for code, value in compressed.items():
        field = FIELDS_BY_CODE.get(code)
        if field is None:
            continue
        expanded[field.name] = field.coerce(value)

    _inject(expanded, fields.key, key)
    _inject(expanded, fields.sub_key, sub_key)
    return expanded


def _inject(expanded: Dict[str, Any], names: Sequence[str], key: str) -> None:
    if not names:
        return
    parts = key.split(KEY_SEPARATOR)
    for name, part in zip(names, parts):
        field = FIELDS_BY_NAME.get(name)
        expanded[name] = field.coerce(part) if field else part


def is_compressed(stored: Mapping[str, Any]) -> bool:
    """
    True when every key of a stored event is a field code.

    An empty value counts as compressed: it is what an event holding only
    its key fields compresses to, while an uncompressed event always
    carries its long field names.
    """
    return all(k in FIELDS_BY_CODE for k in stored)


def format_key(record: Mapping[str, Any], names: Iterable[str]) -> str:
    """Join the values of the named fields with colons."""
    return KEY_SEPARATOR.join(str(record.get(name)) for name in names)


def concat_keys(key: str, sub_key: str) -> str:
    return key + KEY_SEPARATOR + sub_key


def fingerprint(record: Mapping[str, Any]) -> str:
    """
    Short identity of an event used to track its confirmation state.

    Built from characters 2..9 of the contract address, characters 6..15
    of the transaction id, the event name and the event index. Inputs
    shorter than those slices give a shorter fingerprint.
    """
    address = str(record.get("contract_address") or "")
    transaction_id = str(record.get("transaction_id") or "")
    return KEY_SEPARATOR.join((
        address[2:10],
        transaction_id[6:16],
        str(record.get("event_name") or ""),
        str(record.get("event_index")),
    ))


def dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


def loads(data: Union[str, bytes]) -> Any:
    try:
        return json.loads(data)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"Stored event is not valid JSON: {e}") from e

