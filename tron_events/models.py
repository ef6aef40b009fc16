"""Event record model and cache outcome codes."""
from enum import Enum, IntEnum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SetResult(IntEnum):
    """Outcome of submitting an event to the cache."""
    SET_UNCONFIRMED = 1
    SET_CONFIRMED = 2
    ALREADY_SET = 3
    SET_FORCED_CONFIRMED = 4

    @property
    def is_new(self) -> bool:
        """True when the submission stored a new record."""
        return self in (SetResult.SET_UNCONFIRMED, SetResult.SET_FORCED_CONFIRMED)


class ConfirmationState(str, Enum):
    ABSENT = "absent"
    UNCONFIRMED = "unconfirmed"
    CONFIRMED = "confirmed"


class EventRecord(BaseModel):
    """A log event observed on chain, as delivered by ingress."""

    model_config = ConfigDict(extra="forbid")

    block_number: int = Field(ge=0)
    block_timestamp: int = Field(ge=0, description="Block time in seconds")
    contract_address: str = Field(min_length=1)
    event_index: int = Field(ge=0, description="Position within the transaction")
    event_name: str = Field(min_length=1, pattern=r"^[^:]+$")
    result: Any = None
    result_type: Optional[str] = None
    transaction_id: str = Field(min_length=1, pattern=r"^[^:]+$")
    resource_node: Optional[str] = None
    raw_data: Any = None

    def to_cache(self) -> Dict[str, Any]:
        """Plain dictionary form stored by the cache, without unset optionals."""
        data = self.model_dump()
        if self.raw_data is None:
            data.pop("raw_data")
        return data
