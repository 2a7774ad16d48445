"""
Data models for order lifecycle processing.

TransactionChange is the record produced by the POS snapshot poller for a
single observed order; OrderEvent is the typed lifecycle transition derived
from it and consumed by the dispatcher.
"""

from enum import Enum
from typing import Optional, Dict, Any, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone


# Transaction status code for declined/cancelled orders
DECLINED_STATUS = 4


class EventType(str, Enum):
    """Order lifecycle event types."""
    CREATED = "order:created"
    ACCEPTED = "order:accepted"
    READY = "order:ready"
    DELIVERED = "order:delivered"
    CLOSED = "order:closed"
    DECLINED = "order:declined"


class TransactionAction(str, Enum):
    """Whether a transaction was seen for the first time or updated."""
    CREATED = "created"
    UPDATED = "updated"


class ProcessingStatus(int, Enum):
    """POS fulfillment stage codes."""
    CREATED = 10
    ACCEPTED = 20
    READY = 30
    EN_ROUTE = 40
    DELIVERED = 50
    CLOSED = 60


class ServiceMode(str, Enum):
    """Order service mode."""
    DINE_IN = "dine_in"
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"
    UNKNOWN = "unknown"

    @classmethod
    def from_code(cls, code: Optional[int]) -> 'ServiceMode':
        """Map a POS service mode code to a ServiceMode."""
        return _SERVICE_MODE_CODES.get(code, cls.UNKNOWN)


_SERVICE_MODE_CODES = {
    1: ServiceMode.DINE_IN,
    2: ServiceMode.TAKEAWAY,
    3: ServiceMode.DELIVERY,
}


def parse_poster_date(value: str) -> datetime:
    """
    Parse a POS "Y-m-d H:i:s" timestamp as UTC.

    Args:
        value: Date string such as "2024-05-01 13:45:00"

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If the string is not a valid POS timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Invalid date format: {value!r}")

    try:
        parsed = datetime.strptime(value.strip(), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        raise ValueError(f"Invalid date format: {value}")

    return parsed.replace(tzinfo=timezone.utc)


# camelCase keys emitted by the poller -> dataclass field names
_CHANGE_FIELD_ALIASES = {
    'transactionId': 'transaction_id',
    'oldStatus': 'old_status',
    'processingStatus': 'processing_status',
    'oldProcessingStatus': 'old_processing_status',
    'isAccepted': 'is_accepted',
    'oldIsAccepted': 'old_is_accepted',
    'customerId': 'customer_id',
    'serviceMode': 'service_mode',
    'dateStart': 'date_start',
    'dateClose': 'date_close',
    'oldDateClose': 'old_date_close',
    'incomeAmount': 'income_amount',
    'payedSum': 'payed_sum',
}


@dataclass(frozen=True)
class TransactionChange:
    """One observed order, comparing the previous poll to the current one."""
    transaction_id: int
    action: TransactionAction
    date_start: str = ""
    status: Optional[int] = None
    old_status: Optional[int] = None
    processing_status: Optional[int] = None
    old_processing_status: Optional[int] = None
    is_accepted: Optional[bool] = None
    old_is_accepted: Optional[bool] = None
    customer_id: Optional[int] = None
    service_mode: Optional[int] = None
    date_close: Optional[str] = None
    old_date_close: Optional[str] = None
    income_amount: int = 0
    payed_sum: int = 0

    def __post_init__(self):
        # Accept plain strings for action
        if not isinstance(self.action, TransactionAction):
            object.__setattr__(self, 'action', TransactionAction(self.action))

    @property
    def is_first_observation(self) -> bool:
        """Check if this is the first poll that saw the transaction."""
        return self.action == TransactionAction.CREATED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'TransactionChange':
        """
        Build a change from a poller or webhook payload.

        Both camelCase and snake_case keys are accepted; unknown keys are ignored.
        """
        known = set(cls.__dataclass_fields__)
        kwargs: Dict[str, Any] = {}

        for key, value in data.items():
            name = _CHANGE_FIELD_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value

        return cls(**kwargs)


@dataclass(frozen=True)
class OrderEvent:
    """A single lifecycle transition inferred for a transaction."""
    transaction_id: int
    event_type: EventType
    customer_id: Optional[int] = None
    service_mode: Optional[int] = None
    income_amount: Optional[int] = None
    payed_sum: Optional[int] = None
    order_date: Optional[datetime] = None

    @property
    def service_mode_name(self) -> str:
        """Human-readable service mode."""
        return ServiceMode.from_code(self.service_mode).value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging and serialization."""
        return {
            'transaction_id': self.transaction_id,
            'event_type': self.event_type.value,
            'customer_id': self.customer_id,
            'service_mode': self.service_mode_name,
            'income_amount': self.income_amount,
            'payed_sum': self.payed_sum,
            'order_date': self.order_date.isoformat() if self.order_date else None,
        }
