"""Domain models - pure Python dataclasses and enums for the circulation lifecycle"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict


class Role(IntEnum):
    """Caller role as resolved by the upstream identity provider"""

    READER = 0
    STAFF = 1
    ADMIN = 2


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"  # Reserved: no transition leads here


class BorrowTicketStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


class ReturnCondition(str, Enum):
    GOOD = "good"
    DAMAGED = "damaged"
    LOST = "lost"


class NotificationType(str, Enum):
    BORROW_REQUEST = "borrow_request"
    RETURN_REMINDER = "return_reminder"
    RETURN_TICKET = "return_ticket"
    FINE_PAYMENT = "fine_payment"
    SYSTEM = "system"
    OTHER = "other"


@dataclass(frozen=True)
class Caller:
    """Resolved (user_id, role) pair for the current operation"""

    user_id: str
    role: Role = Role.READER

    @property
    def is_staff(self) -> bool:
        return self.role >= Role.STAFF


@dataclass
class Fine:
    """Monetary penalty attached to a return ticket"""

    amount: int = 0
    reason: str = ""
    paid: bool = False


@dataclass(frozen=True)
class FinePolicy:
    """Rates used by the fine calculator"""

    late_fee_per_day: int = 10_000
    damaged_ratio: float = 0.5
    lost_ratio: float = 2.0

    @classmethod
    def from_settings(cls, settings) -> "FinePolicy":
        return cls(
            late_fee_per_day=settings.late_fee_per_day,
            damaged_ratio=settings.damaged_fine_ratio,
            lost_ratio=settings.lost_fine_ratio,
        )


@dataclass
class NotificationEvent:
    """Notification content handed to the emitter; delivery happens elsewhere"""

    user_id: str
    title: str
    message: str
    type: NotificationType
    related_model: str
    related_id: str
    audience: str = "user"  # "user" or "staff"
    is_read: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "user": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "relatedTo": {"model": self.related_model, "id": self.related_id},
            "audience": self.audience,
            "isRead": self.is_read,
        }


@dataclass
class ReturnRecord:
    """Flattened view of a return ticket used for aggregation"""

    condition: str
    rental_price: int
    fine_amount: int
    fine_reason: str
    fine_paid: bool


@dataclass
class ReturnStats:
    """Aggregated figures over a set of return tickets"""

    total_returns: int = 0
    total_rental_income: int = 0
    total_fines: int = 0
    total_paid_fines: int = 0
    total_unpaid_fines: int = 0
    total_revenue: int = 0
    returns_by_condition: Dict[str, int] = field(
        default_factory=lambda: {c.value: 0 for c in ReturnCondition}
    )
    fines_by_reason: Dict[str, int] = field(default_factory=dict)
