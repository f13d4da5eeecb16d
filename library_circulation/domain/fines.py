"""Fine calculation for returned books - lateness and condition penalties"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Union

from library_circulation.domain.models import Fine, FinePolicy, ReturnCondition
from library_circulation.utils.date_utils import calendar_days_between

REASON_SEPARATOR = " và "
DAMAGED_REASON = "Sách bị hư hỏng"
LOST_REASON = "Sách bị mất"


def late_reason(days_late: int) -> str:
    return f"Trả sách trễ {days_late} ngày"


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def days_late(due_date: Union[date, datetime], returned_at: Union[date, datetime]) -> int:
    """Calendar days past the due date; 0 when returned on or before it"""
    return max(0, calendar_days_between(due_date, returned_at))


def lateness_fee(days: int, policy: FinePolicy = FinePolicy()) -> int:
    return days * policy.late_fee_per_day


def condition_fee(condition: ReturnCondition, rental_price: int, policy: FinePolicy = FinePolicy()) -> int:
    """
    Penalty for the physical state of the returned book.

    good -> 0, damaged -> 50% of rental price, lost -> 200% of rental price,
    rounded half-up to the smallest currency unit.
    """
    condition = ReturnCondition(condition)
    if condition == ReturnCondition.DAMAGED:
        ratio = policy.damaged_ratio
    elif condition == ReturnCondition.LOST:
        ratio = policy.lost_ratio
    else:
        return 0
    return _round_half_up(Decimal(rental_price) * Decimal(str(ratio)))


def compute_fine(
    condition: ReturnCondition,
    rental_price: int,
    due_date: Union[date, datetime, None],
    returned_at: Union[date, datetime],
    policy: FinePolicy = FinePolicy(),
) -> Fine:
    """
    Compute the fine for closing a borrow ticket.

    Both dates are truncated to calendar days before comparison, so a book
    returned any time on its due day costs nothing for lateness and one day
    later costs one daily fee.

    Args:
        condition: Condition recorded at return
        rental_price: Book rental price in the smallest currency unit
        due_date: Ticket due date (no lateness component when unset)
        returned_at: Moment of return
        policy: Fee rates

    Returns:
        Unpaid Fine whose reason lists the non-zero components joined by " và "

    Example:
        due 2024-01-10, returned 2024-01-13, damaged, price 100000
        -> 30000 + 50000 = 80000, "Trả sách trễ 3 ngày và Sách bị hư hỏng"
    """
    condition = ReturnCondition(condition)
    reasons: List[str] = []
    amount = 0

    late = days_late(due_date, returned_at) if due_date is not None else 0
    if late > 0:
        amount += lateness_fee(late, policy)
        reasons.append(late_reason(late))

    penalty = condition_fee(condition, rental_price, policy)
    if penalty > 0:
        amount += penalty
        reasons.append(DAMAGED_REASON if condition == ReturnCondition.DAMAGED else LOST_REASON)

    return Fine(amount=amount, reason=REASON_SEPARATOR.join(reasons), paid=False)
