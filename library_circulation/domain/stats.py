"""Return ticket statistics for the staff dashboard"""

from typing import Iterable

from library_circulation.domain.models import ReturnRecord, ReturnStats


def summarize_returns(records: Iterable[ReturnRecord]) -> ReturnStats:
    """
    Aggregate return tickets into dashboard figures.

    Revenue is rental income plus fines already paid; unpaid fines are
    reported separately and not counted as revenue.
    """
    stats = ReturnStats()
    for record in records:
        stats.total_returns += 1
        stats.total_rental_income += record.rental_price
        stats.returns_by_condition[record.condition] = stats.returns_by_condition.get(record.condition, 0) + 1

        if record.fine_amount > 0:
            stats.total_fines += record.fine_amount
            if record.fine_paid:
                stats.total_paid_fines += record.fine_amount
            else:
                stats.total_unpaid_fines += record.fine_amount
            reason = record.fine_reason or "Khác"
            stats.fines_by_reason[reason] = stats.fines_by_reason.get(reason, 0) + record.fine_amount

    stats.total_revenue = stats.total_rental_income + stats.total_paid_fines
    return stats
