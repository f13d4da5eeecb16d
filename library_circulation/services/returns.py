"""Return & fine engine: closes approved borrow tickets and tracks fine payment"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from library_circulation.config import settings
from library_circulation.domain import notifications
from library_circulation.domain.exceptions import (
    AlreadyReturnedError,
    FineAlreadyPaidError,
    InvalidStateError,
    NoFineError,
    NotFoundError,
)
from library_circulation.domain.fines import compute_fine
from library_circulation.domain.models import (
    BorrowTicketStatus,
    Caller,
    FinePolicy,
    ReturnCondition,
    ReturnRecord,
    ReturnStats,
)
from library_circulation.domain.stats import summarize_returns
from library_circulation.infrastructure.clients.notifications import NotificationEmitter
from library_circulation.infrastructure.database.models import ReturnTicket
from library_circulation.infrastructure.database.repositories import BorrowTicketRepository, ReturnTicketRepository
from library_circulation.infrastructure.observability.logging import log_transition
from library_circulation.infrastructure.observability.metrics import fine_payment_counter, record_fine, record_transition
from library_circulation.services.base import LifecycleService, ensure_owner_or_staff, ensure_staff
from library_circulation.services.inventory import InventoryLedger
from library_circulation.utils.date_utils import period_start, utcnow


class ReturnService(LifecycleService):
    """Return tickets, fine assessment and fine payment"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationEmitter] = None,
        clock: Callable[[], datetime] = utcnow,
        policy: Optional[FinePolicy] = None,
    ):
        super().__init__(db, notifier, clock)
        self.borrow_tickets = BorrowTicketRepository(db)
        self.returns = ReturnTicketRepository(db)
        self.ledger = InventoryLedger(db)
        self.policy = policy or FinePolicy.from_settings(settings)

    def create_return(
        self,
        caller: Caller,
        borrow_ticket_id: uuid.UUID,
        condition: ReturnCondition = ReturnCondition.GOOD,
        note: Optional[str] = None,
    ) -> ReturnTicket:
        """
        Close an approved borrow ticket.

        In one transaction: persist the return ticket with its fine, mark the
        borrow ticket returned, and put the copy back on the shelf unless it
        was lost. The borrower is notified after commit.

        Raises:
            NotFoundError: borrow ticket does not exist
            AlreadyReturnedError: ticket already has a return ticket
            InvalidStateError: ticket is not approved
        """
        ensure_staff(caller, "create return tickets")
        condition = ReturnCondition(condition)

        with self._transaction():
            ticket = self.borrow_tickets.get_ticket(borrow_ticket_id)
            if ticket is None:
                raise NotFoundError("Borrow ticket not found")
            if ticket.status == BorrowTicketStatus.RETURNED.value or self.returns.get_by_borrow_ticket(ticket.id):
                raise AlreadyReturnedError("Borrow ticket has already been returned")
            if ticket.status != BorrowTicketStatus.APPROVED.value:
                raise InvalidStateError(f"Borrow ticket cannot be returned (status: {ticket.status})")

            book = ticket.book
            now = self.clock()
            fine = compute_fine(condition, book.rental_price, ticket.due_date, now, self.policy)

            try:
                return_ticket = self.returns.create_return_ticket(
                    borrow_ticket_id=ticket.id,
                    return_date=now,
                    condition=condition.value,
                    fine_amount=fine.amount,
                    fine_reason=fine.reason,
                    processed_by=caller.user_id,
                    note=note,
                )
            except IntegrityError as e:
                raise AlreadyReturnedError("Borrow ticket has already been returned") from e

            ticket.status = BorrowTicketStatus.RETURNED.value
            ticket.return_date = now
            self.db.flush()

            if condition != ReturnCondition.LOST:
                self.ledger.release_one(ticket.book_id)

            borrower_id, book_title = ticket.user_id, book.title

        record_transition("borrow_ticket", BorrowTicketStatus.RETURNED.value)
        record_fine(condition.value, fine.amount)
        log_transition(
            "borrow_ticket",
            str(borrow_ticket_id),
            BorrowTicketStatus.APPROVED.value,
            BorrowTicketStatus.RETURNED.value,
            caller.user_id,
            return_ticket_id=str(return_ticket.id),
            condition=condition.value,
            fine_amount=fine.amount,
        )
        self._notify(notifications.return_processed(borrower_id, str(return_ticket.id), book_title, fine))
        return return_ticket

    def mark_fine_paid(self, caller: Caller, return_ticket_id: uuid.UUID) -> ReturnTicket:
        """Flip fine_paid to true; there is no way back"""
        ensure_staff(caller, "record fine payments")
        with self._transaction():
            return_ticket = self.returns.get_return_ticket(return_ticket_id)
            if return_ticket is None:
                raise NotFoundError("Return ticket not found")
            if return_ticket.fine_amount <= 0:
                raise NoFineError("Return ticket has no fine")
            if return_ticket.fine_paid:
                raise FineAlreadyPaidError("Fine has already been paid")

            return_ticket.fine_paid = True
            self.db.flush()
            borrow_ticket = return_ticket.borrow_ticket
            borrower_id, book_title, amount = borrow_ticket.user_id, borrow_ticket.book.title, return_ticket.fine_amount

        fine_payment_counter.inc()
        log_transition("return_ticket", str(return_ticket_id), "unpaid", "paid", caller.user_id, fine_amount=amount)
        self._notify(notifications.fine_paid(borrower_id, str(return_ticket_id), book_title, amount))
        return return_ticket

    def get_return_ticket(self, caller: Caller, return_ticket_id: uuid.UUID) -> ReturnTicket:
        return_ticket = self.returns.get_return_ticket(return_ticket_id)
        if return_ticket is None:
            raise NotFoundError("Return ticket not found")
        ensure_owner_or_staff(caller, return_ticket.borrow_ticket.user_id, "return ticket")
        return return_ticket

    def list_return_tickets(self, caller: Caller, condition: Optional[str] = None) -> List[ReturnTicket]:
        ensure_staff(caller, "list return tickets")
        return self.returns.list_return_tickets(condition=condition)

    def summarize(self, caller: Caller, period: str = "all") -> ReturnStats:
        """Dashboard figures over returns in the period (today, week, month, all)"""
        ensure_staff(caller, "view return statistics")
        since = period_start(period, self.clock())
        records = [
            ReturnRecord(
                condition=rt.condition,
                rental_price=rt.borrow_ticket.book.rental_price,
                fine_amount=rt.fine_amount,
                fine_reason=rt.fine_reason,
                fine_paid=rt.fine_paid,
            )
            for rt in self.returns.list_return_tickets(since=since)
        ]
        return summarize_returns(records)
