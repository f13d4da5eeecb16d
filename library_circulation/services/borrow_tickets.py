"""Borrow ticket state machine: pending -> approved | rejected, approved -> returned"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session

from library_circulation.config import settings
from library_circulation.domain import notifications
from library_circulation.domain.exceptions import ConflictError, InvalidStateError, NotFoundError
from library_circulation.domain.models import BorrowTicketStatus, Caller
from library_circulation.infrastructure.clients.notifications import NotificationEmitter
from library_circulation.infrastructure.database.models import BorrowTicket
from library_circulation.infrastructure.database.repositories import BorrowTicketRepository
from library_circulation.infrastructure.observability.logging import log_transition
from library_circulation.infrastructure.observability.metrics import record_transition
from library_circulation.services.base import LifecycleService, ensure_owner_or_staff, ensure_staff
from library_circulation.services.inventory import InventoryLedger
from library_circulation.utils.date_utils import add_days, utcnow


class BorrowTicketService(LifecycleService):
    """Creation, approval and rejection of loan records"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationEmitter] = None,
        clock: Callable[[], datetime] = utcnow,
        loan_period_days: Optional[int] = None,
    ):
        super().__init__(db, notifier, clock)
        self.tickets = BorrowTicketRepository(db)
        self.ledger = InventoryLedger(db)
        self.loan_period_days = loan_period_days or settings.loan_period_days

    def create_ticket(self, caller: Caller, book_id: uuid.UUID, note: Optional[str] = None) -> BorrowTicket:
        """
        Request a specific book directly.

        Raises:
            NotFoundError: book does not exist
            OutOfStockError: book unavailable or no copies left
            ConflictError: caller already has a pending or approved ticket for it
        """
        with self._transaction():
            book = self.ledger.check_available(book_id)
            if self.tickets.find_active_ticket(caller.user_id, book.id) is not None:
                raise ConflictError("You already have a borrow ticket for this book")

            ticket = self.tickets.create_ticket(
                user_id=caller.user_id,
                book_id=book.id,
                borrow_date=self.clock(),
                status=BorrowTicketStatus.PENDING.value,
                note=note,
            )
            book_title = book.title

        record_transition("borrow_ticket", BorrowTicketStatus.PENDING.value)
        log_transition("borrow_ticket", str(ticket.id), None, BorrowTicketStatus.PENDING.value, caller.user_id)
        self._notify(notifications.borrow_requested(caller.user_id, str(ticket.id), book_title))
        return ticket

    def open_approved_ticket(
        self,
        user_id: str,
        book_id: uuid.UUID,
        borrow_date: datetime,
        approved_by: str,
        approved_at: datetime,
        note: Optional[str] = None,
    ) -> BorrowTicket:
        """
        Build an already-approved ticket for a copy the caller has reserved.

        Used by registration approval; runs inside the caller's transaction.
        """
        return self.tickets.create_ticket(
            user_id=user_id,
            book_id=book_id,
            borrow_date=borrow_date,
            due_date=add_days(borrow_date, self.loan_period_days),
            status=BorrowTicketStatus.APPROVED.value,
            note=note,
            approved_by=approved_by,
            approved_at=approved_at,
        )

    def approve_ticket(self, caller: Caller, ticket_id: uuid.UUID, note: Optional[str] = None) -> BorrowTicket:
        """Reserve a copy and start the loan; the loan period runs from approval"""
        ensure_staff(caller, "approve borrow tickets")
        with self._transaction():
            ticket = self._get_pending(ticket_id)
            self.ledger.reserve_one(ticket.book_id)

            now = self.clock()
            ticket.status = BorrowTicketStatus.APPROVED.value
            ticket.borrow_date = now
            ticket.due_date = add_days(now, self.loan_period_days)
            ticket.approved_by = caller.user_id
            ticket.approved_at = now
            if note is not None:
                ticket.note = note
            self.db.flush()
            borrower_id = ticket.user_id

        self._after_processing(caller, ticket, borrower_id, BorrowTicketStatus.APPROVED.value, note)
        return ticket

    def reject_ticket(self, caller: Caller, ticket_id: uuid.UUID, note: Optional[str] = None) -> BorrowTicket:
        ensure_staff(caller, "reject borrow tickets")
        with self._transaction():
            ticket = self._get_pending(ticket_id)
            ticket.status = BorrowTicketStatus.REJECTED.value
            ticket.approved_by = caller.user_id
            ticket.approved_at = self.clock()
            if note is not None:
                ticket.note = note
            self.db.flush()
            borrower_id = ticket.user_id

        self._after_processing(caller, ticket, borrower_id, BorrowTicketStatus.REJECTED.value, note)
        return ticket

    def process_ticket(
        self, caller: Caller, ticket_id: uuid.UUID, status: str, note: Optional[str] = None
    ) -> BorrowTicket:
        if status == BorrowTicketStatus.APPROVED.value:
            return self.approve_ticket(caller, ticket_id, note)
        if status == BorrowTicketStatus.REJECTED.value:
            return self.reject_ticket(caller, ticket_id, note)
        raise InvalidStateError(f"Cannot process a borrow ticket into '{status}'")

    def get_ticket(self, caller: Caller, ticket_id: uuid.UUID) -> BorrowTicket:
        ticket = self.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Borrow ticket not found")
        ensure_owner_or_staff(caller, ticket.user_id, "borrow ticket")
        return ticket

    def list_tickets(self, caller: Caller, status: Optional[str] = None) -> List[BorrowTicket]:
        """Staff see every ticket, readers only their own"""
        user_id = None if caller.is_staff else caller.user_id
        return self.tickets.list_tickets(user_id=user_id, status=status)

    def _get_pending(self, ticket_id: uuid.UUID) -> BorrowTicket:
        ticket = self.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Borrow ticket not found")
        if ticket.status != BorrowTicketStatus.PENDING.value:
            raise InvalidStateError(f"Borrow ticket was already processed (status: {ticket.status})")
        return ticket

    def _after_processing(
        self, caller: Caller, ticket: BorrowTicket, borrower_id: str, status: str, note: Optional[str]
    ) -> None:
        record_transition("borrow_ticket", status)
        log_transition("borrow_ticket", str(ticket.id), BorrowTicketStatus.PENDING.value, status, caller.user_id)
        self._notify(notifications.borrow_processed(borrower_id, str(ticket.id), status, note))
