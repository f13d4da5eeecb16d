"""Registration state machine: pending -> approved | rejected | cancelled"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional
from sqlalchemy.orm import Session

from library_circulation.domain import notifications
from library_circulation.domain.exceptions import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from library_circulation.domain.models import Caller, RegistrationStatus
from library_circulation.infrastructure.clients.notifications import NotificationEmitter
from library_circulation.infrastructure.database.models import Registration
from library_circulation.infrastructure.database.repositories import RegistrationRepository
from library_circulation.infrastructure.observability.logging import log_transition
from library_circulation.infrastructure.observability.metrics import record_transition
from library_circulation.services.base import LifecycleService, ensure_owner_or_staff, ensure_staff
from library_circulation.services.borrow_tickets import BorrowTicketService
from library_circulation.services.inventory import InventoryLedger
from library_circulation.utils.date_utils import utcnow

DEFAULT_CANCEL_NOTE = "Người dùng tự hủy đăng ký"


class RegistrationService(LifecycleService):
    """Borrow requests queued for staff review"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationEmitter] = None,
        clock: Callable[[], datetime] = utcnow,
        loan_period_days: Optional[int] = None,
    ):
        super().__init__(db, notifier, clock)
        self.registrations = RegistrationRepository(db)
        self.ledger = InventoryLedger(db)
        self.borrow_tickets = BorrowTicketService(db, self.notifier, clock, loan_period_days)

    def create_registration(
        self,
        caller: Caller,
        book_id: uuid.UUID,
        desired_borrow_date: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Registration:
        """
        Queue a request for a book.

        Stock is not checked here; a request may be queued while no copy is
        on the shelf and is only checked against inventory at approval.
        """
        with self._transaction():
            book = self.ledger.get_book(book_id)
            now = self.clock()
            registration = self.registrations.create_registration(
                user_id=caller.user_id,
                book_id=book.id,
                request_date=now,
                desired_borrow_date=desired_borrow_date or now,
                note=note,
            )
            book_title = book.title

        record_transition("registration", RegistrationStatus.PENDING.value)
        log_transition("registration", str(registration.id), None, RegistrationStatus.PENDING.value, caller.user_id)
        self._notify(notifications.registration_requested(caller.user_id, str(registration.id), book_title))
        return registration

    def approve_registration(
        self, caller: Caller, registration_id: uuid.UUID, note: Optional[str] = None
    ) -> Registration:
        """
        Reserve a copy and open an approved borrow ticket for the requester.

        The ticket starts on the desired borrow date and is due one loan
        period later. When no copy can be reserved the registration stays
        pending and OutOfStockError is raised.
        """
        ensure_staff(caller, "approve registrations")
        with self._transaction():
            registration = self._get_pending(registration_id)
            self.ledger.reserve_one(registration.book_id)

            now = self.clock()
            ticket = self.borrow_tickets.open_approved_ticket(
                user_id=registration.user_id,
                book_id=registration.book_id,
                borrow_date=registration.desired_borrow_date,
                approved_by=caller.user_id,
                approved_at=now,
                note=note,
            )
            registration.borrow_ticket_id = ticket.id
            self._close(registration, RegistrationStatus.APPROVED, caller.user_id, now, note)
            requester_id, book_title = registration.user_id, registration.book.title

        record_transition("borrow_ticket", ticket.status)
        log_transition("borrow_ticket", str(ticket.id), None, ticket.status, caller.user_id, registration_id=str(registration.id))
        self._after_processing(caller, registration, requester_id, book_title, RegistrationStatus.APPROVED, note)
        return registration

    def reject_registration(
        self, caller: Caller, registration_id: uuid.UUID, note: Optional[str] = None
    ) -> Registration:
        ensure_staff(caller, "reject registrations")
        with self._transaction():
            registration = self._get_pending(registration_id)
            self._close(registration, RegistrationStatus.REJECTED, caller.user_id, self.clock(), note)
            requester_id, book_title = registration.user_id, registration.book.title

        self._after_processing(caller, registration, requester_id, book_title, RegistrationStatus.REJECTED, note)
        return registration

    def cancel_registration(
        self, caller: Caller, registration_id: uuid.UUID, note: Optional[str] = None
    ) -> Registration:
        """Withdraw one's own pending request; staff are not notified"""
        with self._transaction():
            registration = self.registrations.get_registration(registration_id)
            if registration is None:
                raise NotFoundError("Registration not found")
            if registration.user_id != caller.user_id:
                raise PermissionDeniedError("Only the requester can cancel a registration")
            if registration.status != RegistrationStatus.PENDING.value:
                raise InvalidStateError(f"Registration can no longer be cancelled (status: {registration.status})")

            registration.status = RegistrationStatus.CANCELLED.value
            registration.note = note or DEFAULT_CANCEL_NOTE
            self.db.flush()

        record_transition("registration", RegistrationStatus.CANCELLED.value)
        log_transition(
            "registration",
            str(registration.id),
            RegistrationStatus.PENDING.value,
            RegistrationStatus.CANCELLED.value,
            caller.user_id,
        )
        return registration

    def process_registration(
        self, caller: Caller, registration_id: uuid.UUID, status: str, note: Optional[str] = None
    ) -> Registration:
        if status == RegistrationStatus.APPROVED.value:
            return self.approve_registration(caller, registration_id, note)
        if status == RegistrationStatus.REJECTED.value:
            return self.reject_registration(caller, registration_id, note)
        raise InvalidStateError(f"Cannot process a registration into '{status}'")

    def get_registration(self, caller: Caller, registration_id: uuid.UUID) -> Registration:
        registration = self.registrations.get_registration(registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        ensure_owner_or_staff(caller, registration.user_id, "registration")
        return registration

    def list_registrations(self, caller: Caller, status: Optional[str] = None) -> List[Registration]:
        user_id = None if caller.is_staff else caller.user_id
        return self.registrations.list_registrations(user_id=user_id, status=status)

    def _get_pending(self, registration_id: uuid.UUID) -> Registration:
        registration = self.registrations.get_registration(registration_id)
        if registration is None:
            raise NotFoundError("Registration not found")
        if registration.status != RegistrationStatus.PENDING.value:
            raise InvalidStateError(f"Registration was already processed (status: {registration.status})")
        return registration

    def _close(
        self,
        registration: Registration,
        status: RegistrationStatus,
        processed_by: str,
        processed_at: datetime,
        note: Optional[str],
    ) -> None:
        registration.status = status.value
        registration.processed_by = processed_by
        registration.processed_at = processed_at
        if note is not None:
            registration.note = note
        self.db.flush()

    def _after_processing(
        self,
        caller: Caller,
        registration: Registration,
        requester_id: str,
        book_title: str,
        status: RegistrationStatus,
        note: Optional[str],
    ) -> None:
        record_transition("registration", status.value)
        log_transition("registration", str(registration.id), RegistrationStatus.PENDING.value, status.value, caller.user_id)
        self._notify(
            notifications.registration_processed(requester_id, str(registration.id), book_title, status.value, note)
        )
