"""Data access layer for books and circulation records"""

import uuid
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session
from library_circulation.infrastructure.database.models import Book, BorrowTicket, Registration, ReturnTicket


class BookRepository:
    """Repository for catalog books; quantity writes are conditional updates"""

    def __init__(self, db: Session):
        self.db = db

    def create_book(
        self,
        title: str,
        author: str,
        rental_price: int,
        quantity: int = 0,
        available: bool = True,
    ) -> Book:
        """Insert a catalog entry (catalog management and seeding)"""
        db_book = Book(
            title=title,
            author=author,
            rental_price=rental_price,
            quantity=quantity,
            available=available,
        )
        self.db.add(db_book)
        self.db.flush()
        return db_book

    def get_book(self, book_id: uuid.UUID) -> Optional[Book]:
        return self.db.get(Book, book_id)

    def decrement_if_available(self, book_id: uuid.UUID) -> bool:
        """Take one copy only if the book is available and in stock"""
        updated = (
            self.db.query(Book)
            .filter(Book.id == book_id, Book.available.is_(True), Book.quantity > 0)
            .update({Book.quantity: Book.quantity - 1}, synchronize_session="fetch")
        )
        return updated == 1

    def increment(self, book_id: uuid.UUID) -> bool:
        updated = (
            self.db.query(Book)
            .filter(Book.id == book_id)
            .update({Book.quantity: Book.quantity + 1}, synchronize_session="fetch")
        )
        return updated == 1


class RegistrationRepository:
    """Repository for borrow registrations"""

    def __init__(self, db: Session):
        self.db = db

    def create_registration(
        self,
        user_id: str,
        book_id: uuid.UUID,
        request_date: datetime,
        desired_borrow_date: datetime,
        note: Optional[str] = None,
    ) -> Registration:
        db_registration = Registration(
            user_id=user_id,
            book_id=book_id,
            request_date=request_date,
            desired_borrow_date=desired_borrow_date,
            status="pending",
            note=note,
        )
        self.db.add(db_registration)
        self.db.flush()  # Get ID without committing
        return db_registration

    def get_registration(self, registration_id: uuid.UUID) -> Optional[Registration]:
        return self.db.get(Registration, registration_id)

    def list_registrations(self, user_id: Optional[str] = None, status: Optional[str] = None) -> List[Registration]:
        """Newest requests first, optionally scoped to one user and status"""
        query = self.db.query(Registration)
        if user_id is not None:
            query = query.filter(Registration.user_id == user_id)
        if status is not None:
            query = query.filter(Registration.status == status)
        return query.order_by(Registration.request_date.desc()).all()


class BorrowTicketRepository:
    """Repository for borrow tickets"""

    def __init__(self, db: Session):
        self.db = db

    def create_ticket(
        self,
        user_id: str,
        book_id: uuid.UUID,
        borrow_date: datetime,
        status: str = "pending",
        due_date: Optional[datetime] = None,
        note: Optional[str] = None,
        approved_by: Optional[str] = None,
        approved_at: Optional[datetime] = None,
    ) -> BorrowTicket:
        db_ticket = BorrowTicket(
            user_id=user_id,
            book_id=book_id,
            borrow_date=borrow_date,
            due_date=due_date,
            status=status,
            note=note,
            approved_by=approved_by,
            approved_at=approved_at,
        )
        self.db.add(db_ticket)
        self.db.flush()
        return db_ticket

    def get_ticket(self, ticket_id: uuid.UUID) -> Optional[BorrowTicket]:
        return self.db.get(BorrowTicket, ticket_id)

    def find_active_ticket(self, user_id: str, book_id: uuid.UUID) -> Optional[BorrowTicket]:
        """Pending or approved ticket for the same (user, book) pair"""
        return (
            self.db.query(BorrowTicket)
            .filter(
                BorrowTicket.user_id == user_id,
                BorrowTicket.book_id == book_id,
                BorrowTicket.status.in_(["pending", "approved"]),
            )
            .first()
        )

    def list_tickets(self, user_id: Optional[str] = None, status: Optional[str] = None) -> List[BorrowTicket]:
        query = self.db.query(BorrowTicket)
        if user_id is not None:
            query = query.filter(BorrowTicket.user_id == user_id)
        if status is not None:
            query = query.filter(BorrowTicket.status == status)
        return query.order_by(BorrowTicket.created_at.desc(), BorrowTicket.borrow_date.desc()).all()


class ReturnTicketRepository:
    """Repository for return tickets"""

    def __init__(self, db: Session):
        self.db = db

    def create_return_ticket(
        self,
        borrow_ticket_id: uuid.UUID,
        return_date: datetime,
        condition: str,
        fine_amount: int,
        fine_reason: str,
        processed_by: str,
        note: Optional[str] = None,
    ) -> ReturnTicket:
        db_return = ReturnTicket(
            borrow_ticket_id=borrow_ticket_id,
            return_date=return_date,
            condition=condition,
            fine_amount=fine_amount,
            fine_reason=fine_reason,
            fine_paid=False,
            processed_by=processed_by,
            note=note,
        )
        self.db.add(db_return)
        self.db.flush()
        return db_return

    def get_return_ticket(self, return_ticket_id: uuid.UUID) -> Optional[ReturnTicket]:
        return self.db.get(ReturnTicket, return_ticket_id)

    def get_by_borrow_ticket(self, borrow_ticket_id: uuid.UUID) -> Optional[ReturnTicket]:
        return (
            self.db.query(ReturnTicket)
            .filter(ReturnTicket.borrow_ticket_id == borrow_ticket_id)
            .first()
        )

    def list_return_tickets(
        self,
        condition: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[ReturnTicket]:
        query = self.db.query(ReturnTicket)
        if condition is not None:
            query = query.filter(ReturnTicket.condition == condition)
        if since is not None:
            query = query.filter(ReturnTicket.return_date >= since)
        return query.order_by(ReturnTicket.return_date.desc()).all()
