"""SQLAlchemy ORM models for books and circulation records"""

import uuid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    BigInteger,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


class Book(TimestampMixin, Base):
    """Catalog entry; quantity is only written through the inventory ledger"""

    __tablename__ = "books"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_books_quantity_non_negative"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(Text, nullable=False)
    author = Column(Text, nullable=False)
    rental_price = Column(BigInteger, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    available = Column(Boolean, nullable=False, default=True)


class Registration(TimestampMixin, Base):
    """A reader's request to borrow a title before any ticket exists"""

    __tablename__ = "registrations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    book_id = Column(Uuid(as_uuid=True), ForeignKey("books.id"), nullable=False)
    request_date = Column(DateTime, nullable=False)
    desired_borrow_date = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, default="pending", index=True)
    note = Column(Text, nullable=True)
    processed_by = Column(Text, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    borrow_ticket_id = Column(Uuid(as_uuid=True), ForeignKey("borrow_tickets.id"), nullable=True)
    version = Column(Integer, nullable=False)

    book = relationship("Book")
    borrow_ticket = relationship("BorrowTicket")

    __mapper_args__ = {"version_id_col": version}


class BorrowTicket(TimestampMixin, Base):
    """Authoritative loan record"""

    __tablename__ = "borrow_tickets"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    book_id = Column(Uuid(as_uuid=True), ForeignKey("books.id"), nullable=False)
    borrow_date = Column(DateTime, nullable=False)
    due_date = Column(DateTime, nullable=True)
    status = Column(Text, nullable=False, default="pending", index=True)
    note = Column(Text, nullable=True)
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime, nullable=True)
    return_date = Column(DateTime, nullable=True)
    version = Column(Integer, nullable=False)

    book = relationship("Book")
    return_ticket = relationship("ReturnTicket", back_populates="borrow_ticket", uselist=False)

    __mapper_args__ = {"version_id_col": version}


class ReturnTicket(TimestampMixin, Base):
    """Closing record of a borrow ticket; only fine_paid changes after creation"""

    __tablename__ = "return_tickets"
    __table_args__ = (CheckConstraint("fine_amount >= 0", name="ck_return_tickets_fine_non_negative"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    borrow_ticket_id = Column(Uuid(as_uuid=True), ForeignKey("borrow_tickets.id"), nullable=False, unique=True)
    return_date = Column(DateTime, nullable=False)
    condition = Column(Text, nullable=False, default="good")
    fine_amount = Column(BigInteger, nullable=False, default=0)
    fine_reason = Column(Text, nullable=False, default="")
    fine_paid = Column(Boolean, nullable=False, default=False)
    processed_by = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    version = Column(Integer, nullable=False)

    borrow_ticket = relationship("BorrowTicket", back_populates="return_ticket")

    __mapper_args__ = {"version_id_col": version}
