"""Inventory ledger - the only writer of Book.quantity"""

import logging
import uuid
from sqlalchemy.orm import Session

from library_circulation.domain.exceptions import NotFoundError, OutOfStockError
from library_circulation.infrastructure.database.models import Book
from library_circulation.infrastructure.database.repositories import BookRepository
from library_circulation.infrastructure.observability.metrics import out_of_stock_counter

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Atomic adjustments of a book's available copy count.

    Reservation is a single conditional UPDATE, so two transactions racing
    for the last copy cannot both succeed and quantity never goes negative.
    Writes join the caller's transaction; nothing is committed here.
    """

    def __init__(self, db: Session):
        self.books = BookRepository(db)

    def get_book(self, book_id: uuid.UUID) -> Book:
        book = self.books.get_book(book_id)
        if book is None:
            raise NotFoundError("Book not found")
        return book

    def check_available(self, book_id: uuid.UUID) -> Book:
        """Read-only reservation precondition check"""
        book = self.get_book(book_id)
        if not book.available or book.quantity <= 0:
            out_of_stock_counter.inc()
            raise OutOfStockError(f'Book "{book.title}" is not available for borrowing')
        return book

    def reserve_one(self, book_id: uuid.UUID) -> Book:
        if self.books.decrement_if_available(book_id):
            book = self.get_book(book_id)
            logger.info("Copy reserved", extra={"book_id": str(book_id), "quantity": book.quantity})
            return book

        book = self.get_book(book_id)
        out_of_stock_counter.inc()
        raise OutOfStockError(f'Book "{book.title}" is not available for borrowing')

    def release_one(self, book_id: uuid.UUID) -> Book:
        # No ceiling: the catalog keeps no "total copies owned" figure
        if not self.books.increment(book_id):
            raise NotFoundError("Book not found")
        book = self.get_book(book_id)
        logger.info("Copy released", extra={"book_id": str(book_id), "quantity": book.quantity})
        return book
