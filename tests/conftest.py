"""Pytest fixtures for testing"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from datetime import datetime, timedelta
from typing import Callable, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session

from library_circulation.api.dependencies import get_notifier
from library_circulation.api.main import create_app
from library_circulation.domain.models import Caller, NotificationEvent, Role
from library_circulation.infrastructure.clients.notifications import NotificationEmitter
from library_circulation.infrastructure.database.models import Base, Book
from library_circulation.infrastructure.database.repositories import BookRepository
from library_circulation.infrastructure.database.session import build_engine, get_db
from library_circulation.services.borrow_tickets import BorrowTicketService
from library_circulation.services.registrations import RegistrationService
from library_circulation.services.returns import ReturnService


class RecordingEmitter(NotificationEmitter):
    """Keeps emitted events in memory"""

    def __init__(self) -> None:
        self.events: List[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def of_type(self, type_value: str) -> List[NotificationEvent]:
        return [e for e in self.events if e.type.value == type_value]


class FailingEmitter(NotificationEmitter):
    def emit(self, event: NotificationEvent) -> None:
        raise RuntimeError("notification service down")


class FrozenClock:
    """Controllable replacement for utcnow"""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database per test"""
    engine = build_engine(f"sqlite:///{tmp_path / 'library.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notifier() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def failing_notifier() -> FailingEmitter:
    return FailingEmitter()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 1, 9, 0))


@pytest.fixture
def reader() -> Caller:
    return Caller(user_id="reader-1", role=Role.READER)


@pytest.fixture
def other_reader() -> Caller:
    return Caller(user_id="reader-2", role=Role.READER)


@pytest.fixture
def staff() -> Caller:
    return Caller(user_id="staff-1", role=Role.STAFF)


@pytest.fixture
def make_book(session_factory) -> Callable[..., Book]:
    """Insert a committed catalog book"""

    def _make_book(
        quantity: int = 1,
        rental_price: int = 100_000,
        available: bool = True,
        title: str = "Dế Mèn phiêu lưu ký",
    ) -> Book:
        session = session_factory()
        try:
            book = BookRepository(session).create_book(
                title=title,
                author="Tô Hoài",
                rental_price=rental_price,
                quantity=quantity,
                available=available,
            )
            session.commit()
            session.refresh(book)
            session.expunge(book)
            return book
        finally:
            session.close()

    return _make_book


@pytest.fixture
def book_quantity(session_factory) -> Callable:
    """Read a book's quantity through a fresh session"""

    def _book_quantity(book_id) -> int:
        session = session_factory()
        try:
            return session.get(Book, book_id).quantity
        finally:
            session.close()

    return _book_quantity


@pytest.fixture
def registration_service(db, notifier, clock) -> RegistrationService:
    return RegistrationService(db, notifier, clock)


@pytest.fixture
def borrow_service(db, notifier, clock) -> BorrowTicketService:
    return BorrowTicketService(db, notifier, clock)


@pytest.fixture
def return_service(db, notifier, clock) -> ReturnService:
    return ReturnService(db, notifier, clock)


@pytest.fixture
def client(session_factory, notifier) -> TestClient:
    """Create FastAPI test client with test database and recorded notifications"""
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)

