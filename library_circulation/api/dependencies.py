"""Dependency injection for FastAPI endpoints"""

from typing import Optional
from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from library_circulation.domain.models import Caller, Role
from library_circulation.infrastructure.clients.notifications import (
    BackgroundNotificationEmitter,
    NotificationClient,
    NotificationEmitter,
)
from library_circulation.infrastructure.database.session import get_db
from library_circulation.services.borrow_tickets import BorrowTicketService
from library_circulation.services.registrations import RegistrationService
from library_circulation.services.returns import ReturnService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: int = Header(0),
) -> Caller:
    """Identity resolved by the upstream auth service"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail={"error": "unauthenticated", "message": "Authentication required"})
    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=403, detail={"error": "permission_denied", "message": "Unknown role"})
    return Caller(user_id=x_user_id, role=role)


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def get_notifier(
    background_tasks: BackgroundTasks,
    client: NotificationClient = Depends(get_notification_client),
) -> NotificationEmitter:
    return BackgroundNotificationEmitter(background_tasks, client)


def get_registration_service(
    db: Session = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> RegistrationService:
    return RegistrationService(db, notifier)


def get_borrow_ticket_service(
    db: Session = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> BorrowTicketService:
    return BorrowTicketService(db, notifier)


def get_return_service(
    db: Session = Depends(get_db),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> ReturnService:
    return ReturnService(db, notifier)
