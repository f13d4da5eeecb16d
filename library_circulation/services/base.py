"""Shared plumbing for lifecycle services: unit of work, access checks, notifications"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, Optional
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from library_circulation.domain.exceptions import InvalidStateError, PermissionDeniedError
from library_circulation.domain.models import Caller, NotificationEvent
from library_circulation.infrastructure.clients.notifications import LoggingNotificationEmitter, NotificationEmitter
from library_circulation.infrastructure.observability.metrics import notification_failure_counter
from library_circulation.utils.date_utils import utcnow

logger = logging.getLogger(__name__)


def ensure_staff(caller: Caller, action: str) -> None:
    """Staff gate (role >= 1)"""
    if not caller.is_staff:
        raise PermissionDeniedError(f"Staff role required to {action}")


def ensure_owner_or_staff(caller: Caller, owner_id: str, what: str) -> None:
    if not caller.is_staff and caller.user_id != owner_id:
        raise PermissionDeniedError(f"Not allowed to view this {what}")


class LifecycleService:
    """Base for services that run one transition per database transaction"""

    def __init__(
        self,
        db: Session,
        notifier: Optional[NotificationEmitter] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.notifier = notifier or LoggingNotificationEmitter()
        self.clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """
        Commit the enclosed work as one transaction.

        Any failure rolls back every write made inside the block, including
        inventory reservations. A version conflict means another operation
        changed the record first.
        """
        try:
            yield
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise InvalidStateError("Record was modified by another operation; re-fetch and retry") from e
        except Exception:
            self.db.rollback()
            raise

    def _notify(self, event: NotificationEvent) -> None:
        """Hand an event to the emitter; delivery problems never undo a transition"""
        try:
            self.notifier.emit(event)
        except Exception as e:
            notification_failure_counter.inc()
            logger.warning(
                f"Notification emit failed: {e}",
                extra={"related_model": event.related_model, "related_id": event.related_id},
            )
