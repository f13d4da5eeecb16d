"""Notification content for lifecycle transitions"""

from typing import Optional

from library_circulation.domain.models import Fine, NotificationEvent, NotificationType

_STATUS_VERBS = {
    "approved": "duyệt",
    "rejected": "từ chối",
    "cancelled": "hủy",
}


def format_amount(amount: int) -> str:
    """Format an amount the vi-VN way: 30000 -> '30.000'"""
    return f"{amount:,}".replace(",", ".")


def _note_suffix(note: Optional[str]) -> str:
    return f": {note}" if note else ""


def registration_requested(user_id: str, registration_id: str, book_title: str) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title="Đăng ký mượn sách mới",
        message=f'{user_id} đăng ký mượn sách "{book_title}"',
        type=NotificationType.BORROW_REQUEST,
        related_model="Registration",
        related_id=registration_id,
        audience="staff",
    )


def registration_processed(
    user_id: str, registration_id: str, book_title: str, status: str, note: Optional[str] = None
) -> NotificationEvent:
    verb = _STATUS_VERBS[status]
    return NotificationEvent(
        user_id=user_id,
        title=f"Đăng ký mượn sách đã được {verb}",
        message=f'Đăng ký mượn sách "{book_title}" của bạn đã được {verb}{_note_suffix(note)}',
        type=NotificationType.BORROW_REQUEST,
        related_model="Registration",
        related_id=registration_id,
    )


def borrow_requested(user_id: str, ticket_id: str, book_title: str) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title="Yêu cầu mượn sách mới",
        message=f'{user_id} muốn mượn sách "{book_title}"',
        type=NotificationType.BORROW_REQUEST,
        related_model="BorrowTicket",
        related_id=ticket_id,
        audience="staff",
    )


def borrow_processed(user_id: str, ticket_id: str, status: str, note: Optional[str] = None) -> NotificationEvent:
    verb = _STATUS_VERBS[status]
    return NotificationEvent(
        user_id=user_id,
        title=f"Phiếu mượn đã được {verb}",
        message=f"Phiếu mượn của bạn đã được {verb}{_note_suffix(note)}",
        type=NotificationType.BORROW_REQUEST,
        related_model="BorrowTicket",
        related_id=ticket_id,
    )


def return_processed(user_id: str, return_ticket_id: str, book_title: str, fine: Fine) -> NotificationEvent:
    message = f'Sách "{book_title}" đã được xử lý trả'
    if fine.amount > 0:
        message += f". Tiền phạt: {format_amount(fine.amount)}đ ({fine.reason})"
    return NotificationEvent(
        user_id=user_id,
        title="Phiếu trả sách đã được xử lý",
        message=message,
        type=NotificationType.RETURN_TICKET,
        related_model="ReturnTicket",
        related_id=return_ticket_id,
    )


def fine_paid(user_id: str, return_ticket_id: str, book_title: str, amount: int) -> NotificationEvent:
    return NotificationEvent(
        user_id=user_id,
        title="Đã thanh toán tiền phạt",
        message=f'Tiền phạt {format_amount(amount)}đ cho sách "{book_title}" đã được thanh toán',
        type=NotificationType.FINE_PAYMENT,
        related_model="ReturnTicket",
        related_id=return_ticket_id,
    )
