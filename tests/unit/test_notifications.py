"""Unit tests for notification content and delivery adapters"""

import asyncio
import logging
import httpx
from fastapi import BackgroundTasks

from library_circulation.domain import notifications
from library_circulation.domain.models import Fine, NotificationType
from library_circulation.infrastructure.clients.notifications import (
    BackgroundNotificationEmitter,
    LoggingNotificationEmitter,
    NotificationClient,
)


def test_format_amount_uses_dot_separators():
    assert notifications.format_amount(30000) == "30.000"
    assert notifications.format_amount(1250000) == "1.250.000"
    assert notifications.format_amount(500) == "500"


def test_registration_request_goes_to_staff():
    event = notifications.registration_requested("reader-1", "reg-1", "Số đỏ")

    assert event.audience == "staff"
    assert event.type == NotificationType.BORROW_REQUEST
    assert event.related_model == "Registration"
    assert '"Số đỏ"' in event.message


def test_registration_processed_includes_note():
    event = notifications.registration_processed("reader-1", "reg-1", "Số đỏ", "rejected", "Hết sách")

    assert event.audience == "user"
    assert event.title == "Đăng ký mượn sách đã được từ chối"
    assert event.message.endswith("đã được từ chối: Hết sách")


def test_borrow_processed_without_note():
    event = notifications.borrow_processed("reader-1", "bt-1", "approved")

    assert event.title == "Phiếu mượn đã được duyệt"
    assert event.message == "Phiếu mượn của bạn đã được duyệt"


def test_return_message_mentions_fine_only_when_present():
    no_fine = notifications.return_processed("reader-1", "rt-1", "Số đỏ", Fine())
    with_fine = notifications.return_processed(
        "reader-1", "rt-1", "Số đỏ", Fine(amount=30000, reason="Trả sách trễ 3 ngày")
    )

    assert "Tiền phạt" not in no_fine.message
    assert with_fine.message == 'Sách "Số đỏ" đã được xử lý trả. Tiền phạt: 30.000đ (Trả sách trễ 3 ngày)'
    assert with_fine.type == NotificationType.RETURN_TICKET


def test_payload_shape():
    event = notifications.fine_paid("reader-1", "rt-1", "Số đỏ", 50000)
    payload = event.to_payload()

    assert payload["type"] == "fine_payment"
    assert payload["relatedTo"] == {"model": "ReturnTicket", "id": "rt-1"}
    assert payload["isRead"] is False
    assert payload["user"] == "reader-1"


def test_logging_emitter_records_event(caplog):
    event = notifications.borrow_requested("reader-1", "bt-1", "Số đỏ")

    with caplog.at_level(logging.INFO):
        LoggingNotificationEmitter().emit(event)

    assert any(r.getMessage() == "Notification emitted" for r in caplog.records)


def test_client_posts_payload():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(request)
        return httpx.Response(201)

    client = NotificationClient(webhook_url="http://notify.test/events", transport=httpx.MockTransport(handler))
    event = notifications.borrow_requested("reader-1", "bt-1", "Số đỏ")

    assert asyncio.run(client.send_event(event)) is True
    assert len(received) == 1
    assert received[0].url == "http://notify.test/events"


def test_client_retries_then_gives_up_without_raising():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(503)

    client = NotificationClient(webhook_url="http://notify.test/events", transport=httpx.MockTransport(handler))
    client.max_retries = 3
    client.backoff_base = 0
    event = notifications.fine_paid("reader-1", "rt-1", "Số đỏ", 50000)

    assert asyncio.run(client.send_event(event)) is False
    assert len(attempts) == 3


def test_background_emitter_defers_delivery():
    tasks = BackgroundTasks()
    client = NotificationClient(webhook_url="http://notify.test/events")
    emitter = BackgroundNotificationEmitter(tasks, client)

    emitter.emit(notifications.borrow_requested("reader-1", "bt-1", "Số đỏ"))

    assert len(tasks.tasks) == 1
    assert tasks.tasks[0].func == client.send_event
