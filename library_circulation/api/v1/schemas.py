"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional

from library_circulation.domain.models import ReturnCondition, ReturnStats


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class RegistrationCreate(BaseModel):
    """Request body for POST /v1/registrations"""

    book_id: uuid.UUID
    desired_borrow_date: Optional[datetime] = Field(None, description="Defaults to now")
    note: Optional[str] = None

    @field_validator("desired_borrow_date")
    @classmethod
    def normalize_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class ProcessRequest(BaseModel):
    """Request body for PUT .../{id}/process (staff)"""

    status: Literal["approved", "rejected"]
    note: Optional[str] = None


class CancelRequest(BaseModel):
    note: Optional[str] = None


class BorrowTicketCreate(BaseModel):
    """Request body for POST /v1/borrow-tickets"""

    book_id: uuid.UUID
    note: Optional[str] = None


class ReturnTicketCreate(BaseModel):
    """Request body for POST /v1/return-tickets (staff)"""

    borrow_ticket_id: uuid.UUID
    condition: ReturnCondition = ReturnCondition.GOOD
    note: Optional[str] = None


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    book_id: uuid.UUID
    request_date: datetime
    desired_borrow_date: datetime
    status: str
    note: Optional[str] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None
    borrow_ticket_id: Optional[uuid.UUID] = None


class BorrowTicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    book_id: uuid.UUID
    borrow_date: datetime
    due_date: Optional[datetime] = None
    status: str
    note: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    return_date: Optional[datetime] = None


class FineSchema(BaseModel):
    amount: int
    reason: str
    paid: bool


class ReturnTicketResponse(BaseModel):
    id: uuid.UUID
    borrow_ticket_id: uuid.UUID
    return_date: datetime
    condition: ReturnCondition
    fine: FineSchema
    processed_by: str
    note: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "ReturnTicketResponse":
        return cls(
            id=record.id,
            borrow_ticket_id=record.borrow_ticket_id,
            return_date=record.return_date,
            condition=record.condition,
            fine=FineSchema(amount=record.fine_amount, reason=record.fine_reason, paid=record.fine_paid),
            processed_by=record.processed_by,
            note=record.note,
        )


class ReturnStatsResponse(BaseModel):
    """Response for GET /v1/return-tickets/stats"""

    period: str
    total_returns: int
    total_rental_income: int
    total_fines: int
    total_paid_fines: int
    total_unpaid_fines: int
    total_revenue: int
    returns_by_condition: Dict[str, int]
    fines_by_reason: Dict[str, int]

    @classmethod
    def from_stats(cls, period: str, stats: ReturnStats) -> "ReturnStatsResponse":
        return cls(
            period=period,
            total_returns=stats.total_returns,
            total_rental_income=stats.total_rental_income,
            total_fines=stats.total_fines,
            total_paid_fines=stats.total_paid_fines,
            total_unpaid_fines=stats.total_unpaid_fines,
            total_revenue=stats.total_revenue,
            returns_by_condition=stats.returns_by_condition,
            fines_by_reason=stats.fines_by_reason,
        )


class RegistrationList(BaseModel):
    data: List[RegistrationResponse]


class BorrowTicketList(BaseModel):
    data: List[BorrowTicketResponse]


class ReturnTicketList(BaseModel):
    data: List[ReturnTicketResponse]
