"""/v1/return-tickets - closing loans, fines and the returns dashboard"""

from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query, Request

from library_circulation.api.dependencies import get_caller, get_request_id, get_return_service
from library_circulation.api.errors import domain_error, parse_id
from library_circulation.api.v1.schemas import (
    ReturnStatsResponse,
    ReturnTicketCreate,
    ReturnTicketList,
    ReturnTicketResponse,
)
from library_circulation.domain.exceptions import DomainException
from library_circulation.domain.models import Caller, ReturnCondition
from library_circulation.services.returns import ReturnService

router = APIRouter()


@router.get("/return-tickets", response_model=ReturnTicketList)
def list_return_tickets(
    request: Request,
    condition: Optional[ReturnCondition] = Query(None, description="Filter by book condition"),
    caller: Caller = Depends(get_caller),
    service: ReturnService = Depends(get_return_service),
):
    try:
        tickets = service.list_return_tickets(caller, condition.value if condition else None)
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return ReturnTicketList(data=[ReturnTicketResponse.from_record(t) for t in tickets])


@router.get("/return-tickets/stats", response_model=ReturnStatsResponse)
def get_return_stats(
    request: Request,
    period: Literal["today", "week", "month", "all"] = Query("all"),
    caller: Caller = Depends(get_caller),
    service: ReturnService = Depends(get_return_service),
):
    """
    Staff dashboard figures.

    Returns:
        Return counts by condition, rental income, fines (paid/unpaid, by reason)
        and revenue over the selected period
    """
    try:
        stats = service.summarize(caller, period)
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return ReturnStatsResponse.from_stats(period, stats)


@router.get("/return-tickets/{return_ticket_id}", response_model=ReturnTicketResponse)
def get_return_ticket(
    return_ticket_id: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: ReturnService = Depends(get_return_service),
):
    try:
        ticket = service.get_return_ticket(caller, parse_id(return_ticket_id, "return ticket ID"))
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return ReturnTicketResponse.from_record(ticket)


@router.post("/return-tickets", response_model=ReturnTicketResponse, status_code=201)
def create_return_ticket(
    request_body: ReturnTicketCreate,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: ReturnService = Depends(get_return_service),
):
    """
    Close an approved borrow ticket (staff).

    Flow:
    1. Compute lateness and condition fines
    2. Persist the return ticket and mark the loan returned
    3. Put the copy back on the shelf unless it was lost
    4. Notify the borrower in the background
    """
    try:
        ticket = service.create_return(
            caller,
            request_body.borrow_ticket_id,
            request_body.condition,
            request_body.note,
        )
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return ReturnTicketResponse.from_record(ticket)


@router.put("/return-tickets/{return_ticket_id}/fine", response_model=ReturnTicketResponse)
def mark_fine_paid(
    return_ticket_id: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: ReturnService = Depends(get_return_service),
):
    try:
        ticket = service.mark_fine_paid(caller, parse_id(return_ticket_id, "return ticket ID"))
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return ReturnTicketResponse.from_record(ticket)
