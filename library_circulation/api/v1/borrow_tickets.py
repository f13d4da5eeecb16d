"""/v1/borrow-tickets - direct borrow requests and their approval"""

from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query, Request

from library_circulation.api.dependencies import get_borrow_ticket_service, get_caller, get_request_id
from library_circulation.api.errors import domain_error, parse_id
from library_circulation.api.v1.schemas import (
    BorrowTicketCreate,
    BorrowTicketList,
    BorrowTicketResponse,
    ProcessRequest,
)
from library_circulation.domain.exceptions import DomainException
from library_circulation.domain.models import Caller
from library_circulation.services.borrow_tickets import BorrowTicketService

router = APIRouter()


@router.get("/borrow-tickets", response_model=BorrowTicketList)
def list_borrow_tickets(
    status: Optional[Literal["pending", "approved", "rejected", "returned"]] = Query(None),
    caller: Caller = Depends(get_caller),
    service: BorrowTicketService = Depends(get_borrow_ticket_service),
):
    tickets = service.list_tickets(caller, status)
    return BorrowTicketList(data=[BorrowTicketResponse.model_validate(t) for t in tickets])


@router.get("/borrow-tickets/{ticket_id}", response_model=BorrowTicketResponse)
def get_borrow_ticket(
    ticket_id: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: BorrowTicketService = Depends(get_borrow_ticket_service),
):
    try:
        ticket = service.get_ticket(caller, parse_id(ticket_id, "borrow ticket ID"))
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return BorrowTicketResponse.model_validate(ticket)


@router.post("/borrow-tickets", response_model=BorrowTicketResponse, status_code=201)
def create_borrow_ticket(
    request_body: BorrowTicketCreate,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: BorrowTicketService = Depends(get_borrow_ticket_service),
):
    try:
        ticket = service.create_ticket(caller, request_body.book_id, request_body.note)
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return BorrowTicketResponse.model_validate(ticket)


@router.put("/borrow-tickets/{ticket_id}/process", response_model=BorrowTicketResponse)
def process_borrow_ticket(
    ticket_id: str,
    request_body: ProcessRequest,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: BorrowTicketService = Depends(get_borrow_ticket_service),
):
    """Approve (reserving a copy) or reject a pending ticket (staff)"""
    try:
        ticket = service.process_ticket(
            caller,
            parse_id(ticket_id, "borrow ticket ID"),
            request_body.status,
            request_body.note,
        )
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return BorrowTicketResponse.model_validate(ticket)
