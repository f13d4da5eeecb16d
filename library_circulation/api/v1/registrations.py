"""/v1/registrations - borrow requests awaiting staff review"""

from typing import Literal, Optional
from fastapi import APIRouter, Depends, Query, Request

from library_circulation.api.dependencies import get_caller, get_registration_service, get_request_id
from library_circulation.api.errors import domain_error, parse_id
from library_circulation.api.v1.schemas import (
    CancelRequest,
    ProcessRequest,
    RegistrationCreate,
    RegistrationList,
    RegistrationResponse,
)
from library_circulation.domain.exceptions import DomainException
from library_circulation.domain.models import Caller
from library_circulation.services.registrations import RegistrationService

router = APIRouter()

RegistrationStatusFilter = Literal["pending", "approved", "rejected", "cancelled", "expired"]


@router.get("/registrations", response_model=RegistrationList)
def list_registrations(
    status: Optional[RegistrationStatusFilter] = Query(None, description="Filter by status"),
    caller: Caller = Depends(get_caller),
    service: RegistrationService = Depends(get_registration_service),
):
    """Staff see all registrations, readers only their own (newest first)"""
    registrations = service.list_registrations(caller, status)
    return RegistrationList(data=[RegistrationResponse.model_validate(r) for r in registrations])


@router.get("/registrations/{registration_id}", response_model=RegistrationResponse)
def get_registration(
    registration_id: str,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: RegistrationService = Depends(get_registration_service),
):
    try:
        registration = service.get_registration(caller, parse_id(registration_id, "registration ID"))
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return RegistrationResponse.model_validate(registration)


@router.post("/registrations", response_model=RegistrationResponse, status_code=201)
def create_registration(
    request_body: RegistrationCreate,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: RegistrationService = Depends(get_registration_service),
):
    """Queue a borrow request; stock is checked only when staff approve it"""
    try:
        registration = service.create_registration(
            caller,
            request_body.book_id,
            request_body.desired_borrow_date,
            request_body.note,
        )
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return RegistrationResponse.model_validate(registration)


@router.put("/registrations/{registration_id}/process", response_model=RegistrationResponse)
def process_registration(
    registration_id: str,
    request_body: ProcessRequest,
    request: Request,
    caller: Caller = Depends(get_caller),
    service: RegistrationService = Depends(get_registration_service),
):
    """
    Approve or reject a pending registration (staff).

    Approval reserves a copy and opens a borrow ticket; with no copy left the
    registration stays pending and 409 out_of_stock is returned.
    """
    try:
        registration = service.process_registration(
            caller,
            parse_id(registration_id, "registration ID"),
            request_body.status,
            request_body.note,
        )
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return RegistrationResponse.model_validate(registration)


@router.put("/registrations/{registration_id}/cancel", response_model=RegistrationResponse)
def cancel_registration(
    registration_id: str,
    request: Request,
    request_body: Optional[CancelRequest] = None,
    caller: Caller = Depends(get_caller),
    service: RegistrationService = Depends(get_registration_service),
):
    note = request_body.note if request_body else None
    try:
        registration = service.cancel_registration(caller, parse_id(registration_id, "registration ID"), note)
    except DomainException as e:
        raise domain_error(e, get_request_id(request))
    return RegistrationResponse.model_validate(registration)
