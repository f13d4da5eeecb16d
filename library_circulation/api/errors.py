"""Translation of domain exceptions into HTTP errors"""

import logging
import uuid
from fastapi import HTTPException

from library_circulation.domain.exceptions import DomainException

STATUS_BY_CODE = {
    "not_found": 404,
    "permission_denied": 403,
    "invalid_state": 409,
    "out_of_stock": 409,
    "conflict": 409,
    "already_returned": 409,
    "no_fine": 400,
    "already_paid": 409,
}


def domain_error(e: DomainException, request_id: str) -> HTTPException:
    """Map a domain failure to a distinct status and machine-readable code"""
    status_code = STATUS_BY_CODE.get(e.code, 400)
    logging.warning(f"Request rejected ({e.code}): {e}", extra={"request_id": request_id})
    return HTTPException(status_code=status_code, detail={"error": e.code, "message": str(e)})


def parse_id(value: str, what: str = "ID") -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail={"error": "invalid_id", "message": f"Invalid {what} format"})
