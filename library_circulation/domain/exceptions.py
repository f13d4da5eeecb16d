"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    code = "domain_error"


class NotFoundError(DomainException):
    """Referenced book, registration or ticket does not exist"""

    code = "not_found"


class PermissionDeniedError(DomainException):
    """Caller role or ownership does not allow the operation"""

    code = "permission_denied"


class InvalidStateError(DomainException):
    """Record is not in the source state the transition requires"""

    code = "invalid_state"


class OutOfStockError(DomainException):
    """Book is unavailable or has no copies left to reserve"""

    code = "out_of_stock"


class ConflictError(DomainException):
    """User already has a pending or approved ticket for the same book"""

    code = "conflict"


class AlreadyReturnedError(DomainException):
    """Borrow ticket already has a return ticket"""

    code = "already_returned"


class NoFineError(DomainException):
    """Return ticket has no outstanding fine"""

    code = "no_fine"


class FineAlreadyPaidError(NoFineError):
    """Fine was already marked as paid"""

    code = "already_paid"
