from typing import Any, Optional

from shared.utils.app_status_code import AppStatusCode


class FleetError(Exception):
    """Base class of the errors the services raise on purpose.

    Each subclass carries a machine readable ``kind``, the HTTP status the
    routers answer with and the application status code used in the
    ``JsonOutResult`` envelope.
    """

    kind = "error"
    http_status = 400
    status_code = AppStatusCode.OPERATION_FAILED

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(FleetError):
    kind = "validation_error"
    http_status = 400
    status_code = AppStatusCode.REQUIRED_VALIDATION_ERROR


class ConflictError(FleetError):
    kind = "conflict"
    http_status = 409
    status_code = AppStatusCode.DUPLICATE_ADD_ERROR


class DuplicateError(ConflictError):
    kind = "duplicate"


class InvalidStateError(FleetError):
    kind = "invalid_state"
    http_status = 400
    status_code = AppStatusCode.INVALID_STATE_TRANSITION


class ForbiddenError(FleetError):
    kind = "forbidden"
    http_status = 403
    status_code = AppStatusCode.UNAUTHORIZED_ACTION


class NotFoundError(FleetError):
    kind = "not_found"
    http_status = 404
    status_code = AppStatusCode.NOT_FOUND


class InactiveError(FleetError):
    kind = "inactive"
    http_status = 403
    status_code = AppStatusCode.INACTIVE_RESOURCE


class InconsistencyError(FleetError):
    kind = "inconsistency"
    http_status = 500
    status_code = AppStatusCode.DATA_INCONSISTENCY
