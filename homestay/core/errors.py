from fastapi import Request
from fastapi.responses import JSONResponse
from typing import Any, Optional


class WorkflowError(Exception):
    """Base class for every refused or failed lifecycle operation"""

    status_code = 400
    code = "workflow_error"
    title = "Workflow error"

    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}


class ValidationFailed(WorkflowError):
    """Malformed or non-compliant input; user-correctable"""

    code = "validation_failed"
    title = "Validation failed"


class CapacityExceeded(ValidationFailed):
    code = "capacity_exceeded"
    title = "Room or bed capacity exceeded"


class CategoryInvalid(ValidationFailed):
    code = "category_invalid"
    title = "Category does not match tariff"


class GuardFailed(WorkflowError):
    """A role, district or status precondition was not met"""

    code = "guard_failed"
    title = "Precondition failed"


class InvalidState(GuardFailed):
    code = "invalid_state"
    title = "Operation not allowed in current status"


class OtpRequired(GuardFailed):
    """First send-back needs an out-of-band OTP confirmation"""

    code = "otp_required"
    title = "OTP verification required"

    def __init__(self, message: str, revert_count: int):
        super().__init__(message, {"requireOtp": True, "revertCount": revert_count})


class Forbidden(WorkflowError):
    status_code = 403
    code = "forbidden"
    title = "Forbidden"


class NotFound(WorkflowError):
    status_code = 404
    code = "not_found"
    title = "Not found"


class DuplicateActive(WorkflowError):
    """An existing non-terminal application blocks the request"""

    status_code = 409
    code = "duplicate_active"
    title = "Conflicting application"

    def __init__(self, message: str, existing_application_id: str, status: Optional[str] = None):
        super().__init__(
            message,
            {"existingApplicationId": existing_application_id, "status": status},
        )
        self.existing_application_id = existing_application_id


class ConcurrentModification(WorkflowError):
    status_code = 409
    code = "concurrent_modification"
    title = "Application was modified concurrently"


class PersistenceFailure(WorkflowError):
    status_code = 500
    code = "persistence_failure"
    title = "Persistence failure"


def problem_response(
    request: Request,
    status: int,
    code: str,
    title: str,
    detail: Any,
    extra: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    """
    Return RFC 7807 Problem Details response

    https://datatracker.ietf.org/doc/html/rfc7807
    """
    content = {
        "type": f"https://homestay.hp.gov.in/errors/{code}",
        "title": title,
        "status": status,
        "code": code,
        "detail": detail,
        "correlation_id": getattr(request.state, "correlation_id", "unknown"),
    }
    if extra:
        content.update(extra)
    return JSONResponse(status_code=status, content=content)


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Map engine exceptions onto problem documents"""
    return problem_response(
        request,
        status=exc.status_code,
        code=exc.code,
        title=exc.title,
        detail=exc.message,
        extra=exc.extra,
    )
