"""Domain errors raised by services and rendered by the app's handlers.

Every error is an ``HTTPException`` so FastAPI's exception handling picks it
up; ``extra`` carries additional fields merged into the JSON body.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict] = None, **extra: Any):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.default_detail,
            headers=headers,
        )
        self.extra = extra


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Could not validate credentials"

    def __init__(self, detail: Optional[str] = None, **extra: Any):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"}, **extra)


class Forbidden(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class ApprovalRequired(Forbidden):
    """Raised when a doctor's account is not (or no longer) approved."""

    default_detail = "Your doctor account must be approved to perform this action"

    def __init__(self, approval_status: Optional[str], rejection_reason: Optional[str] = None):
        extra: dict = {"approval_status": approval_status}
        if rejection_reason:
            extra["rejection_reason"] = rejection_reason
        if approval_status == "pending":
            detail = "Your doctor account is awaiting admin approval"
        elif approval_status == "rejected":
            detail = "Your doctor account application was rejected"
        else:
            detail = None
        super().__init__(detail, **extra)
        self.approval_status = approval_status


class Conflict(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request conflicts with the current state"


class AlreadyReported(Conflict):
    default_detail = "You have already reported this content"


class DuplicateAccount(Conflict):
    default_detail = "Email or username already in use"


class NotADoctor(Conflict):
    default_detail = "User is not a doctor"


class AlreadyApproved(Conflict):
    default_detail = "Doctor is already approved"


class AlreadyRejected(Conflict):
    default_detail = "Doctor is already rejected"


class EventNotActive(Conflict):
    default_detail = "Event is not open for registration"


class NotRegistered(Conflict):
    default_detail = "You are not registered for this event"


class AlreadyCompleted(Conflict):
    default_detail = "Already completed today"


class AlreadyRegistered(Conflict):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "You are already registered for this event"


class EventFull(Conflict):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Event is full"
