"""Typed workflow failures.

Every rejected action carries an ``ErrorKind`` plus the conflicting state, e.g.
``{"error": "ItemsStillOutstanding", "message": "...", "outstanding": 2}``.
The classes subclass ``HTTPException`` so routers can let them propagate the
same way the rest of the services raise 404/409s.
"""
import enum

from fastapi import HTTPException


class ErrorKind(str, enum.Enum):
    invalid_status = "InvalidStatus"
    permission_denied = "PermissionDenied"
    not_owner = "NotOwner"
    not_authorized_approver = "NotAuthorizedApprover"
    quantity_violation = "QuantityViolation"
    over_receipt = "OverReceipt"
    asset_unavailable = "AssetUnavailable"
    not_borrowed = "NotBorrowed"
    already_returned = "AlreadyReturned"
    already_signed = "AlreadySigned"
    items_still_outstanding = "ItemsStillOutstanding"
    invalid_or_expired_token = "InvalidOrExpiredToken"
    missing_required_field = "MissingRequiredField"
    not_found = "NotFound"
    conflict = "Conflict"


class WorkflowError(HTTPException):
    kind: ErrorKind = ErrorKind.conflict
    status_code: int = 409

    def __init__(self, message: str, **context):
        self.message = message
        self.context = context
        super().__init__(
            status_code=self.status_code,
            detail={"error": self.kind.value, "message": message, **context},
        )

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class InvalidStatus(WorkflowError):
    kind = ErrorKind.invalid_status
    status_code = 409


class PermissionDenied(WorkflowError):
    kind = ErrorKind.permission_denied
    status_code = 403


class NotOwner(WorkflowError):
    kind = ErrorKind.not_owner
    status_code = 403


class NotAuthorizedApprover(WorkflowError):
    kind = ErrorKind.not_authorized_approver
    status_code = 403


class QuantityViolation(WorkflowError):
    kind = ErrorKind.quantity_violation
    status_code = 422


class OverReceipt(QuantityViolation):
    kind = ErrorKind.over_receipt


class AssetUnavailable(WorkflowError):
    kind = ErrorKind.asset_unavailable
    status_code = 409


class NotBorrowed(WorkflowError):
    kind = ErrorKind.not_borrowed
    status_code = 409


class AlreadyReturned(WorkflowError):
    kind = ErrorKind.already_returned
    status_code = 409


class AlreadySigned(WorkflowError):
    kind = ErrorKind.already_signed
    status_code = 409


class ItemsStillOutstanding(WorkflowError):
    kind = ErrorKind.items_still_outstanding
    status_code = 409


class InvalidOrExpiredToken(WorkflowError):
    kind = ErrorKind.invalid_or_expired_token
    status_code = 410


class MissingRequiredField(WorkflowError):
    kind = ErrorKind.missing_required_field
    status_code = 400


class NotFound(WorkflowError):
    kind = ErrorKind.not_found
    status_code = 404


class Conflict(WorkflowError):
    kind = ErrorKind.conflict
    status_code = 409
