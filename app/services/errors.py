from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Expected, recoverable outcome of a core operation.

    Rendered by the API layer as ``{"success": false, "error": code, "detail": message, **data}``.
    """

    code = "DomainError"
    status_code = 400

    def __init__(self, message: str, **data: Any):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.code, "detail": self.message, **self.data}


class NotFound(DomainError):
    code = "NotFound"
    status_code = 404


class TypeNotFound(NotFound):
    code = "TypeNotFound"


class DuplicateName(DomainError):
    code = "DuplicateName"


class InvalidKind(DomainError):
    code = "InvalidKind"


class InvalidOptions(DomainError):
    code = "InvalidOptions"


class EmptyFieldSet(DomainError):
    code = "EmptyFieldSet"


class DuplicateOrder(DomainError):
    code = "DuplicateOrder"


class DuplicateField(DomainError):
    code = "DuplicateField"


class UnknownField(DomainError):
    code = "UnknownField"


class InUse(DomainError):
    code = "InUse"
    status_code = 409

    def __init__(self, message: str, *, used_by: list[str], **data: Any):
        super().__init__(message, used_by=list(used_by), **data)
        self.used_by = list(used_by)


class LastActiveType(DomainError):
    code = "LastActiveType"


class ConfirmationRequired(DomainError):
    code = "ConfirmationRequired"


class TypeInactive(DomainError):
    code = "TypeInactive"


class ValidationFailed(DomainError):
    code = "ValidationFailed"

    def __init__(self, errors: dict[str, str]):
        super().__init__("Validation failed", details=dict(errors))
        self.errors = dict(errors)


class AlreadyProcessed(DomainError):
    code = "AlreadyProcessed"
    status_code = 409

    def __init__(self, *, current_status: str, processed_at: str | None):
        super().__init__(
            f"This request has already been {current_status}",
            current_status=current_status,
            processed_at=processed_at,
        )
        self.current_status = current_status
        self.processed_at = processed_at


class RateLimited(DomainError):
    code = "RateLimited"
    status_code = 429

    def __init__(self, *, retry_after_seconds: int):
        super().__init__(
            f"Too many requests. Try again in {max(int(retry_after_seconds), 1)} seconds",
            retry_after_seconds=max(int(retry_after_seconds), 1),
        )
