"""Domain failures raised by the service layer.

Each error carries the HTTP status it maps to and a human readable ``detail``;
``finplan.main`` renders them with the same body shape as ``HTTPException``.
"""

from __future__ import annotations


class FinanceError(Exception):
    status_code: int = 400
    default_detail: str = "Request could not be processed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(FinanceError):
    """Input rejected before it reaches the storage collaborator."""

    status_code = 400
    default_detail = "Invalid input"


class NotFoundError(FinanceError):
    status_code = 404
    default_detail = "Not found"


class InvalidOperation(FinanceError):
    """The target exists but the requested change is not allowed for it."""

    status_code = 409
    default_detail = "Operation not allowed"


class PersistenceError(FinanceError):
    status_code = 500
    default_detail = "Storage failure, nothing was changed"
