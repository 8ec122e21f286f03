"""Exception hierarchy shared by the freight calculators and the web layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class FreightError(Exception):
    """Base class for expected business errors.

    Attributes:
        code: Machine-readable identifier rendered in JSON error payloads.
        message: Human-readable description safe to show to customers.
    """

    code = "freight_error"

    def __init__(self, message: str, *, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(FreightError, ValueError):
    """Raised when request input is missing or malformed."""

    code = "validation_error"

    def __init__(
        self, message: str, *, field: Optional[str] = None, code: Optional[str] = None
    ) -> None:
        super().__init__(message, code=code)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(FreightError, LookupError):
    """Raised when a referenced destination or quote does not exist."""

    code = "not_found"


class OutOfRangeError(FreightError):
    """Raised when a requested booking date falls outside the booking horizon."""

    code = "date_out_of_range"


TAMPERING_MESSAGE = (
    "Quote request rejected: Rate calculation discrepancy detected. "
    "Please recalculate your quote."
)


class TamperingError(FreightError):
    """Raised when client-supplied pricing disagrees with the server figures."""

    code = "rate_discrepancy"

    def __init__(
        self,
        discrepancy: Dict[str, float],
        message: str = TAMPERING_MESSAGE,
    ) -> None:
        super().__init__(message)
        self.discrepancy = dict(discrepancy)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["discrepancy"] = self.discrepancy
        return payload


__all__ = [
    "FreightError",
    "NotFoundError",
    "OutOfRangeError",
    "TAMPERING_MESSAGE",
    "TamperingError",
    "ValidationError",
]
