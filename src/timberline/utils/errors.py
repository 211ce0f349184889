# error kinds surfaced by the storefront and admin operations
from __future__ import annotations

from typing import Dict, Iterable, List, Optional

GENERIC_MESSAGE = "Something went wrong. Please try again."


class TimberlineError(Exception):
    """Base class; ``message`` is always safe to show to an end user."""

    message: str = GENERIC_MESSAGE

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(TimberlineError):
    """
    Field level validation failure.

    ``field_errors`` maps a dotted field path (``billing_address.postcode``)
    to every message raised for it, never only the first failing field.
    """

    def __init__(
        self,
        field_errors: Dict[str, List[str]],
        message: str = "Validation failed. Please check your input.",
    ) -> None:
        self.field_errors = {k: list(v) for k, v in field_errors.items()}
        super().__init__(message)

    @classmethod
    def single(cls, field: str, error: str) -> "ValidationError":
        return cls({field: [error]})

    @classmethod
    def from_pydantic(cls, exc, prefix: str = "") -> "ValidationError":
        """Collect every error of a ``pydantic.ValidationError``."""
        field_errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ()) if part != "__root__")
            if prefix:
                loc = f"{prefix}.{loc}" if loc else prefix
            msg = err.get("msg", "Invalid value")
            # pydantic prefixes custom validator messages
            msg = msg.removeprefix("Value error, ")
            field_errors.setdefault(loc or "form", []).append(msg)
        return cls(field_errors)

    def merge(self, other: "ValidationError") -> "ValidationError":
        merged = {k: list(v) for k, v in self.field_errors.items()}
        for k, v in other.field_errors.items():
            merged.setdefault(k, []).extend(v)
        return ValidationError(merged, self.message)

    @property
    def fields(self) -> Iterable[str]:
        return self.field_errors.keys()

    def __str__(self) -> str:
        details = "; ".join(
            f"{field}: {', '.join(msgs)}" for field, msgs in self.field_errors.items()
        )
        return f"{self.message} ({details})" if details else self.message


class NotFoundError(TimberlineError):
    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found.")

    def __str__(self) -> str:
        return f"{self.kind} {self.identifier!r} not found"


class ExternalServiceError(TimberlineError):
    """
    Document store / identity / email failure. The provider's own error text
    stays on ``__cause__`` and in the logs, never in ``message``.
    """

    def __init__(self, service: str, user_message: str = GENERIC_MESSAGE) -> None:
        self.service = service
        super().__init__(user_message)


class PaymentError(TimberlineError):
    def __init__(self, message: str = "Payment processing failed. Please try again.") -> None:
        super().__init__(message)


class PermissionDeniedError(TimberlineError):
    def __init__(self, message: str = "You do not have permission to do that.") -> None:
        super().__init__(message)
