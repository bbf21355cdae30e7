from __future__ import annotations


class SwadeError(Exception):
    """Base class for every typed error the rules engine raises."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(SwadeError):
    kind = "not_found"


class ValidationFailedError(SwadeError):
    """A business rule was violated.

    ``warning_type`` is set for the violations a GM may override with
    ``bypass_validation``; it stays ``None`` for structural rule breaks.
    """

    kind = "validation"

    def __init__(self, message: str, *, warning_type: str | None = None) -> None:
        super().__init__(message)
        self.warning_type = warning_type

    @property
    def bypassable(self) -> bool:
        return self.warning_type is not None


class StorageFailureError(SwadeError):
    kind = "storage"


WARNING_REQUIREMENT_NOT_MET = "requirement_not_met"
WARNING_POINT_LIMIT_EXCEEDED = "point_limit_exceeded"
WARNING_SLOT_LIMIT_EXCEEDED = "slot_limit_exceeded"


def requirement_not_met(message: str) -> ValidationFailedError:
    return ValidationFailedError(message, warning_type=WARNING_REQUIREMENT_NOT_MET)


def point_limit_exceeded(message: str) -> ValidationFailedError:
    return ValidationFailedError(message, warning_type=WARNING_POINT_LIMIT_EXCEEDED)


def slot_limit_exceeded(message: str) -> ValidationFailedError:
    return ValidationFailedError(message, warning_type=WARNING_SLOT_LIMIT_EXCEEDED)
