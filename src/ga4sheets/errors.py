"""
Exceptions raised inside a reconciliation run.  Only MissingHeaderError
escapes a run, the rest are caught per row and turned into outcomes.
"""
from collections.abc import Iterable


class GA4SheetsError(Exception):
    pass


class MissingHeaderError(GA4SheetsError):
    """Required column headers are absent, the whole batch is rejected."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required header(s): {', '.join(self.missing)}")


class ValidationError(GA4SheetsError):
    """A value is present but not acceptable for the field."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class MissingFieldError(GA4SheetsError):
    """A required cell is empty on an otherwise filled-in row."""

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required field(s): {', '.join(self.missing)}")


class ExistenceLookupError(GA4SheetsError):
    """Listing the existing children of a parent failed."""

    def __init__(self, parent: str, status: int, body: str) -> None:
        self.parent = parent
        self.status = status
        self.body = body
        super().__init__(f"Could not list existing resources under {parent}: HTTP {status}: {body}")
