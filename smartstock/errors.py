from __future__ import annotations


class BackendUnavailable(RuntimeError):
    """The active sync backend is unreachable, misconfigured or unauthenticated."""


class PartialSubmission(BackendUnavailable):
    """The ledger was written but the product update was not."""

    def __init__(self, message: str, *, ledger_written: bool = True) -> None:
        super().__init__(message)
        self.ledger_written = ledger_written


class MalformedData(ValueError):
    """A single backend record could not be decoded."""


class ValidationError(ValueError):
    pass


class NotFound(LookupError):
    pass
