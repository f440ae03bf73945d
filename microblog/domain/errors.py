from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ValidationIssue:
    code: str
    path: str
    message: str


class MicroblogError(Exception):
    pass


class ValidationError(MicroblogError):
    """Rejected input. Raised before any side effect has happened."""

    def __init__(self, issues: list[ValidationIssue]):
        super().__init__("validation_error")
        self.issues = issues


class NotFoundError(MicroblogError):
    pass


class DecodeError(MicroblogError):
    pass


class StorageError(MicroblogError):
    pass


class PersistenceError(MicroblogError):
    pass
