from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    AUTH = "auth"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    TRANSPORT = "transport"
    DECODE = "decode"
    PRECONDITION = "precondition"
    BUSY = "busy"


class NotebookError(Exception):
    """Base class for every failure the notebook reports to its caller."""

    kind: ErrorKind = ErrorKind.TRANSPORT

    def __init__(self, message: str, *, path: str | None = None, status: int | None = None):
        self.path = path
        self.status = status
        super().__init__(message)


class AuthError(NotebookError):
    """Credential missing, invalid or rejected by the store."""

    kind = ErrorKind.AUTH


class NotFound(NotebookError):
    kind = ErrorKind.NOT_FOUND


class Conflict(NotebookError):
    """Version mismatch: the path already exists, or its sha moved on."""

    kind = ErrorKind.CONFLICT


class TransportError(NotebookError):
    kind = ErrorKind.TRANSPORT


class DecodeError(NotebookError):
    """Transport content is not valid base64 / UTF-8."""

    kind = ErrorKind.DECODE


class EncodeError(DecodeError):
    """Text that cannot be represented as UTF-8 (e.g. lone surrogates)."""


class PreconditionFailed(NotebookError):
    kind = ErrorKind.PRECONDITION


class OperationInProgress(NotebookError):
    kind = ErrorKind.BUSY


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a workflow operation: either a value or a NotebookError.
    Workflow operations return it instead of raising.
    """

    value: Optional[T] = None
    error: Optional[NotebookError] = None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: NotebookError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> ErrorKind | None:
        return None if self.error is None else self.error.kind

    @property
    def message(self) -> str:
        return "" if self.error is None else str(self.error)
