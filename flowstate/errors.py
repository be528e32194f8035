"""Error types raised by flowstate stores and backends."""

from __future__ import annotations


class WorkflowStoreError(Exception):
    """Base class for all storage errors.

    ``status`` mirrors the HTTP status an API layer should answer with.
    """

    status: int = 500

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status is not None:
            self.status = status


class NotFoundError(WorkflowStoreError):
    """The addressed entity does not exist."""

    status = 404


class ConflictError(WorkflowStoreError):
    """A uniqueness or transition precondition was violated."""

    status = 409


class BackendError(WorkflowStoreError):
    """The underlying store call failed for infrastructure reasons."""

    status = 502


class ConditionFailedError(Exception):
    """Raised by backends when a conditional write is rejected.

    Stores translate this into :class:`ConflictError` or
    :class:`NotFoundError` depending on the operation.
    """
