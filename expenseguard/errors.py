"""Exception hierarchy shared by the stores, the engine and its surfaces."""
from __future__ import annotations


class ExpenseGuardError(RuntimeError):
    """Base class for every error raised by the engine."""


class ValidationError(ExpenseGuardError, ValueError):
    """Raised when caller input is rejected before the store is touched."""


class StoreError(ExpenseGuardError):
    """Raised when the backing store fails to complete an operation."""


class ConflictError(StoreError):
    """Raised when a unique constraint is violated."""


class NotFoundError(ExpenseGuardError):
    """Raised when an entity cannot be located in the store."""


__all__ = [
    "ConflictError",
    "ExpenseGuardError",
    "NotFoundError",
    "StoreError",
    "ValidationError",
]
