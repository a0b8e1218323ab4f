"""
Error taxonomy for the income matrix.

Every failure that leaves the core is an IncomeMatrixError carrying a
machine-readable code and a human-readable message. Three kinds exist:

- ValidationError: caller input broke a precondition (detected before mutating)
- NotFoundError: the referenced category does not exist
- AdapterError: the storage backend or transport failed

AdapterError always keeps the original exception as its cause.
"""

import functools
from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes."""
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_NAME = "duplicate_name"
    CATEGORY_NOT_FOUND = "category_not_found"

    INIT_FAILED = "init_failed"
    CONNECTION_FAILED = "connection_failed"
    LOAD_CATEGORIES_FAILED = "load_categories_failed"
    CREATE_CATEGORY_FAILED = "create_category_failed"
    RENAME_CATEGORY_FAILED = "rename_category_failed"
    DELETE_CATEGORY_FAILED = "delete_category_failed"
    REORDER_CATEGORIES_FAILED = "reorder_categories_failed"
    LOAD_MATRIX_FAILED = "load_matrix_failed"
    SET_CELL_FAILED = "set_cell_failed"
    BULK_SET_ROW_FAILED = "bulk_set_row_failed"
    RESET_FAILED = "reset_failed"
    SAVE_CATEGORIES_FAILED = "save_categories_failed"
    SAVE_MATRIX_FAILED = "save_matrix_failed"


class IncomeMatrixError(Exception):
    """Base error for everything raised by the income matrix."""

    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[Any] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code) if code is not None else self.default_code
        self.details = details
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict:
        """Render as the error part of an API envelope."""
        details = self.details
        if details is None and self.cause is not None:
            details = str(self.cause)
        return {
            "error": self.message,
            "code": self.code.value,
            "details": details,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class ValidationError(IncomeMatrixError):
    """Caller-supplied input violates a precondition."""

    default_code = ErrorCode.VALIDATION_FAILED


class NotFoundError(IncomeMatrixError):
    """Referenced category does not exist."""

    default_code = ErrorCode.CATEGORY_NOT_FOUND


class AdapterError(IncomeMatrixError):
    """The underlying storage or transport failed."""

    default_code = ErrorCode.LOAD_CATEGORIES_FAILED


def wrap_adapter_error(
    error: BaseException,
    code: ErrorCode,
    message: str,
) -> IncomeMatrixError:
    """
    Wrap an arbitrary failure into an AdapterError.

    Errors that are already IncomeMatrixError pass through unchanged so
    validation and not-found conditions keep their kind.
    """
    if isinstance(error, IncomeMatrixError):
        return error
    return AdapterError(message, code=code, cause=error)


def adapter_operation(code: ErrorCode, message: str):
    """
    Decorator for async adapter methods.

    IncomeMatrixError passes through; any other exception is re-raised as
    AdapterError(message, code) with the original as its cause.
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except IncomeMatrixError:
                raise
            except Exception as e:
                raise AdapterError(message, code=code, cause=e) from e
        return wrapper
    return decorator
