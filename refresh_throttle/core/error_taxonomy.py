from __future__ import annotations

import asyncio
from enum import Enum

from refresh_throttle.core.state_machine import InvalidTransitionError


class ErrorCategory(str, Enum):
    CONFIG_INVALID = "config_invalid"
    ACTION_RAISED = "action_raised"
    OPERATION_CANCELLED = "operation_cancelled"
    LOOP_UNAVAILABLE = "loop_unavailable"
    INTERNAL_BUG = "internal_bug"


class ThrottleConfigError(ValueError):
    """Raised when a scheduler is configured with an unusable throttle."""


_CATEGORY_TO_DESCRIPTION: dict[ErrorCategory, str] = {
    ErrorCategory.CONFIG_INVALID: "Scheduler configuration is invalid; throttle must be a non-negative number of milliseconds.",
    ErrorCategory.ACTION_RAISED: "The wrapped action raised; the input stays eligible for the next call.",
    ErrorCategory.OPERATION_CANCELLED: "The operation returned by the wrapped action was cancelled before it finished.",
    ErrorCategory.LOOP_UNAVAILABLE: "No running event loop was available to track an asynchronous result or arm a timer.",
    ErrorCategory.INTERNAL_BUG: "The scheduler reached an unexpected state.",
}


def classify_exception(exc: BaseException) -> ErrorCategory:
    if isinstance(exc, ThrottleConfigError):
        return ErrorCategory.CONFIG_INVALID
    if isinstance(exc, asyncio.CancelledError):
        return ErrorCategory.OPERATION_CANCELLED
    if isinstance(exc, InvalidTransitionError):
        return ErrorCategory.INTERNAL_BUG
    if isinstance(exc, RuntimeError) and "event loop" in str(exc).lower():
        return ErrorCategory.LOOP_UNAVAILABLE
    return ErrorCategory.ACTION_RAISED


def classify_settlement(operation: asyncio.Future) -> ErrorCategory | None:
    """Categorise a settled operation without retrieving its exception."""
    if operation.cancelled():
        return ErrorCategory.OPERATION_CANCELLED
    return None


def describe_category(category: ErrorCategory) -> str:
    return _CATEGORY_TO_DESCRIPTION.get(category, _CATEGORY_TO_DESCRIPTION[ErrorCategory.INTERNAL_BUG])

