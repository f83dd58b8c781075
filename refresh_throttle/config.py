import math
import os
from dataclasses import dataclass
from typing import Any, Mapping

from dotenv import load_dotenv

from refresh_throttle.core.error_taxonomy import ThrottleConfigError

load_dotenv()

class Config:
    # Default spacing between invocation starts, in milliseconds.
    # Single-value schedulers only suppress duplicates and overlap unless told otherwise.
    DEFAULT_THROTTLE_MS = int(os.getenv("REFRESH_THROTTLE_MS", "0"))
    # Positional-argument schedulers space calls out a little by default.
    DEFAULT_ARGS_THROTTLE_MS = int(os.getenv("REFRESH_THROTTLE_ARGS_MS", "10"))

    # Number of state transitions each scheduler keeps for introspection
    STATE_HISTORY_SIZE = int(os.getenv("REFRESH_THROTTLE_HISTORY", "64"))

    @classmethod
    def default_throttle_ms(cls, positional: bool) -> int:
        return cls.DEFAULT_ARGS_THROTTLE_MS if positional else cls.DEFAULT_THROTTLE_MS

    @classmethod
    def set_default_throttle_ms(cls, value: int, *, positional: bool = False) -> None:
        value = validate_throttle_ms(value)
        if positional:
            cls.DEFAULT_ARGS_THROTTLE_MS = value
            os.environ["REFRESH_THROTTLE_ARGS_MS"] = str(value)
        else:
            cls.DEFAULT_THROTTLE_MS = value
            os.environ["REFRESH_THROTTLE_MS"] = str(value)


_OPTION_KEYS = {"throttle"}


@dataclass(frozen=True)
class SchedulerOptions:
    throttle_ms: int | float | None = None


def validate_throttle_ms(value: Any) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ThrottleConfigError(f"throttle must be a number of milliseconds, got {value!r}")
    if not math.isfinite(value):
        raise ThrottleConfigError(f"throttle must be finite, got {value!r}")
    if value < 0:
        raise ThrottleConfigError(f"throttle must not be negative, got {value!r}")
    return value


def resolve_options(
    options: SchedulerOptions | Mapping[str, Any] | None,
    *,
    positional: bool = False,
) -> int | float:
    """Return the throttle duration in milliseconds for a new scheduler.

    ``options`` may be omitted, a ``SchedulerOptions`` or a mapping holding the
    single key ``"throttle"``. A missing or ``None`` throttle falls back to the
    variant default from ``Config``.
    """
    if options is None:
        throttle = None
    elif isinstance(options, SchedulerOptions):
        throttle = options.throttle_ms
    elif isinstance(options, Mapping):
        unknown = set(options) - _OPTION_KEYS
        if unknown:
            raise ThrottleConfigError(f"Unknown scheduler options: {', '.join(sorted(map(str, unknown)))}")
        throttle = options.get("throttle")
    else:
        raise ThrottleConfigError(f"Unsupported scheduler options: {options!r}")

    if throttle is None:
        throttle = Config.default_throttle_ms(positional)
    return validate_throttle_ms(throttle)
