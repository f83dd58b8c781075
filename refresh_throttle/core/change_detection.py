from __future__ import annotations

import datetime
import json
import numbers
from typing import Any


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


# Marks "no invocation has happened yet".
UNSET: Any = _Unset()

_SCALAR_TYPES = (
    type(None),
    bool,
    numbers.Number,
    str,
    bytes,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


def is_same_value(previous: Any, current: Any) -> bool:
    """Identity for objects, value equality only for scalars of the exact same type."""
    if previous is current:
        return True
    if type(previous) is not type(current):
        return False
    if not isinstance(current, _SCALAR_TYPES):
        return False
    return bool(previous == current)


class SerializedValue(str):
    """Canonical JSON text of a container; never equal to a raw str input."""

    __slots__ = ()

    def __eq__(self, other: object) -> bool:
        return type(other) is SerializedValue and str.__eq__(self, other)

    def __ne__(self, other: object) -> bool:
        return not self.__eq__(other)

    __hash__ = str.__hash__


def _serialize(value: Any) -> str | None:
    try:
        return json.dumps(value, sort_keys=True, default=repr)
    except TypeError:
        # Keys of mixed types cannot be sorted.
        pass
    except (ValueError, RecursionError):
        return None
    try:
        return json.dumps(value, default=repr)
    except (TypeError, ValueError, RecursionError):
        return None


def normalise_value(value: Any) -> Any:
    """Canonical form of ``value`` for comparison.

    Containers JSON cannot encode (tuple keys, circular references) are kept
    as they are and therefore compared by identity.
    """
    if isinstance(value, (dict, list, tuple)):
        text = _serialize(value)
        if text is not None:
            return SerializedValue(text)
    return value


class ValueChangePolicy:
    """Structural comparison for single-value schedulers.

    Dicts, lists and tuples are compared by their serialized content, so two
    distinct containers holding the same data count as unchanged. The snapshot
    is taken at invocation time, which means a container mutated in place
    after it was executed is seen as changed on the next call.
    """

    def snapshot(self, value: Any) -> Any:
        return normalise_value(value)

    def has_changed(self, previous: Any, current: Any) -> bool:
        if previous is UNSET:
            return True
        normalised = normalise_value(current)
        if isinstance(normalised, SerializedValue) or isinstance(previous, SerializedValue):
            return normalised != previous
        return not is_same_value(previous, normalised)


class ArgsChangePolicy:
    """Element-wise identity comparison for positional-argument schedulers.

    A call without arguments always counts as changed, even right after
    another call without arguments.
    """

    def snapshot(self, args: tuple[Any, ...]) -> tuple[Any, ...]:
        return tuple(args)

    def has_changed(self, previous: Any, current: tuple[Any, ...]) -> bool:
        if previous is UNSET:
            return True
        if len(current) == 0:
            return True
        if len(previous) != len(current):
            return True
        return any(not is_same_value(a, b) for a, b in zip(previous, current))
