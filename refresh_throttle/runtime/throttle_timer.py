from __future__ import annotations

import asyncio
import time
from typing import Callable


def should_run_now(last_invocation_ms: float | None, now_ms: float, throttle_ms: float) -> bool:
    if throttle_ms == 0 or last_invocation_ms is None:
        return True
    return last_invocation_ms + throttle_ms <= now_ms


def remaining_ms(last_invocation_ms: float, now_ms: float, throttle_ms: float) -> float:
    return max(0.0, last_invocation_ms + throttle_ms - now_ms)


class ThrottleTimer:
    """Holds at most one armed one-shot timer for a scheduler.

    Arming while a timer is already armed is a no-op; the consumer reads the
    latest input when the timer fires, not when it was armed.
    """

    def __init__(
        self,
        *,
        on_fire: Callable[[], None],
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] | None = None,
    ):
        self._on_fire = on_fire
        self._loop = loop
        self._clock = clock or time.monotonic
        self._handle: asyncio.TimerHandle | None = None
        self._due_ms: float | None = None

    def arm(self, delay_ms: float) -> bool:
        if self._handle is not None:
            return False
        delay = max(0.0, float(delay_ms))
        loop = self._loop or asyncio.get_running_loop()
        self._due_ms = self._clock() * 1000.0 + delay

        def _run() -> None:
            self._handle = None
            self._due_ms = None
            self._on_fire()

        self._handle = loop.call_later(delay / 1000.0, _run)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._due_ms = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    @property
    def due_ms(self) -> float | None:
        return self._due_ms
