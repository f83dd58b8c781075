from __future__ import annotations

import asyncio
import functools
import time
from typing import Any, Callable, Mapping

from loguru import logger

from refresh_throttle.config import Config, SchedulerOptions, resolve_options
from refresh_throttle.core.change_detection import UNSET, ArgsChangePolicy, ValueChangePolicy
from refresh_throttle.core.error_taxonomy import (
    ThrottleConfigError,
    classify_exception,
    classify_settlement,
    describe_category,
)
from refresh_throttle.core.logging_setup import emit_event
from refresh_throttle.core.state_machine import SchedulerState, SchedulerStateMachine, TransitionEvent
from refresh_throttle.runtime.pending_operation import Pending, PendingOperation, as_action_result
from refresh_throttle.runtime.throttle_timer import ThrottleTimer, remaining_ms, should_run_now

Options = SchedulerOptions | Mapping[str, Any] | None


def _no_refresh() -> None:
    return None


class InvocationScheduler:
    """Controls when a wrapped action runs for a stream of inputs.

    Calling the scheduler records the latest input. The action runs only when
    that input differs from the one it last ran with, never while an
    asynchronous result from a previous run is still pending, and no more
    often than once per ``throttle_ms``. Inputs superseded before a run starts
    are dropped.

    ``refresh`` is invoked whenever work happened outside the caller's own
    call: a deferred run fired by the timer, or an operation settling.

    A positive throttle needs an event loop for its timer: either ``loop`` or
    the loop running when the scheduler is created, which it then keeps.
    """

    positional = False
    policy_class: type = ValueChangePolicy

    def __init__(
        self,
        action: Callable[..., Any],
        options: Options = None,
        *,
        refresh: Callable[[], None] | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        clock: Callable[[], float] | None = None,
        name: str | None = None,
    ):
        self._action = action
        self._throttle_ms = resolve_options(options, positional=self.positional)
        self._refresh = refresh or _no_refresh
        if loop is None and self._throttle_ms > 0:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                raise ThrottleConfigError(
                    f"A throttle of {self._throttle_ms}ms needs an asyncio event loop; "
                    "pass loop= or create the scheduler while a loop is running"
                ) from None
        self._loop = loop
        self._clock = clock or time.monotonic
        self._name = name or getattr(action, "__qualname__", type(action).__name__)
        self._policy = self.policy_class()
        self._machine = SchedulerStateMachine(history_size=Config.STATE_HISTORY_SIZE)
        self._timer = ThrottleTimer(on_fire=self._on_timer_fired, loop=loop, clock=self._clock)
        self._pending: PendingOperation | None = None
        self._current: Any = UNSET
        self._last_executed: Any = UNSET
        self._last_invocation_ms: float | None = None
        self._notified_while_invoking = False
        self._log = logger.bind(component="scheduler", scheduler=self._name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def throttle_ms(self) -> int | float:
        return self._throttle_ms

    @property
    def state(self) -> SchedulerState:
        return self._machine.state

    @property
    def history(self) -> tuple[TransitionEvent, ...]:
        return self._machine.history

    @property
    def has_pending_operation(self) -> bool:
        return self._pending is not None

    @property
    def timer_armed(self) -> bool:
        return self._timer.armed

    def cancel(self) -> None:
        """Drop an armed throttle timer. In-flight operations are left to settle."""
        if self._timer.armed:
            self._timer.cancel()
            self._machine.transition(SchedulerState.IDLE, "timer_cancelled")
            self._emit("Throttle timer cancelled", event="timer_cancelled")

    def _call_action(self, current: Any) -> Any:
        raise NotImplementedError

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _emit(self, message: str, *, event: str, level: str = "DEBUG", **fields: Any) -> None:
        emit_event(self._log, message, level=level, event=event, state=self._machine.state.value, **fields)

    def _notify(self, current: Any) -> None:
        self._current = current
        self._sync()

    def _sync(self) -> None:
        if not self._policy.has_changed(self._last_executed, self._current):
            self._emit("Input unchanged; call suppressed", event="invocation_suppressed", level="TRACE")
            return

        if self._machine.state is SchedulerState.INVOKING:
            # Called from inside the action; decided again once it returns.
            self._notified_while_invoking = True
            return

        if self._pending is not None:
            if self._pending.attach_reevaluate(self._on_settled_reevaluate):
                self._emit("Input changed while an operation is pending", event="reevaluate_attached")
            return

        if self._timer.armed:
            return

        now_ms = self._now_ms()
        if should_run_now(self._last_invocation_ms, now_ms, self._throttle_ms):
            self._invoke(out_of_band=False, reason="input_changed")
            return

        delay = remaining_ms(self._last_invocation_ms, now_ms, self._throttle_ms)
        self._timer.arm(delay)
        self._machine.transition(SchedulerState.AWAITING_TIMER, "throttled")
        self._emit(
            f"Invocation deferred by {delay:.1f}ms",
            event="invocation_deferred",
            duration_ms=delay,
            meta={"due_ms": self._timer.due_ms},
        )

    def _on_timer_fired(self) -> None:
        if not self._policy.has_changed(self._last_executed, self._current):
            self._machine.transition(SchedulerState.IDLE, "timer_fired_unchanged")
            self._emit("Timer fired without a changed input", event="invocation_suppressed")
            return
        self._invoke(out_of_band=True, reason="timer_fired")

    def _invoke(self, *, out_of_band: bool, reason: str) -> None:
        self._machine.start_invocation(reason)
        current = self._current
        started_ms = self._now_ms()
        try:
            outcome = as_action_result(self._call_action(current), self._loop)
        except Exception as exc:
            self._notified_while_invoking = False
            self._machine.transition(SchedulerState.IDLE, "action_raised")
            category = classify_exception(exc)
            self._emit(
                f"Action raised {type(exc).__name__}: {exc}",
                event="action_failed",
                level="WARNING",
                error_category=category.value,
                meta={"detail": describe_category(category)},
            )
            raise

        try:
            self._last_invocation_ms = started_ms
            if isinstance(outcome, Pending):
                self._pending = PendingOperation(outcome.operation)
                self._pending.attach_refresh(self._on_settled)
                self._machine.transition(SchedulerState.AWAITING_COMPLETION, "operation_issued")
            self._last_executed = self._policy.snapshot(current)
        finally:
            if self._machine.state is SchedulerState.INVOKING:
                self._machine.transition(SchedulerState.IDLE, "action_returned")

        if isinstance(outcome, Pending):
            self._emit("Invocation issued", event="invocation_started", outcome="pending")
            if out_of_band:
                self._request_refresh("issued")
        else:
            self._emit(
                "Invocation completed",
                event="invocation_started",
                outcome="completed",
                duration_ms=self._now_ms() - started_ms,
            )
            if out_of_band:
                self._request_refresh("completed")

        if self._notified_while_invoking:
            self._notified_while_invoking = False
            self._sync()

    def _on_settled(self, record: PendingOperation) -> None:
        if self._pending is record:
            self._pending = None
            self._machine.transition(SchedulerState.IDLE, "operation_settled")
        category = classify_settlement(record.operation)
        self._emit(
            "Operation settled",
            event="operation_settled",
            outcome="cancelled" if category is not None else "settled",
            error_category=category.value if category is not None else None,
        )
        self._request_refresh("settled")

    def _on_settled_reevaluate(self, record: PendingOperation) -> None:
        if self._pending is record:
            self._pending = None
            self._machine.transition(SchedulerState.IDLE, "operation_settled")
        self._sync()

    def _request_refresh(self, reason: str) -> None:
        self._emit("Requesting host refresh", event="refresh_requested", meta={"reason": reason})
        self._refresh()


class ValueScheduler(InvocationScheduler):
    """Scheduler for actions taking one value, compared structurally."""

    positional = False
    policy_class = ValueChangePolicy

    def __call__(self, value: Any) -> None:
        self._notify(value)

    def _call_action(self, current: Any) -> Any:
        return self._action(current)


class ArgsScheduler(InvocationScheduler):
    """Scheduler for actions taking positional arguments, compared by identity."""

    positional = True
    policy_class = ArgsChangePolicy

    def __call__(self, *args: Any) -> None:
        self._notify(args)

    def _call_action(self, current: tuple[Any, ...]) -> Any:
        return self._action(*current)


def make_scheduler(
    action: Callable[..., Any],
    options: Options = None,
    *,
    positional: bool = False,
    refresh: Callable[[], None] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
    clock: Callable[[], float] | None = None,
    name: str | None = None,
) -> InvocationScheduler:
    scheduler_cls = ArgsScheduler if positional else ValueScheduler
    return scheduler_cls(action, options, refresh=refresh, loop=loop, clock=clock, name=name)


def _decorator(positional: bool, func: Callable[..., Any] | None, **kwargs: Any) -> Any:
    throttle_ms = kwargs.pop("throttle_ms", None)

    def decorate(fn: Callable[..., Any]) -> InvocationScheduler:
        scheduler = make_scheduler(fn, SchedulerOptions(throttle_ms=throttle_ms), positional=positional, **kwargs)
        functools.update_wrapper(scheduler, fn)
        return scheduler

    if func is not None:
        return decorate(func)
    return decorate


def throttled(
    func: Callable[[Any], Any] | None = None,
    *,
    throttle_ms: int | float | None = None,
    refresh: Callable[[], None] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
    clock: Callable[[], float] | None = None,
) -> Any:
    """Wrap a single-argument action in a ``ValueScheduler``; usable bare or with options."""
    return _decorator(False, func, throttle_ms=throttle_ms, refresh=refresh, loop=loop, clock=clock)


def throttled_args(
    func: Callable[..., Any] | None = None,
    *,
    throttle_ms: int | float | None = None,
    refresh: Callable[[], None] | None = None,
    loop: asyncio.AbstractEventLoop | None = None,
    clock: Callable[[], float] | None = None,
) -> Any:
    """Wrap a positional-argument action in an ``ArgsScheduler``."""
    return _decorator(True, func, throttle_ms=throttle_ms, refresh=refresh, loop=loop, clock=clock)
