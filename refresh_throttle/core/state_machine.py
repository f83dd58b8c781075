from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from enum import Enum


class SchedulerState(str, Enum):
    IDLE = "idle"
    INVOKING = "invoking"
    AWAITING_TIMER = "awaiting_timer"
    AWAITING_COMPLETION = "awaiting_completion"


_VALID_TRANSITIONS: dict[SchedulerState, set[SchedulerState]] = {
    SchedulerState.IDLE: {SchedulerState.INVOKING, SchedulerState.AWAITING_TIMER},
    SchedulerState.INVOKING: {SchedulerState.IDLE, SchedulerState.AWAITING_COMPLETION},
    SchedulerState.AWAITING_TIMER: {SchedulerState.INVOKING, SchedulerState.IDLE},
    SchedulerState.AWAITING_COMPLETION: {SchedulerState.IDLE},
}


@dataclass(frozen=True)
class TransitionEvent:
    source: SchedulerState
    target: SchedulerState
    reason: str = ""


class InvalidTransitionError(RuntimeError):
    def __init__(self, source: SchedulerState, target: SchedulerState):
        super().__init__(f"Invalid scheduler state transition: {source.value} -> {target.value}")
        self.source = source
        self.target = target


class SchedulerStateMachine:
    """Lifecycle of one invocation scheduler.

    ``idle`` accepts a new input and either starts the action (``invoking``)
    or arms the throttle timer (``awaiting_timer``). An action returning an
    asynchronous result moves to ``awaiting_completion`` until it settles.
    No state other than ``idle`` and ``awaiting_timer`` may start the action,
    so invocations never overlap.

    Each transition records the reason it happened. Only the most recent
    ``history_size`` transitions are kept since a scheduler lives as long as
    the action it wraps.
    """

    def __init__(self, initial_state: SchedulerState = SchedulerState.IDLE, *, history_size: int = 64):
        self._state = initial_state
        self._history: deque[TransitionEvent] = deque(maxlen=max(1, int(history_size)))

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def history(self) -> tuple[TransitionEvent, ...]:
        return tuple(self._history)

    @property
    def last_transition(self) -> TransitionEvent | None:
        return self._history[-1] if self._history else None

    @property
    def accepts_invocation(self) -> bool:
        return SchedulerState.INVOKING in _VALID_TRANSITIONS[self._state]

    def transition(self, target: SchedulerState, reason: str = "") -> TransitionEvent | None:
        if target == self._state:
            return None
        if target not in _VALID_TRANSITIONS.get(self._state, set()):
            raise InvalidTransitionError(self._state, target)
        event = TransitionEvent(source=self._state, target=target, reason=reason)
        self._state = target
        self._history.append(event)
        return event

    def start_invocation(self, reason: str) -> TransitionEvent:
        if not self.accepts_invocation:
            raise InvalidTransitionError(self._state, SchedulerState.INVOKING)
        event = TransitionEvent(source=self._state, target=SchedulerState.INVOKING, reason=reason)
        self._state = SchedulerState.INVOKING
        self._history.append(event)
        return event
