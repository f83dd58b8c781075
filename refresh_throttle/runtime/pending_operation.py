from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Union


@dataclass(frozen=True)
class Immediate:
    value: Any


@dataclass(frozen=True)
class Pending:
    operation: asyncio.Future


ActionResult = Union[Immediate, Pending]


def as_action_result(result: Any, loop: asyncio.AbstractEventLoop | None = None) -> ActionResult:
    """Tag what the wrapped action returned.

    Futures and tasks are tracked as they are. Coroutines are scheduled as a
    task on ``loop`` (or the running loop); anything else completed
    synchronously.
    """
    if asyncio.isfuture(result):
        return Pending(result)
    if asyncio.iscoroutine(result):
        try:
            target = loop or asyncio.get_running_loop()
        except RuntimeError:
            result.close()
            raise
        return Pending(target.create_task(result))
    return Immediate(result)


@dataclass
class PendingOperation:
    """An in-flight asynchronous invocation and the reactions attached to it."""

    operation: asyncio.Future
    refresh_on_settle_attached: bool = False
    reevaluate_on_settle_attached: bool = False

    @property
    def settled(self) -> bool:
        return self.operation.done()

    def attach_refresh(self, callback: Callable[[PendingOperation], None]) -> bool:
        if self.refresh_on_settle_attached:
            return False
        self.operation.add_done_callback(lambda _: callback(self))
        self.refresh_on_settle_attached = True
        return True

    def attach_reevaluate(self, callback: Callable[[PendingOperation], None]) -> bool:
        if self.reevaluate_on_settle_attached:
            return False
        self.operation.add_done_callback(lambda _: callback(self))
        self.reevaluate_on_settle_attached = True
        return True
