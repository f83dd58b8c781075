import asyncio
import os
import sys

import pytest

# Ensure project root is on sys.path so `import refresh_throttle` works when running tests
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Keep defaults deterministic regardless of a developer's .env file.
os.environ["REFRESH_THROTTLE_MS"] = "0"
os.environ["REFRESH_THROTTLE_ARGS_MS"] = "10"


class RefreshRecorder:
    """Host refresh stand-in that counts calls and lets tests await them."""

    def __init__(self, values: list | None = None):
        self.calls = 0
        self.snapshots: list[list] = []
        self._values = values
        self._waiters: list[tuple[int, asyncio.Future]] = []

    def __call__(self) -> None:
        self.calls += 1
        if self._values is not None:
            self.snapshots.append(list(self._values))
        for target, fut in self._waiters:
            if self.calls >= target and not fut.done():
                fut.set_result(None)

    async def wait_for(self, count: int, timeout: float = 1.0) -> None:
        if self.calls >= count:
            return
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append((count, fut))
        await asyncio.wait_for(fut, timeout)


@pytest.fixture
def refresh_recorder():
    return RefreshRecorder
