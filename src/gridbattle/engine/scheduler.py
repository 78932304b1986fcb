"""Virtual-clock scheduler used to pace the computer's attacks."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from heapq import heappop, heappush

TaskCallback = Callable[[], None]


@dataclass
class _Task:
    task_id: int
    due_seconds: float
    callback: TaskCallback
    cancelled: bool = False


class Scheduler:
    """One-shot deferred callbacks driven by an externally advanced clock."""

    def __init__(self) -> None:
        self._now_seconds = 0.0
        self._next_task_id = 1
        self._tasks: dict[int, _Task] = {}
        self._queue: list[tuple[float, int]] = []

    @property
    def now_seconds(self) -> float:
        return self._now_seconds

    @property
    def queued_task_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.cancelled)

    def next_due(self) -> float | None:
        """Due time of the earliest live task, if any."""
        while self._queue:
            due, task_id = self._queue[0]
            task = self._tasks.get(task_id)
            if task is not None and not task.cancelled:
                return due
            heappop(self._queue)
            self._tasks.pop(task_id, None)
        return None

    def call_later(self, delay_seconds: float, callback: TaskCallback) -> int:
        if delay_seconds < 0.0:
            raise ValueError("delay_seconds must be >= 0")
        task_id = self._next_task_id
        self._next_task_id += 1
        due_seconds = self._now_seconds + delay_seconds
        self._tasks[task_id] = _Task(task_id=task_id, due_seconds=due_seconds, callback=callback)
        heappush(self._queue, (due_seconds, task_id))
        return task_id

    def cancel(self, task_id: int) -> None:
        task = self._tasks.get(task_id)
        if task is not None:
            task.cancelled = True

    def advance(self, delta_seconds: float) -> int:
        """Advance the clock and run the callbacks that became due."""
        if delta_seconds < 0.0:
            raise ValueError("delta_seconds must be >= 0")
        return self.run_due(self._now_seconds + delta_seconds)

    def run_due(self, now_seconds: float) -> int:
        if now_seconds < self._now_seconds:
            raise ValueError("now_seconds cannot move backwards")
        self._now_seconds = now_seconds
        executed = 0
        while self._queue and self._queue[0][0] <= self._now_seconds:
            _, task_id = heappop(self._queue)
            task = self._tasks.pop(task_id, None)
            if task is None or task.cancelled:
                continue
            task.callback()
            executed += 1
        return executed

    def run_next(self) -> bool:
        """Jump the clock to the next live task and run everything due then."""
        due = self.next_due()
        if due is None:
            return False
        self.run_due(max(due, self._now_seconds))
        return True
