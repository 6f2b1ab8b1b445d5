import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from ..utils.logger import conquest_logger


@dataclass
class DeferredTask:
    callback: Callable[[], None]
    generation: int
    label: str = ""
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class DeferredScheduler:
    """
    Queue of deferred engine steps (AI turns).

    Each task is stamped with the game's generation counter when scheduled.
    The counter moves on every phase, stage or current-player transition, so
    a task whose generation no longer matches is dropped instead of run.
    """

    def __init__(self, generation_source: Callable[[], int]):
        self._generation_source = generation_source
        self._queue: Deque[DeferredTask] = deque()

    def schedule(self, callback: Callable[[], None], label: str = "") -> Optional[DeferredTask]:
        """Queue a callback for the current generation. One task per generation."""
        generation = self._generation_source()
        for task in self._queue:
            if task.generation == generation and not task.cancelled:
                return None
        task = DeferredTask(callback=callback, generation=generation, label=label)
        self._queue.append(task)
        return task

    def is_stale(self, task: DeferredTask) -> bool:
        return task.cancelled or task.generation != self._generation_source()

    def cancel_all(self) -> int:
        """Drop every pending task. Returns how many were dropped."""
        dropped = len(self._queue)
        self._queue.clear()
        return dropped

    @property
    def pending(self) -> int:
        return len(self._queue)

    def run_next(self) -> bool:
        """Run the oldest task if it is still current. Returns False when the queue is empty."""
        if not self._queue:
            return False
        task = self._queue.popleft()
        if self.is_stale(task):
            conquest_logger.log_debug(f"Dropped stale deferred task '{task.label}' (generation {task.generation})")
            return True
        task.callback()
        return True

    def run_pending(self, limit: int = 10000) -> int:
        """Drain the queue synchronously, running at most `limit` tasks."""
        processed = 0
        while processed < limit and self.run_next():
            processed += 1
        return processed

    async def run_async(self, step_delay: float = 0.0, limit: int = 10000) -> int:
        """Drain the queue on the event loop, yielding between steps."""
        processed = 0
        while processed < limit and self._queue:
            await asyncio.sleep(step_delay)
            self.run_next()
            processed += 1
        return processed
