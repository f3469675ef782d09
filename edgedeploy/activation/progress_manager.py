"""
Fan-out of activation progress events to a callback and bounded queues.
"""
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from ..core.models import ActivationProgress


ProgressCallback = Union[
    Callable[[ActivationProgress], None],
    Callable[[ActivationProgress], Awaitable[None]],
]


class ProgressManager:
    """
    Publishes every poll tick's ActivationProgress.

    Subscribers get a bounded asyncio.Queue they drain at their own pace; when
    a queue is full its oldest event is dropped, so a slow consumer never
    delays the next poll. An optional callback is still invoked inline.
    """

    def __init__(
        self,
        progress_callback: Optional[ProgressCallback] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.progress_callback = progress_callback
        self.logger = logger or logging.getLogger(__name__)
        self._subscribers: List[asyncio.Queue] = []
        self.last_progress: Optional[ActivationProgress] = None

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue:
        """Register a bounded queue; ``None`` is put on it when the watch ends"""
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @staticmethod
    def _offer(queue: asyncio.Queue, item: Optional[ActivationProgress]) -> None:
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            queue.get_nowait()
            queue.put_nowait(item)

    async def publish(self, progress: ActivationProgress) -> None:
        """Deliver one progress snapshot to all subscribers and the callback"""
        self.last_progress = progress

        for queue in self._subscribers:
            self._offer(queue, progress)

        if self.progress_callback:
            try:
                if asyncio.iscoroutinefunction(self.progress_callback):
                    await self.progress_callback(progress)
                else:
                    self.progress_callback(progress)
            except Exception as e:
                self.logger.warning(
                    f"Progress callback failed for {progress.activation_id}: {e}", exc_info=True
                )

    def close(self) -> None:
        """Signal end of stream to all subscribers"""
        for queue in self._subscribers:
            self._offer(queue, None)


async def iter_progress(queue: asyncio.Queue) -> AsyncIterator[ActivationProgress]:
    """Consume a subscriber queue until the end-of-stream marker"""
    while True:
        progress = await queue.get()
        if progress is None:
            return
        yield progress
