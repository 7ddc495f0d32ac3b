"""
Progress notifications for conversion jobs.
"""

import inspect
from typing import Any, Awaitable, Callable, Union

from stackshift.logging import get_logger
from stackshift.models.jobs import JobProgressEvent

logger = get_logger(__name__)

ProgressCallback = Callable[[JobProgressEvent], Union[None, Awaitable[None]]]


class ProgressChannel:
    """
    Per-job publish/subscribe channel.

    Callbacks may be plain functions or coroutine functions. A failing
    callback is logged and never affects the job or other subscribers.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ProgressCallback]] = {}

    def subscribe(self, job_id: str, callback: ProgressCallback) -> None:
        self._subscribers.setdefault(job_id, []).append(callback)

    def unsubscribe(self, job_id: str) -> None:
        """Remove every subscriber of a job."""
        self._subscribers.pop(job_id, None)

    def subscriber_count(self, job_id: str) -> int:
        return len(self._subscribers.get(job_id, []))

    async def publish(self, event: JobProgressEvent) -> None:
        for callback in list(self._subscribers.get(event.job_id, [])):
            try:
                outcome: Any = callback(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Progress callback failed for job {event.job_id}: {e}")
