"""
Cooperative pause/resume/cancel primitive.

The job controller owns an ExecutionGate per running job; the orchestrator
awaits it between batches. Pausing never interrupts in-flight work.
"""

import asyncio
from typing import Optional

from stackshift.logging import get_logger

logger = get_logger(__name__)


class ExecutionGate:
    """
    Gate awaited by a run before dispatching more work.

    The gate starts open. `pause` closes it, `resume` reopens it and `cancel`
    releases every waiter with a negative answer, permanently.
    """

    def __init__(self, name: str = "gate") -> None:
        self.name = name
        self._open = asyncio.Event()
        self._open.set()
        self._cancelled = False
        self._reason: Optional[str] = None

    @property
    def is_paused(self) -> bool:
        return not self._open.is_set() and not self._cancelled

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def pause(self) -> None:
        if self._cancelled:
            return
        self._open.clear()
        logger.debug(f"{self.name}: paused")

    def resume(self) -> None:
        if self._cancelled:
            return
        self._open.set()
        logger.debug(f"{self.name}: resumed")

    def cancel(self, reason: str = "Operation cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._reason = reason
        # Wake waiters so they observe the cancellation
        self._open.set()
        logger.debug(f"{self.name}: cancelled ({reason})")

    async def wait_until_runnable(self) -> bool:
        """
        Wait while the gate is paused.

        Returns:
            True when work may proceed, False once the gate is cancelled
        """
        while not self._cancelled and not self._open.is_set():
            await self._open.wait()
        return not self._cancelled
