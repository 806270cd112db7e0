"""Deferred completion on top of the asyncio event loop.

Every result, error, watcher firing and connection event of the mock goes
through one DeferredScheduler. Nothing is ever delivered before control
returns to the caller that triggered it: deliveries are queued with
``loop.call_soon`` (FIFO, so same-turn operations complete in the order they
were issued) or, when a delay window is configured, with ``loop.call_later``
after a random delay.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional

from .._common.config import MockConfig

logger = logging.getLogger(__name__)


class DeferredScheduler:
    """Single cooperative queue of pending completions.

    The scheduler does not hold on to an event loop; it uses whichever loop
    is running when a delivery is queued, so one mock can be reused across
    test cases that each run their own loop.
    """

    def __init__(self, config: Optional[MockConfig] = None):
        """Initialize scheduler.

        Args:
            config: Mock configuration providing the delay window and seed
        """
        self.config = config or MockConfig()
        self._rng = random.Random(self.config.seed)
        # loop -> deliveries queued on it that have not run yet
        self._pending: Dict[asyncio.AbstractEventLoop, int] = {}
        self._idle_waiters: List[asyncio.Future] = []

    @property
    def pending(self) -> int:
        """Number of queued deliveries that have not run yet.

        Deliveries queued on an event loop that has since been closed can
        never run; they are discarded here.
        """
        self.discard_dead_loops()
        return sum(self._pending.values())

    def discard_dead_loops(self) -> int:
        """Forget deliveries queued on closed event loops.

        Returns:
            Number of deliveries discarded
        """
        dead = [loop for loop in self._pending if loop.is_closed()]
        discarded = sum(self._pending.pop(loop) for loop in dead)
        if discarded:
            logger.warning("discarded %d completion(s) queued on a closed event loop", discarded)
            self._idle_waiters = [w for w in self._idle_waiters if not w.get_loop().is_closed()]
        return discarded

    def check_loop(self) -> asyncio.AbstractEventLoop:
        """Return the running loop.

        Called before any store mutation so an operation issued outside of a
        loop fails before touching the tree.

        Raises:
            RuntimeError: If no event loop is running
        """
        return asyncio.get_running_loop()

    def resolve(self, result: Any) -> asyncio.Future:
        """Queue delivery of a successful result.

        Returns:
            Future settled with ``result`` on a later turn
        """
        return self._settle_later(lambda future: future.set_result(result))

    def reject(self, error: BaseException) -> asyncio.Future:
        """Queue delivery of a domain error.

        Returns:
            Future whose exception is set to ``error`` on a later turn
        """
        return self._settle_later(lambda future: future.set_exception(error))

    def call(self, callback: Callable[..., Any], *args: Any) -> None:
        """Queue a fire-and-forget callback (watcher or event listener).

        Exceptions raised by the callback go to the loop's exception handler
        and do not affect other deliveries. Coroutine callbacks are wrapped
        in a task.
        """
        loop = self.check_loop()

        def run():
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    loop.create_task(result)
            except Exception as exc:
                loop.call_exception_handler({
                    'message': f'Exception in zkmocklib callback {callback!r}',
                    'exception': exc,
                })

        self._enqueue(loop, run)

    async def drain(self) -> None:
        """Wait until no deliveries are pending on the running loop.

        Deliveries queued by callbacks while draining are waited for too.
        """
        loop = asyncio.get_running_loop()
        while self._pending.get(loop):
            waiter = loop.create_future()
            self._idle_waiters.append(waiter)
            await waiter

    def next_delay(self) -> float:
        """Delay in seconds for the next delivery (0 means next turn)."""
        if not self.config.has_delay:
            return 0.0
        delay_ms = self._rng.uniform(self.config.min_delay_ms, self.config.max_delay_ms)
        return delay_ms / 1000.0

    def _settle_later(self, settle: Callable[[asyncio.Future], None]) -> asyncio.Future:
        loop = self.check_loop()
        future = loop.create_future()

        def run():
            # The caller may have cancelled the future meanwhile
            if not future.done():
                settle(future)

        self._enqueue(loop, run)
        return future

    def _enqueue(self, loop: asyncio.AbstractEventLoop, fn: Callable[[], None]) -> None:
        self._pending[loop] = self._pending.get(loop, 0) + 1

        def run():
            try:
                fn()
            finally:
                remaining = self._pending.get(loop, 0) - 1
                if remaining > 0:
                    self._pending[loop] = remaining
                else:
                    self._pending.pop(loop, None)
                    self._wake_idle_waiters(loop)

        delay = self.next_delay()
        if delay > 0:
            loop.call_later(delay, run)
        else:
            loop.call_soon(run)

    def _wake_idle_waiters(self, loop: asyncio.AbstractEventLoop) -> None:
        waiters = [w for w in self._idle_waiters if w.get_loop() is loop]
        self._idle_waiters = [w for w in self._idle_waiters if w.get_loop() is not loop]
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
