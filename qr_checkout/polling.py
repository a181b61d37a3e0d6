"""Bounded payment status polling."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable

from qr_checkout.config import MAX_POLL_ATTEMPTS, POLL_INTERVAL_SECONDS
from qr_checkout.errors import GatewayError
from qr_checkout.gateway import OrderGatewayPort, payment_status_of
from qr_checkout.payment_session import PaymentEvent, classify_status
from qr_checkout.scheduler import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[PaymentEvent], None]


@dataclass
class _PollingRun:
    """Client-side polling session for one payment code."""

    payment_code: str
    on_transition: TransitionCallback
    attempts: int = 0
    cancelled: bool = False
    timer: TimerHandle | None = None
    tasks: set[asyncio.Task] = field(default_factory=set)


class PollingController:
    """
    Polls payment status on a fixed interval with a hard attempt ceiling.

    At most one run is active; start() tears down the previous run first.
    Each tick increments the attempt counter and, unless the ceiling has
    been reached, spawns one status query without waiting for it. Query
    failures are inconclusive and never end the loop. The loop ends on a
    terminal classification, on exhaustion, or on stop().
    """

    def __init__(
        self,
        gateway: OrderGatewayPort,
        scheduler: Scheduler,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        on_progress: Callable[[], None] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._gateway = gateway
        self._scheduler = scheduler
        self._interval = interval
        self._max_attempts = max_attempts
        self._on_progress = on_progress
        self._run: _PollingRun | None = None
        self._last_attempts = 0
        self._tasks: set[asyncio.Task] = set()

    def __enter__(self) -> PollingController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def is_active(self) -> bool:
        return self._run is not None

    @property
    def attempts_used(self) -> int:
        if self._run is not None:
            return self._run.attempts
        return self._last_attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def in_flight(self) -> bool:
        return self._run is not None and bool(self._run.tasks)

    def start(self, payment_code: str, on_transition: TransitionCallback) -> None:
        if not payment_code:
            raise ValueError("payment_code is required to poll")
        self.stop()
        run = _PollingRun(payment_code=payment_code, on_transition=on_transition)
        self._run = run
        self._last_attempts = 0
        run.timer = self._scheduler.set_interval(self._interval, self._tick)
        logger.info(
            "polling_started payment_code=%s interval=%s max_attempts=%s",
            payment_code,
            self._interval,
            self._max_attempts,
        )

    def stop(self) -> None:
        run = self._run
        if run is None:
            return
        self._run = None
        run.cancelled = True
        self._last_attempts = run.attempts
        if run.timer is not None:
            run.timer.stop()
            run.timer = None

        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in list(run.tasks):
            if task is not current:
                task.cancel()
        logger.info("polling_stopped payment_code=%s attempts=%s", run.payment_code, run.attempts)

    async def wait_idle(self) -> None:
        """Wait until no status query is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _tick(self) -> None:
        run = self._run
        if run is None or run.cancelled:
            return
        try:
            run.attempts += 1
            if run.attempts >= self._max_attempts:
                logger.info("polling_exhausted payment_code=%s attempts=%s", run.payment_code, run.attempts)
                self.stop()
                self._report(run, PaymentEvent.TIME_OUT)
                return

            logger.debug("poll_tick payment_code=%s attempt=%s", run.payment_code, run.attempts)
            task = asyncio.get_running_loop().create_task(self._query(run, run.attempts))
            run.tasks.add(task)
            self._tasks.add(task)
            task.add_done_callback(lambda done, owner=run: self._forget(owner, done))
        except Exception:
            logger.exception("poll_tick_failed payment_code=%s", run.payment_code)
        self._notify_progress()

    def _forget(self, run: _PollingRun, task: asyncio.Task) -> None:
        run.tasks.discard(task)
        self._tasks.discard(task)
        if not run.cancelled:
            self._notify_progress()

    async def _query(self, run: _PollingRun, attempt: int) -> None:
        try:
            result = await self._gateway.query_payment_status(run.payment_code)
        except GatewayError as exc:
            logger.warning(
                "poll_inconclusive payment_code=%s attempt=%s status=%s error=%s",
                run.payment_code,
                attempt,
                exc.status,
                exc.message,
            )
            return
        except Exception:
            logger.exception("poll_inconclusive payment_code=%s attempt=%s", run.payment_code, attempt)
            return

        if run.cancelled:
            return

        status = payment_status_of(result)
        event = classify_status(status)
        if event is None:
            logger.debug("poll_pending payment_code=%s attempt=%s status=%s", run.payment_code, attempt, status)
            return

        logger.info("poll_terminal payment_code=%s attempt=%s status=%s", run.payment_code, attempt, status)
        self.stop()
        self._report(run, event)

    def _report(self, run: _PollingRun, event: PaymentEvent) -> None:
        try:
            run.on_transition(event)
        except Exception:
            logger.exception("transition_callback_failed payment_code=%s event=%s", run.payment_code, event.value)

    def _notify_progress(self) -> None:
        if self._on_progress is None:
            return
        try:
            self._on_progress()
        except Exception:
            logger.exception("progress_callback_failed")
