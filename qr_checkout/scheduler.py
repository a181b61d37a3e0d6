"""Timer scheduling seam between the checkout and Textual."""

from __future__ import annotations

from typing import Callable, Protocol


class TimerHandle(Protocol):
    def stop(self) -> None:
        ...


class Scheduler(Protocol):
    """
    The subset of Textual's timer API the checkout needs.

    Any Textual App, Screen or Widget satisfies it as is.
    """

    def set_interval(self, interval: float, callback: Callable[[], object]) -> TimerHandle:
        ...

    def set_timer(self, delay: float, callback: Callable[[], object]) -> TimerHandle:
        ...
