"""
Publish/subscribe value holders.

A ``Feed`` keeps its latest value and replays it to every new observer. A
``SharedFeed`` additionally runs an upstream only while someone observes it,
and keeps the upstream alive for a grace period after the last observer
leaves so a quick re-subscription does not restart it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Generic, List, Optional, TypeVar

from .config import SHARE_GRACE_SECONDS

logger = logging.getLogger("news")

T = TypeVar("T")

_MISSING: Any = object()


class Subscription:
    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._on_cancel()


class Feed(Generic[T]):
    def __init__(self, initial: Any = _MISSING):
        self._value = initial
        self._observers: List[Callable[[T], None]] = []

    @property
    def has_value(self) -> bool:
        return self._value is not _MISSING

    @property
    def value(self) -> T:
        if self._value is _MISSING:
            raise LookupError("feed has no value yet")
        return self._value

    def emit(self, value: T) -> None:
        self._value = value
        for observer in list(self._observers):
            self._deliver(observer, value)

    def subscribe(self, observer: Callable[[T], None]) -> Subscription:
        self._observers.append(observer)
        if self.has_value:
            self._deliver(observer, self._value)
        return Subscription(lambda: self._remove(observer))

    def _remove(self, observer: Callable[[T], None]) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def _deliver(self, observer: Callable[[T], None], value: T) -> None:
        # One failing observer must not starve the others.
        try:
            observer(value)
        except Exception:
            logger.exception("Feed observer %r failed", observer)


class SharedFeed(Feed[T]):
    def __init__(
        self,
        on_start: Callable[[], None],
        on_stop: Callable[[], None],
        grace: float = SHARE_GRACE_SECONDS,
        initial: Any = _MISSING,
    ):
        super().__init__(initial)
        self._on_start = on_start
        self._on_stop = on_stop
        self.grace = grace
        self.active = False
        self._stop_timer: Optional[asyncio.TimerHandle] = None

    def subscribe(self, observer: Callable[[T], None]) -> Subscription:
        self._cancel_stop_timer()
        subscription = super().subscribe(observer)
        if not self.active:
            self.active = True
            self._on_start()
        return subscription

    def _remove(self, observer: Callable[[T], None]) -> None:
        super()._remove(observer)
        if self._observers or not self.active:
            return
        if self.grace <= 0:
            self._stop()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._stop()
            return
        self._stop_timer = loop.call_later(self.grace, self._stop)

    def _cancel_stop_timer(self) -> None:
        if self._stop_timer is not None:
            self._stop_timer.cancel()
            self._stop_timer = None

    def _stop(self) -> None:
        self._stop_timer = None
        if not self.active or self._observers:
            return
        self.active = False
        self._on_stop()

    def close(self) -> None:
        """Stop the upstream now, regardless of observers."""
        self._cancel_stop_timer()
        self._observers.clear()
        if self.active:
            self.active = False
            self._on_stop()
