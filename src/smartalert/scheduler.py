from __future__ import annotations
import logging
import sched
import time
from collections import deque
from typing import Any, Callable, Optional


class MainLoop:
    """
    Headless, single-threaded event host with the tk-style after()/after_cancel()/mainloop() API.
    Callbacks run one at a time on the calling thread; a slow callback only delays later ones.
    timefunc/delayfunc are injectable so tests can drive a fake clock.
    """
    def __init__(self, timefunc: Callable[[], float] = time.monotonic,
                 delayfunc: Callable[[float], Any] = time.sleep, max_sleep_s: float = 1.0):
        self._time = timefunc
        self._delay = delayfunc
        self._sched = sched.scheduler(timefunc, delayfunc)
        self._max_sleep = max_sleep_s
        self._running = False
        self._posted = deque()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def post(self, fn: Callable, *args) -> None:
        """Queue fn to run on the loop before the next due job. Safe to call from a signal handler."""
        self._posted.append((fn, args))

    def _run_posted(self) -> None:
        while self._posted:
            fn, args = self._posted.popleft()
            fn(*args)

    def after(self, ms: int, fn: Callable, *args) -> sched.Event:
        return self._sched.enter(max(0, ms) / 1000.0, 0, fn, args)

    def after_cancel(self, job: sched.Event) -> None:
        try:
            self._sched.cancel(job)
        except ValueError:
            pass  # already fired

    def mainloop(self) -> None:
        """Run until quit() or until nothing is scheduled."""
        self._running = True
        self._log.info("Main loop running")
        while self._running:
            self._run_posted()
            delay = self._sched.run(blocking=False)
            if delay is None:
                break
            if self._running:
                # short naps so quit() from a signal handler is honoured promptly
                self._delay(min(delay, self._max_sleep))
        self._running = False
        self._log.info("Main loop stopped")

    def quit(self) -> None:
        self._running = False

    def run_for(self, seconds: float) -> None:
        """Run every job due within the next `seconds`, then return with the clock at the end."""
        end = self._time() + seconds
        while True:
            self._run_posted()
            delay = self._sched.run(blocking=False)
            now = self._time()
            if delay is None or now + delay > end:
                if now < end:
                    self._delay(end - now)
                return
            self._delay(delay)

    @property
    def pending(self) -> int:
        return len(self._sched.queue)


class PeriodicTimer:
    """Repeating timer on a MainLoop, in the spirit of QTimer: start(interval_ms) / stop()."""
    def __init__(self, loop: MainLoop, callback: Callable[[], None], name: str = 'timer'):
        self._loop = loop
        self._callback = callback
        self.name = name
        self._interval_ms = 0
        self._job: Optional[sched.Event] = None
        self._running = False
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def is_active(self) -> bool:
        return self._running

    def start(self, interval_ms: int) -> None:
        self.stop()
        self._interval_ms = max(1, int(interval_ms))
        self._running = True
        self._log.debug("%s started interval=%dms", self.name, self._interval_ms)
        self._schedule_next()

    def stop(self) -> None:
        if self._running:
            self._log.debug("%s stopped", self.name)
        self._running = False
        if self._job is not None:
            self._loop.after_cancel(self._job)
            self._job = None

    def _schedule_next(self) -> None:
        if self._running and self._job is None:
            self._job = self._loop.after(self._interval_ms, self._tick)

    def _tick(self) -> None:
        self._job = None
        try:
            self._callback()
        except Exception as e:
            self._log.exception("%s callback failed: %s", self.name, e)
        finally:
            self._schedule_next()
