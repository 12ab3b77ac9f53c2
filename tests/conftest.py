import datetime as dt
import pytest

from smartalert.notify import Delivery


class DummyNotifier:
    """Records every send; `fail` makes the next sends report failure."""
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail
        self.mail = None

    def send(self, subject, message):
        self.sent.append((subject, message))
        return Delivery(False, 'boom') if self.fail else Delivery(True)

    def subjects(self):
        return [s for s, _ in self.sent]


class FakeClock:
    """Monotonic seconds plus a matching wall clock, advanced only by sleep()."""
    def __init__(self, start=dt.datetime(2026, 1, 5, 8, 0, 0)):
        self.t = 0.0
        self.start = start

    def time(self):
        return self.t

    def sleep(self, s):
        self.t += max(0.0, s)

    def now(self):
        return self.start + dt.timedelta(seconds=self.t)


@pytest.fixture
def notifier():
    return DummyNotifier()


@pytest.fixture
def clock():
    return FakeClock()
