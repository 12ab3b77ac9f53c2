from __future__ import annotations
import datetime as dt
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from smartalert.alarm import AlarmBand, AlarmVerdict, Verdict, evaluate
from smartalert.sensors import SensorError, TemperatureSensor

ALARM_SUBJECT = 'Smart Alert System [ALARM!]'
CEASED_SUBJECT = 'Smart Alert System [INFO!]'
CEASED_TEXT = 'Temperature Alarm Ceased'


class NotificationState(Enum):
    IDLE = 'idle'          # no alarm outstanding
    PENDING = 'pending'    # alarm seen, first alert not delivered yet
    ALERTED = 'alerted'    # alert delivered, resend timer armed


@dataclass
class State:
    notification: NotificationState = NotificationState.IDLE
    on_alarm: bool = False
    last_verdict: Optional[AlarmVerdict] = None
    last_temp_c: Optional[float] = None
    last_tick_at: Optional[dt.datetime] = None


class AlarmController:
    """
    Alarm state machine driven by two ticks.

    The status tick samples the sensor and recomputes the alarm flag; it only ever sends the
    first alert. The resend tick (armed while ALERTED) either repeats the alert or, once the
    flag has dropped, sends the "ceased" notice and goes back to IDLE. A status tick that sees
    the temperature back in band does not clear an ALERTED alarm by itself.
    """
    def __init__(self, sensor: TemperatureSensor, notifier, band: AlarmBand,
                 message: Callable[[], str] = lambda: 'Temperature alarm',
                 arm_resend: Callable[[], None] = lambda: None,
                 disarm_resend: Callable[[], None] = lambda: None,
                 alarm_on_sensor_failure: bool = True,
                 started_at: Optional[dt.datetime] = None):
        self.sensor = sensor
        self.notifier = notifier
        self.band = band
        self.s = State()
        self._message = message
        self._arm = arm_resend
        self._disarm = disarm_resend
        self.alarm_on_sensor_failure = alarm_on_sensor_failure
        self.started_at = started_at or dt.datetime.now()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def state(self) -> NotificationState:
        return self.s.notification

    def sample(self) -> Optional[float]:
        try:
            return self.sensor.read()
        except SensorError as e:
            self._log.warning("Temperature sensor read failed: %s", e)
            return None

    def _alarm_text(self, verdict: AlarmVerdict) -> str:
        value = '--' if verdict.sample is None else f'{verdict.sample:.3f}'
        return (f"{self._message()}\n{verdict.reason}\n"
                f"Temperature: {value} (band {self.band.min_c} .. {self.band.max_c})")

    def _is_alarm(self, verdict: AlarmVerdict) -> bool:
        if verdict.kind is Verdict.SENSOR_UNAVAILABLE:
            return self.alarm_on_sensor_failure
        return verdict.is_alarm

    def on_status_tick(self, now: Optional[dt.datetime] = None) -> AlarmVerdict:
        now = now or dt.datetime.now()
        t = self.sample()
        verdict = evaluate(t, self.band)
        hours = (now - self.started_at).total_seconds() / 3600.0
        self._log.info("Temperature: %s, %s", hours, '--' if t is None else t)
        self.s.last_temp_c = t; self.s.last_verdict = verdict; self.s.last_tick_at = now
        self.s.on_alarm = self._is_alarm(verdict)

        if self.s.notification is NotificationState.ALERTED:
            return verdict
        if not self.s.on_alarm:
            if self.s.notification is NotificationState.PENDING:
                self._log.info("Alarm condition gone before any alert was delivered")
                self.s.notification = NotificationState.IDLE
            return verdict

        self._log.warning("TEMPERATURE ALARM ! %s", verdict.reason)
        res = self.notifier.send(ALARM_SUBJECT, self._alarm_text(verdict))
        if res.ok:
            self._log.info("%s: Message Sent", ALARM_SUBJECT)
            self.s.notification = NotificationState.ALERTED
            self._arm()
        else:
            self._log.error("%s: Unable to Send the Message", ALARM_SUBJECT)
            self.s.notification = NotificationState.PENDING
        return verdict

    def on_resend_tick(self) -> None:
        if self.s.notification is not NotificationState.ALERTED:
            # stale tick after a disarm; nothing outstanding
            self._disarm()
            return
        if not self.s.on_alarm:
            self._log.info(CEASED_TEXT)
            res = self.notifier.send(CEASED_SUBJECT, CEASED_TEXT)
            if res.ok:
                self._log.info("%s: Message Sent", CEASED_SUBJECT)
            else:
                self._log.error("%s: Unable to Send the Message", CEASED_SUBJECT)
            self._disarm()
            self.s.notification = NotificationState.IDLE
            return
        self._log.warning("TEMPERATURE ALARM STILL ON!")
        verdict = self.s.last_verdict or evaluate(self.s.last_temp_c, self.band)
        res = self.notifier.send(ALARM_SUBJECT, self._alarm_text(verdict))
        if res.ok:
            self._log.info("%s: Message Sent", ALARM_SUBJECT)
        else:
            self._log.error("%s: Unable to Send the Message", ALARM_SUBJECT)
