from smartalert.alarm import AlarmBand, Verdict
from smartalert.controller import (ALARM_SUBJECT, CEASED_SUBJECT, AlarmController,
                                   NotificationState)
from smartalert.sensors import MockSensor


class ResendFlag:
    def __init__(self): self.armed = False; self.arms = 0
    def arm(self): self.armed = True; self.arms += 1
    def disarm(self): self.armed = False


def build(script, notifier, **kw):
    resend = ResendFlag()
    ctrl = AlarmController(MockSensor(script=script), notifier, AlarmBand(0.0, 28.0),
                           message=lambda: 'Check the fridge',
                           arm_resend=resend.arm, disarm_resend=resend.disarm, **kw)
    return ctrl, resend


def test_starts_idle(notifier):
    ctrl, resend = build([], notifier)
    assert ctrl.state is NotificationState.IDLE
    assert not resend.armed


def test_first_breach_alerts_and_arms(notifier):
    ctrl, resend = build([30.0], notifier)
    v = ctrl.on_status_tick()
    assert v.kind is Verdict.ABOVE_MAX
    assert ctrl.state is NotificationState.ALERTED
    assert resend.armed
    assert notifier.subjects() == [ALARM_SUBJECT]
    assert 'Check the fridge' in notifier.sent[0][1]
    assert 'Temperature Greater than Maximum' in notifier.sent[0][1]


def test_resend_while_still_alarmed(notifier):
    ctrl, resend = build([30.0, 31.0], notifier)
    ctrl.on_status_tick(); ctrl.on_status_tick()
    assert notifier.subjects() == [ALARM_SUBJECT]
    ctrl.on_resend_tick()
    assert ctrl.state is NotificationState.ALERTED
    assert resend.armed
    assert notifier.subjects() == [ALARM_SUBJECT, ALARM_SUBJECT]


def test_status_tick_in_band_does_not_clear(notifier):
    ctrl, resend = build([30.0, 20.0, 20.0], notifier)
    for _ in range(3):
        ctrl.on_status_tick()
    assert ctrl.state is NotificationState.ALERTED
    assert resend.armed
    assert notifier.subjects() == [ALARM_SUBJECT]


def test_resend_after_recovery_sends_ceased(notifier):
    ctrl, resend = build([30.0, 20.0], notifier)
    ctrl.on_status_tick(); ctrl.on_status_tick()
    ctrl.on_resend_tick()
    assert notifier.subjects() == [ALARM_SUBJECT, CEASED_SUBJECT]
    assert ctrl.state is NotificationState.IDLE
    assert not resend.armed


def test_ceased_failure_still_returns_idle(notifier):
    ctrl, resend = build([30.0, 20.0], notifier)
    ctrl.on_status_tick(); ctrl.on_status_tick()
    notifier.fail = True
    ctrl.on_resend_tick()
    assert ctrl.state is NotificationState.IDLE
    assert not resend.armed


def test_resend_failure_keeps_alerted(notifier):
    ctrl, resend = build([30.0], notifier)
    ctrl.on_status_tick()
    notifier.fail = True
    ctrl.on_resend_tick()
    assert ctrl.state is NotificationState.ALERTED
    assert resend.armed


def test_failed_first_alert_is_retried_on_next_status_tick(notifier):
    ctrl, resend = build([30.0, 30.5, 31.0], notifier)
    notifier.fail = True
    ctrl.on_status_tick()
    assert ctrl.state is NotificationState.PENDING
    assert not resend.armed
    ctrl.on_status_tick()
    assert ctrl.state is NotificationState.PENDING
    notifier.fail = False
    ctrl.on_status_tick()
    assert ctrl.state is NotificationState.ALERTED
    assert resend.armed
    assert notifier.subjects() == [ALARM_SUBJECT] * 3


def test_pending_alarm_dropped_when_condition_clears(notifier):
    ctrl, resend = build([30.0, 20.0, 20.0], notifier)
    notifier.fail = True
    ctrl.on_status_tick()
    ctrl.on_status_tick()
    assert ctrl.state is NotificationState.IDLE
    ctrl.on_status_tick()
    assert len(notifier.sent) == 1


def test_below_min_alarms(notifier):
    ctrl, _ = build([-3.0], notifier)
    assert ctrl.on_status_tick().kind is Verdict.BELOW_MIN
    assert ctrl.state is NotificationState.ALERTED


def test_unreadable_sensor_alarms_by_default(notifier):
    ctrl, _ = build([None], notifier)
    v = ctrl.on_status_tick()
    assert v.kind is Verdict.SENSOR_UNAVAILABLE
    assert ctrl.state is NotificationState.ALERTED
    assert 'Temperature Sensor Unavailable' in notifier.sent[0][1]


def test_unreadable_sensor_can_be_ignored(notifier):
    ctrl, resend = build([None, None], notifier, alarm_on_sensor_failure=False)
    ctrl.on_status_tick(); ctrl.on_status_tick()
    assert ctrl.state is NotificationState.IDLE
    assert notifier.sent == []
    assert ctrl.s.last_temp_c is None


def test_stale_resend_tick_when_idle_is_noop(notifier):
    ctrl, resend = build([20.0], notifier)
    ctrl.on_status_tick()
    ctrl.on_resend_tick()
    assert notifier.sent == []
    assert ctrl.state is NotificationState.IDLE


def test_realarm_after_ceased(notifier):
    ctrl, resend = build([30.0, 20.0, 29.0], notifier)
    ctrl.on_status_tick(); ctrl.on_status_tick(); ctrl.on_resend_tick()
    ctrl.on_status_tick()
    assert notifier.subjects() == [ALARM_SUBJECT, CEASED_SUBJECT, ALARM_SUBJECT]
    assert resend.arms == 2
