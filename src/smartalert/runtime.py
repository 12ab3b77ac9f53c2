from __future__ import annotations
import datetime as dt
import logging
import os
from typing import Callable, Optional

import yaml
from pydantic import ValidationError

from smartalert.alarm import AlarmBand, ConfigurationError
from smartalert.config import AppConfig
from smartalert.controller import AlarmController
from smartalert.gpioio import SensorPin
from smartalert.logging_config import GenerationalFileHandler
from smartalert.notify import MailNotifier
from smartalert.scheduler import MainLoop, PeriodicTimer
from smartalert.sensors import DS18B20Sensor, MockSensor, TemperatureSensor

CONFIG_PATHS = ['config/config.yaml', 'config.yaml']
INFO_SUBJECT = 'Smart Alert System [INFO]'

log = logging.getLogger(__name__)


def find_config(path: str | None = None) -> str | None:
    for p in ([path] if path else []) + CONFIG_PATHS:
        if p and os.path.exists(p):
            return p
    return None


def load_config(path: str | None = None) -> AppConfig:
    p = find_config(path)
    if p is None:
        log.warning("No config file found; using defaults")
        return AppConfig()
    try:
        with open(p, 'r') as f:
            return AppConfig.model_validate(yaml.safe_load(f) or {})
    except (OSError, yaml.YAMLError, ValidationError) as e:
        log.error("Unable to load settings from %s: %s; using defaults", p, e)
        return AppConfig()


def build_sensor(cfg: AppConfig) -> TemperatureSensor:
    if cfg.sensor.kind == 'mock':
        return MockSensor()
    return DS18B20Sensor(cfg.sensor.devices_root, cfg.sensor.families)


class SmartAlert:
    """
    The daemon: owns the two timers, the alarm controller and the resources released on shutdown.
    Everything runs on `loop`, one callback at a time.
    """
    def __init__(self, cfg: AppConfig, loop: MainLoop, sensor: Optional[TemperatureSensor], notifier,
                 log_handler: Optional[GenerationalFileHandler] = None, gpio: Optional[SensorPin] = None,
                 clock: Callable[[], dt.datetime] = dt.datetime.now, config_path: str | None = None):
        self.cfg = cfg
        self.loop = loop
        self.sensor = sensor
        self.notifier = notifier
        self.log_handler = log_handler
        self.gpio = gpio
        self.config_path = config_path
        self._clock = clock
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.sensor_connected = False
        self._stopped = False

        self.band = AlarmBand()
        self.apply_band(cfg.alarm.min_c, cfg.alarm.max_c)
        self.status_timer = PeriodicTimer(loop, self.on_status_tick, 'status')
        self.resend_timer = PeriodicTimer(loop, self.on_resend_tick, 'resend')
        self.ctrl = AlarmController(
            sensor, notifier, self.band,
            message=lambda: self.cfg.mail.message,
            arm_resend=self._arm_resend, disarm_resend=self.resend_timer.stop,
            alarm_on_sensor_failure=cfg.alarm.alarm_on_sensor_failure,
            started_at=clock())

    def apply_band(self, min_c: float, max_c: float) -> bool:
        try:
            self.band.set_limits(min_c, max_c)
        except ConfigurationError as e:
            self._log.error("%s; keeping %s", e, self.band)
            return False
        return True

    def _arm_resend(self) -> None:
        self.resend_timer.start(self.cfg.timing.resend_interval_s * 1000)

    def log_settings(self) -> None:
        m = self.cfg.mail
        self._log.info("Settings Changed. New Values Are:")
        self._log.info("Username: %s", m.username)
        self._log.info("Mail Server: %s", m.server)
        self._log.info("To: %s", m.to)
        if m.cc:
            self._log.info("Cc: %s", m.cc)
        self._log.info("Threshold: %s", self.band.max_c)

    def notify_info(self, message: str) -> bool:
        res = self.notifier.send(INFO_SUBJECT, message)
        if res.ok:
            self._log.info("%s: Message Sent", INFO_SUBJECT)
        else:
            self._log.error("%s: Unable to Send the Message", INFO_SUBJECT)
        return res.ok

    def start(self) -> None:
        self.log_settings()
        if self.gpio is not None:
            self.gpio.open()

        self.sensor_connected = self.sensor is not None and self.sensor.is_connected()
        now = self._clock()
        self.ctrl.started_at = now
        if self.log_handler is not None:
            self.log_handler.last_rotation = now
        if self.sensor_connected:
            t = self.ctrl.sample()
            self._log.info("Temperature: %s, %s", 0.0, '--' if t is None else t)
        else:
            self._log.warning("No Temperature Sensor Found")

        self.status_timer.start(self.cfg.timing.update_interval_s * 1000)
        self._log.info("Smart Alert System Started")
        if not self.cfg.debug:
            self.notify_info("Smart Alert System Has Been Restarted")

    def on_status_tick(self) -> None:
        now = self._clock()
        try:
            if self.log_handler is not None and self.log_handler.rotate_if_due(now):
                self._log.info("Log file rotated")
        except OSError as e:
            self._log.error("Log rotation failed: %s", e)
        if self.sensor_connected:
            self.ctrl.on_status_tick(now)

    def on_resend_tick(self) -> None:
        self.ctrl.on_resend_tick()

    def reload_settings(self, path: str | None = None) -> None:
        """Re-read the settings file between ticks. An invalid band keeps the previous one."""
        p = find_config(path or self.config_path)
        if p is None:
            self._log.warning("Settings reload: no config file found")
            return
        try:
            with open(p, 'r') as f:
                new = AppConfig.model_validate(yaml.safe_load(f) or {})
        except (OSError, yaml.YAMLError, ValidationError) as e:
            self._log.error("Settings reload from %s failed: %s", p, e)
            return
        self.cfg.mail = new.mail
        self.notifier.mail = new.mail
        if self.apply_band(new.alarm.min_c, new.alarm.max_c):
            self.cfg.alarm = new.alarm
        self.ctrl.alarm_on_sensor_failure = self.cfg.alarm.alarm_on_sensor_failure
        self.log_settings()

    def shutdown(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        self._log.info("Switching Off the Program")
        self.status_timer.stop()
        self.resend_timer.stop()
        try:
            if not self.cfg.debug:
                self.notify_info("Smart Alert Has Been Switched Off")
        finally:
            if self.gpio is not None:
                self.gpio.close()
            if self.log_handler is not None:
                self.log_handler.flush()


def build_runtime(cfg: AppConfig, log_handler: Optional[GenerationalFileHandler] = None,
                  loop: Optional[MainLoop] = None, config_path: str | None = None) -> SmartAlert:
    loop = loop or MainLoop()
    gpio = SensorPin(cfg.gpio.sensor_pin, cfg.gpio.pull_up) if cfg.gpio.enabled else None
    return SmartAlert(cfg, loop, build_sensor(cfg), MailNotifier(cfg.mail),
                      log_handler=log_handler, gpio=gpio, config_path=config_path)
