from __future__ import annotations
from pydantic import BaseModel, Field
from typing import List, Literal, Optional


class Mail(BaseModel):
    username: str = ''
    password: str = ''
    server: str = ''          # host or host:port, SMTPS
    to: str = ''
    cc: Optional[str] = None
    message: str = 'Temperature alarm'
    timeout_s: float = 30.0


class Alarm(BaseModel):
    min_c: float = 0.0
    max_c: float = 28.0       # "Alarm Threshold"
    alarm_on_sensor_failure: bool = True


class Timing(BaseModel):
    update_interval_s: int = 60
    resend_interval_s: int = 30 * 60
    log_rotate_days: int = 7


class Sensor(BaseModel):
    kind: Literal['mock', 'ds18b20'] = 'ds18b20'
    devices_root: str = '/sys/bus/w1/devices'
    families: List[str] = Field(default_factory=lambda: ['10', '28'])


class Gpio(BaseModel):
    enabled: bool = True
    sensor_pin: int = 23      # BCM 23, header pin 16
    pull_up: bool = True


class Logging(BaseModel):
    enabled: bool = True
    level: str = 'INFO'
    file: Optional[str] = '~/smartAlertLog.txt'
    generations: int = 5


class AppConfig(BaseModel):
    mail: Mail = Field(default_factory=Mail)
    alarm: Alarm = Field(default_factory=Alarm)
    timing: Timing = Field(default_factory=Timing)
    sensor: Sensor = Field(default_factory=Sensor)
    gpio: Gpio = Field(default_factory=Gpio)
    logging: Logging = Field(default_factory=Logging)
    debug: bool = False
