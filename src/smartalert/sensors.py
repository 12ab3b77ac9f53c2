from __future__ import annotations
import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

VALID_MARKER = 'YES'
TEMP_TOKEN = 't='


class SensorError(Exception):
    """Sensor missing, unreadable, reporting invalid data or unparsable."""


def parse_w1_slave(text: str) -> float:
    """
    Parse the w1_slave blob of a one-wire thermometer, e.g.

        4b 01 4b 46 7f ff 05 10 e1 : crc=e1 YES
        4b 01 4b 46 7f ff 05 10 e1 t=20687

    The first line must end with YES (CRC ok); the t= token after it holds millidegrees C.
    """
    lines = text.splitlines()
    if not lines or not lines[0].rstrip().endswith(VALID_MARKER):
        raise SensorError('sensor data not valid (no YES marker)')
    start = text.find(VALID_MARKER) + len(VALID_MARKER)
    pos = text.find(TEMP_TOKEN, start)
    if pos < 0:
        raise SensorError('temperature token t= not found')
    token = text[pos + len(TEMP_TOKEN):].split(None, 1)
    try:
        return int(token[0]) / 1000.0
    except (IndexError, ValueError):
        raise SensorError(f'bad temperature token near offset {pos}') from None


class TemperatureSensor:
    def is_connected(self) -> bool: raise NotImplementedError
    def read(self) -> float: raise NotImplementedError


class MockSensor(TemperatureSensor):
    """Random walk around start_c, or replays `script` (None entries read as failures)."""
    def __init__(self, start_c: float = 22.0, script: Optional[Iterable[Optional[float]]] = None):
        self.t = start_c
        self._script = list(script) if script is not None else None

    def is_connected(self) -> bool:
        return True

    def read(self) -> float:
        if self._script is not None:
            if not self._script:
                raise SensorError('mock script exhausted')
            value = self._script.pop(0)
            if value is None:
                raise SensorError('mock sensor unreadable')
            self.t = value
            return value
        self.t += random.uniform(-0.05, 0.05)
        return round(self.t, 2)


class DS18B20Sensor(TemperatureSensor):
    """
    DS1820 / DS18B20 on the w1-gpio bus. Enable 1-Wire in raspi-config;
    devices appear as <root>/10-xxxx or <root>/28-xxxx.
    """
    def __init__(self, devices_root: str = '/sys/bus/w1/devices', families: Sequence[str] = ('10', '28')):
        self.root = Path(devices_root)
        self.families = tuple(families)
        self.path: Optional[Path] = None
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def candidates(self) -> List[Path]:
        if not self.root.is_dir():
            return []
        return sorted(p for p in self.root.iterdir()
                      if p.is_dir() and p.name.split('-', 1)[0] in self.families and '-' in p.name)

    def is_connected(self) -> bool:
        for dev in self.candidates():
            slave = dev / 'w1_slave'
            try:
                text = slave.read_text()
            except OSError as e:
                self._log.debug("skip %s: %s", slave, e)
                continue
            first = text.splitlines()[0] if text else ''
            if VALID_MARKER in first:
                self.path = slave
                self._log.info("Temperature sensor found at %s", slave)
                return True
        return False

    def read(self) -> float:
        if self.path is None:
            raise SensorError('no sensor device detected')
        try:
            text = self.path.read_text()
        except OSError as e:
            raise SensorError(f'cannot read {self.path}: {e}') from e
        return parse_w1_slave(text)
