from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConfigurationError(ValueError):
    pass


class Verdict(Enum):
    NO_ALARM = 'no_alarm'
    BELOW_MIN = 'below_min'
    ABOVE_MAX = 'above_max'
    SENSOR_UNAVAILABLE = 'sensor_unavailable'


REASONS = {
    Verdict.NO_ALARM: 'No Alarm',
    Verdict.BELOW_MIN: 'Temperature Lower than Minimum',
    Verdict.ABOVE_MAX: 'Temperature Greater than Maximum',
    Verdict.SENSOR_UNAVAILABLE: 'Temperature Sensor Unavailable',
}


@dataclass(frozen=True)
class AlarmVerdict:
    kind: Verdict
    sample: Optional[float]   # None: sensor unreadable
    reason: str

    @property
    def is_alarm(self) -> bool:
        return self.kind is not Verdict.NO_ALARM


class AlarmBand:
    """Acceptable [min_c, max_c] range. An invalid pair never replaces a valid one."""
    def __init__(self, min_c: float = 0.0, max_c: float = 30.0):
        self.min_c = 0.0; self.max_c = 30.0
        self.set_limits(min_c, max_c)

    def set_limits(self, min_c: float, max_c: float) -> None:
        if not min_c < max_c:
            raise ConfigurationError(f'alarm band rejected: min {min_c} is not lower than max {max_c}')
        self.min_c = float(min_c); self.max_c = float(max_c)

    def __repr__(self) -> str:
        return f'AlarmBand({self.min_c}, {self.max_c})'


def evaluate(sample: Optional[float], band: AlarmBand) -> AlarmVerdict:
    if sample is None:
        kind = Verdict.SENSOR_UNAVAILABLE
    elif sample < band.min_c:
        kind = Verdict.BELOW_MIN
    elif sample > band.max_c:
        kind = Verdict.ABOVE_MAX
    else:
        kind = Verdict.NO_ALARM
    return AlarmVerdict(kind=kind, sample=sample, reason=REASONS[kind])
