import pytest

from smartalert.alarm import AlarmBand, ConfigurationError, Verdict, evaluate


@pytest.mark.parametrize("sample,kind", [
    (None, Verdict.SENSOR_UNAVAILABLE),
    (-0.001, Verdict.BELOW_MIN),
    (0.0, Verdict.NO_ALARM),
    (14.0, Verdict.NO_ALARM),
    (28.0, Verdict.NO_ALARM),
    (28.001, Verdict.ABOVE_MAX),
])
def test_evaluate(sample, kind):
    v = evaluate(sample, AlarmBand(0.0, 28.0))
    assert v.kind is kind
    assert v.sample == sample
    assert v.is_alarm == (kind is not Verdict.NO_ALARM)


def test_reasons():
    band = AlarmBand(0.0, 28.0)
    assert evaluate(-5.0, band).reason == 'Temperature Lower than Minimum'
    assert evaluate(35.0, band).reason == 'Temperature Greater than Maximum'
    assert evaluate(20.0, band).reason == 'No Alarm'


def test_default_band():
    band = AlarmBand()
    assert (band.min_c, band.max_c) == (0.0, 30.0)


@pytest.mark.parametrize("lo,hi", [(10.0, 10.0), (30.0, 5.0)])
def test_invalid_limits_keep_previous_band(lo, hi):
    band = AlarmBand(2.0, 8.0)
    for _ in range(2):
        with pytest.raises(ConfigurationError):
            band.set_limits(lo, hi)
        assert (band.min_c, band.max_c) == (2.0, 8.0)


def test_valid_limits_replace_band():
    band = AlarmBand()
    band.set_limits(-20.0, -15.0)
    assert evaluate(-10.0, band).kind is Verdict.ABOVE_MAX
