import logging

log = logging.getLogger(__name__)


class SensorPin:
    """
    One-wire data pin held as input with pull-up while the daemon runs.
    Needs RPi.GPIO (extra 'pi'); without it, or off a Pi, open() logs and returns False.
    """
    def __init__(self, pin: int = 23, pull_up: bool = True):
        self.pin = pin; self.pull_up = pull_up
        self._gpio = None

    def open(self) -> bool:
        try:
            import RPi.GPIO as GPIO
        except (ImportError, RuntimeError) as e:
            log.warning("Unable to initialize the Pi GPIO: %s", e)
            return False
        try:
            GPIO.setmode(GPIO.BCM); GPIO.setwarnings(False)
            pud = GPIO.PUD_UP if self.pull_up else GPIO.PUD_OFF
            GPIO.setup(self.pin, GPIO.IN, pull_up_down=pud)
        except (RuntimeError, ValueError) as e:
            log.warning("Unable to set GPIO%d as input with pull-up: %s", self.pin, e)
            return False
        self._gpio = GPIO
        return True

    def close(self) -> None:
        if self._gpio is None:
            return
        try:
            self._gpio.cleanup(self.pin)
        except RuntimeError as e:
            log.warning("GPIO cleanup failed: %s", e)
        finally:
            self._gpio = None
