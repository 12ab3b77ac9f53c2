from __future__ import annotations
import datetime as dt
import logging, os, sys
from logging.handlers import SysLogHandler
from typing import Callable, Optional

FILE_FORMAT = "%(asctime)s: %(message)s"
FILE_DATEFMT = "%m %d %Y %H:%M:%S"


class ShortFormatter(logging.Formatter):
    """
    Formatter that exposes %(shortname)s = last component of logger name (e.g., AlarmController)
    """
    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.rsplit('.', 1)[-1]
        return super().format(record)


def syslog_handler() -> logging.Handler:
    try:
        h = SysLogHandler(address='/dev/log', facility=SysLogHandler.LOG_USER)
    except OSError:
        h = SysLogHandler(facility=SysLogHandler.LOG_USER)  # UDP localhost:514
    h.ident = 'smart-alert: '
    h.setFormatter(logging.Formatter("%(message)s"))
    return h


class GenerationalFileHandler(logging.FileHandler):
    """
    Append-only log file kept as <file> plus at most `generations` old copies <file>_0.txt
    (newest) .. <file>_{generations-1}.txt (oldest).

    Rotation never happens on emit; the owner calls rotate() or rotate_if_due(). If the file
    cannot be opened, records go to the system log until a later rotation succeeds.
    """
    def __init__(self, filename: str, generations: int = 5, rotate_days: int = 7,
                 clock: Callable[[], dt.datetime] = dt.datetime.now):
        self.generations = max(1, int(generations))
        self.rotate_days = rotate_days
        self._clock = clock
        self.fallback: Optional[logging.Handler] = None
        super().__init__(os.path.expanduser(filename), mode='a', encoding='utf-8', delay=True)
        self.last_rotation = clock()

    def generation_name(self, i: int) -> str:
        return f"{self.baseFilename}_{i}.txt"

    def rotate(self) -> None:
        self.acquire()
        try:
            if self.stream:
                self.stream.flush(); self.stream.close()
                self.stream = None
            if os.path.isfile(self.baseFilename):
                oldest = self.generation_name(self.generations - 1)
                if os.path.exists(oldest):
                    self._fs(os.remove, oldest)
                for i in range(self.generations - 1, 0, -1):
                    src = self.generation_name(i - 1)
                    if os.path.exists(src):
                        self._fs(os.replace, src, self.generation_name(i))
                self._fs(os.replace, self.baseFilename, self.generation_name(0))
            self._reopen()
            self.last_rotation = self._clock()
        finally:
            self.release()

    def _fs(self, op, *paths) -> None:
        # a failed step is reported and skipped; rotation always ends with a fresh log
        try:
            op(*paths)
        except OSError as e:
            self._syslog(f"Log rotation: {op.__name__} {' -> '.join(paths)} failed: {e}")

    def _syslog(self, msg: str) -> None:
        h = self.fallback or syslog_handler()
        try:
            h.emit(logging.makeLogRecord({'msg': msg, 'levelno': logging.ERROR, 'levelname': 'ERROR'}))
        finally:
            if h is not self.fallback:
                h.close()

    def rotate_if_due(self, now: Optional[dt.datetime] = None) -> bool:
        now = now or self._clock()
        if now - self.last_rotation > dt.timedelta(days=self.rotate_days):
            self.rotate()
            return True
        return False

    def _reopen(self) -> None:
        try:
            os.makedirs(os.path.dirname(self.baseFilename), exist_ok=True)
            self.stream = self._open()
        except OSError as e:
            self.stream = None
            if self.fallback is None:
                self.fallback = syslog_handler()
            self._syslog(f"Unable to open file {self.baseFilename}: {e}.")
            return
        if self.fallback is not None:
            self.fallback.close()
            self.fallback = None

    def emit(self, record: logging.LogRecord) -> None:
        if self.stream is None and self.fallback is not None:
            self.fallback.emit(record)
            return
        super().emit(record)

    def close(self) -> None:
        if self.fallback is not None:
            self.fallback.close()
            self.fallback = None
        super().close()


def setup_logging(enabled: bool = True, level: str | int = "INFO", log_file: str | None = None,
                  generations: int = 5, rotate_days: int = 7) -> GenerationalFileHandler | None:
    """
    Configure root logging once. Console: timestamp level [logger.func] message.
    Log file: 'MM dd yyyy hh:mm:ss: message', rotated once at startup.
    Enable/disable with env SMARTALERT_LOGGING=1/0; level with SMARTALERT_LOG_LEVEL=INFO/DEBUG/etc.
    Returns the log file handler (None when logging is disabled or no file is wanted).
    """
    # If already configured, do not duplicate handlers
    if getattr(setup_logging, "_configured", False):
        return getattr(setup_logging, "_file_handler", None)

    setup_logging._file_handler = None
    if not enabled:
        logging.disable(logging.CRITICAL)
        setup_logging._configured = True
        return None

    logging.disable(logging.NOTSET)
    lvl = logging.getLevelName(level) if isinstance(level, str) else level
    fmt = "%(asctime)s %(levelname)s [%(shortname)s.%(funcName)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"

    handlers: list[logging.Handler] = []
    sh = logging.StreamHandler(stream=sys.stdout)
    sh.setFormatter(ShortFormatter(fmt=fmt, datefmt=datefmt))
    handlers.append(sh)

    fh = None
    if log_file:
        fh = GenerationalFileHandler(log_file, generations=generations, rotate_days=rotate_days)
        fh.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=FILE_DATEFMT))
        fh.rotate()  # keep the previous run's log as generation 0
        handlers.append(fh)

    logging.basicConfig(level=lvl, handlers=handlers, force=True)
    setup_logging._configured = True
    setup_logging._file_handler = fh
    return fh


def resolve_logging_from_env_and_cfg(cfg) -> tuple[bool, str, str | None]:
    """
    Determine enabled/level/file using env first, then cfg if present.
    Env:
      SMARTALERT_LOGGING=1|0, SMARTALERT_LOG_LEVEL=DEBUG|INFO|..., SMARTALERT_LOG_FILE=/path/to/log
    """
    env_enabled = os.getenv("SMARTALERT_LOGGING")
    enabled = (env_enabled is None) or (env_enabled.lower() not in ("0", "false", "no"))
    level = os.getenv("SMARTALERT_LOG_LEVEL", "INFO")
    log_file = os.getenv("SMARTALERT_LOG_FILE")

    lcfg = getattr(cfg, "logging", None)
    if lcfg is not None:
        if env_enabled is None:
            enabled = bool(lcfg.enabled)
        if os.getenv("SMARTALERT_LOG_LEVEL") is None:
            level = str(lcfg.level)
        if os.getenv("SMARTALERT_LOG_FILE") is None:
            log_file = lcfg.file

    return enabled, level, log_file
