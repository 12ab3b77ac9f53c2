from __future__ import annotations
import datetime as dt
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.utils import format_datetime
from typing import Callable, List, Tuple

from smartalert.config import Mail

SMTPS_PORT = 465
MESSAGE_ID_DOMAIN = 'smart_alert_system'


class NotificationError(Exception):
    """Transport, authentication or network failure while sending mail."""


@dataclass
class Delivery:
    ok: bool
    detail: str = ''


def ctime(when: dt.datetime) -> str:
    # e.g. 'Sun Oct 4 09:05:00 2026'
    return f"{when:%a %b} {when.day} {when:%H:%M:%S %Y}"


def build_payload(mail: Mail, subject: str, message: str, when: dt.datetime) -> List[str]:
    """RFC 5322 message as lines. Header order is fixed; some servers are picky about it."""
    if when.tzinfo is None:
        when = when.astimezone()
    lines = [
        f"Date: {format_datetime(when)}",
        f"To: {mail.to}",
        f"From: {sender(mail)}",
    ]
    if mail.cc:
        lines.append(f"Cc: <{mail.cc}>")
    lines.append(f"Message-ID: <{ctime(when).replace(' ', '#')}@{MESSAGE_ID_DOMAIN}>")
    lines.append(f"Subject: {subject}")
    lines.append('')  # headers / body separator
    lines.append(ctime(when))
    lines.extend(message.split('\n'))
    return lines


def split_server(server: str) -> Tuple[str, int]:
    host, sep, port = server.rpartition(':')
    if sep and port.isdigit():
        return host, int(port)
    return server, SMTPS_PORT


def sender(mail: Mail) -> str:
    host, _ = split_server(mail.server)
    return f"{mail.username}@{host}"


def recipients(mail: Mail) -> List[str]:
    rcpt = [mail.to]
    if mail.cc:
        rcpt.append(f"<{mail.cc}>")
    return rcpt


class MailNotifier:
    """
    Sends plain-text alerts over SMTPS. send() never raises: failures come back as
    Delivery(ok=False, detail=...) and are logged. Blocks until the server answers or
    mail.timeout_s expires.
    """
    def __init__(self, mail: Mail, clock: Callable[[], dt.datetime] = dt.datetime.now):
        self.mail = mail
        self._clock = clock
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def send(self, subject: str, message: str) -> Delivery:
        lines = build_payload(self.mail, subject, message, self._clock())
        try:
            self._transmit(lines)
        except NotificationError as e:
            self._log.warning("Mail '%s' not sent: %s", subject, e)
            return Delivery(False, str(e))
        self._log.debug("Mail '%s' sent to %s", subject, recipients(self.mail))
        return Delivery(True)

    def _transmit(self, lines: List[str]) -> None:
        if not self.mail.server or not self.mail.to:
            raise NotificationError('mail server or recipient not configured')
        host, port = split_server(self.mail.server)
        payload = ('\r\n'.join(lines) + '\r\n').encode('utf-8')
        try:
            with smtplib.SMTP_SSL(host, port, timeout=self.mail.timeout_s,
                                  context=ssl.create_default_context()) as smtp:
                if self.mail.username:
                    smtp.login(self.mail.username, self.mail.password)
                smtp.sendmail(f"<{sender(self.mail)}>", recipients(self.mail), payload)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"{e.__class__.__name__}: {e}") from e
