"""Send digest emails over SMTP."""
from __future__ import annotations

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from jobfilter.config import Settings
from jobfilter.log import get_logger

log = get_logger(__name__)

SMTP_TIMEOUT = 30


class SmtpMailer:
    """Mail sink: one HTML message per call, STARTTLS on the submission port."""

    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.mail_user
        self.password = settings.mail_password

    def send(self, to_addr: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.user
        msg["To"] = to_addr
        msg.attach(MIMEText(html, "html", "utf-8"))

        with smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT) as server:
            server.starttls()
            server.login(self.user, self.password)
            server.sendmail(self.user, [to_addr], msg.as_string())
        log.debug("Email sent to %s: %s", to_addr, subject)
