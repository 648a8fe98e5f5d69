"""
Outgoing email over SMTP.

The Mailer is built from Settings; nothing about the transport lives
at module level. send() raises MailError on any failure so callers
can decide per message what a failure means.
"""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from branch_finance.config import Settings

logger = logging.getLogger(__name__)


class MailError(Exception):
    pass


class Mailer:

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM or settings.SMTP_USER

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_email)

    def send(self, to: str, subject: str, body: str, html_body: str | None = None) -> None:
        if not self.configured:
            raise MailError("SMTP is not configured")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        msg.attach(MIMEText(body, "plain"))
        if html_body:
            msg.attach(MIMEText(html_body, "html"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=30) as server:
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.from_email, [to], msg.as_string())
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Failed to send email to {to}: {e}") from e

        logger.info("Email sent to %s: %s", to, subject)
