import logging
import smtplib
import socket
from email.mime.text import MIMEText

from immo_trakt.config import EmailConfig
from immo_trakt.errors import SinkError

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 30


class EmailNotifier:
    """Sends each notification as a plain-text email over STARTTLS."""

    name = "email"

    def __init__(self, config: EmailConfig):
        self.config = config

    def _build_message(self, text: str) -> MIMEText:
        subject = text.partition("\n")[0] or "New listing"
        msg = MIMEText(text, "plain", "utf-8")
        msg["Subject"] = f"[immo-trakt] {subject}"
        msg["From"] = self.config.sender or self.config.username or self.config.recipient
        msg["To"] = self.config.recipient
        return msg

    def send(self, text: str) -> None:
        msg = self._build_message(text)
        try:
            with smtplib.SMTP(
                self.config.smtp_host,
                self.config.smtp_port,
                timeout=SMTP_TIMEOUT_SECONDS,
            ) as server:
                server.ehlo()
                server.starttls()
                if self.config.username and self.config.password:
                    server.login(self.config.username, self.config.password)
                server.sendmail(msg["From"], [self.config.recipient], msg.as_string())
        except (smtplib.SMTPException, socket.error, OSError) as exc:
            raise SinkError(f"Failed to send email to {self.config.recipient}: {exc}") from exc
        logger.debug("Email sent to %s", self.config.recipient)
