"""Email senders used for alerts and explicit notifications."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from ..state.exceptions import NotificationFailure

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Sends plain-text email through an SMTP server.

    send() blocks on network I/O and is meant to be run in a worker thread.
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: str = "parking@localhost",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        """
        Initialize the SMTP sender.

        Args:
            host: SMTP server hostname
            port: SMTP server port
            username: Login user, no login if empty
            password: Login password
            sender: From address
            use_tls: Upgrade the connection with STARTTLS
            timeout: Socket timeout in seconds
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, destination: str, subject: str, body: str) -> None:
        """
        Send an email.

        Raises:
            NotificationFailure: If the message could not be delivered
        """
        try:
            message = EmailMessage()
            message["From"] = self.sender
            message["To"] = destination
            message["Subject"] = subject
            message.set_content(body)
        except ValueError as e:
            # Header values containing CR/LF are refused
            raise NotificationFailure(f"Invalid email to {destination!r}: {e}") from e

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationFailure(f"Failed to send email to {destination}: {e}") from e

        logger.info(f"Sent email to {destination}: {subject}")


class LogEmailSender:
    """Stand-in sender used when no SMTP server is configured; only logs."""

    def send(self, destination: str, subject: str, body: str) -> None:
        logger.info(f"Email to {destination} (not sent, SMTP disabled): {subject} | {body}")
