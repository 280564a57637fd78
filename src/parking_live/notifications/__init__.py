"""Alert notification module."""

from .dispatcher import NotificationDispatcher
from .sender import LogEmailSender, SmtpEmailSender

__all__ = ["NotificationDispatcher", "LogEmailSender", "SmtpEmailSender"]
