"""
Email notifications for patients
Delivery is best-effort: failures are logged and reported as False
"""
import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from ..config import Settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends HTML emails over SMTP (STARTTLS)"""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "",
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email or user
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            from_email=settings.SMTP_FROM_EMAIL,
            from_name=settings.SMTP_FROM_NAME,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host and self.from_email)

    async def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send an HTML email

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body

        Returns:
            bool: True if the SMTP server accepted the message
        """
        if not self.configured:
            logger.warning(f"SMTP is not configured, skipping email '{subject}'")
            return False

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._deliver, to, subject, html),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Email '{subject}' to {to} timed out after {self.timeout}s")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email '{subject}' to {to} failed: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {to}")
        return True

    def build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = formataddr((self.from_name, self.from_email))
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(html, "html", "utf-8"))
        return message

    def _deliver(self, to: str, subject: str, html: str) -> None:
        message = self.build_message(to, subject, html)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, [to], message.as_string())
