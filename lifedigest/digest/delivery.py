"""
Lifelog Digest Delivery

SMTP email delivery for digest emails (multipart/alternative: text + HTML).
"""

from __future__ import annotations

import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import Any

from lifedigest.digest.renderer import RenderedDigest
from lifedigest.observability.logging import get_logger
from lifedigest.observability.telemetry import counter

logger = get_logger(__name__)


class DigestDelivery:
    """Handles email delivery for digests"""

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int | None = None,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        from_email: str | None = None,
        from_name: str = "Lifelog Digest",
    ):
        """
        Initialize SMTP delivery

        Environment variables (if params not provided):
        - SMTP_HOST: SMTP server hostname
        - SMTP_PORT: SMTP server port (default: 587)
        - SMTP_USER: SMTP username
        - SMTP_PASSWORD: SMTP password
        - DIGEST_FROM_EMAIL / SMTP_FROM_EMAIL: From email address
        - SMTP_FROM_NAME: From name (default: "Lifelog Digest")
        """
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST", "smtp.gmail.com")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = smtp_user or os.getenv("SMTP_USER")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD")
        self.from_email = (
            from_email
            or os.getenv("DIGEST_FROM_EMAIL")
            or os.getenv("SMTP_FROM_EMAIL", self.smtp_user)
        )
        self.from_name = os.getenv("SMTP_FROM_NAME", from_name)

        if not all([self.smtp_host, self.smtp_user, self.smtp_password, self.from_email]):
            logger.warning("SMTP not fully configured. Set SMTP_* environment variables.")
            self.enabled = False
        else:
            self.enabled = True
            logger.info(
                "SMTP delivery configured: %s@%s:%s",
                self.smtp_user,
                self.smtp_host,
                self.smtp_port,
            )

    def build_message(self, to_email: str, digest: RenderedDigest) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = digest.subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg["Date"] = formatdate(localtime=True)
        # Clients render the last part they support, so HTML goes last
        msg.attach(MIMEText(digest.text, "plain", "utf-8"))
        msg.attach(MIMEText(digest.html, "html", "utf-8"))
        return msg

    def send_digest(self, to_email: str, digest: RenderedDigest) -> bool:
        """
        Send a rendered digest.

        Returns:
            True if sent successfully, False otherwise (logged, never raised)

        Side Effects:
            - Opens an SMTP connection (STARTTLS) and sends one message
        """
        if not self.enabled:
            logger.error("SMTP delivery not enabled. Configure SMTP_* environment variables.")
            return False
        if not to_email:
            logger.error("No recipient configured. Set DIGEST_TO_EMAIL.")
            return False

        try:
            assert self.smtp_host is not None
            assert self.smtp_user is not None
            assert self.smtp_password is not None
            msg = self.build_message(to_email, digest)

            logger.info("Connecting to %s:%s", self.smtp_host, self.smtp_port)
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg)

            counter("digest.delivery.sent")
            logger.info("Digest sent to %s", to_email)
            logger.info("Subject: %s", digest.subject)
            return True

        except Exception as e:
            counter("digest.delivery.failed")
            logger.exception("Failed to send digest: %s", e)
            return False

    def get_config_status(self) -> dict[str, Any]:
        """Get SMTP configuration status"""
        return {
            "enabled": self.enabled,
            "smtp_host": self.smtp_host,
            "smtp_port": self.smtp_port,
            "smtp_user": self.smtp_user,
            "smtp_password_set": bool(self.smtp_password),
            "from_email": self.from_email,
            "from_name": self.from_name,
        }
