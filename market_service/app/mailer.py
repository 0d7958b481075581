"""트랜잭션 메일 발송."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from .config import MailConfig
from .errors import MailDeliveryError


logger = logging.getLogger(__name__)


class MailerInterface(Protocol):
    def send(self, recipient: str, subject: str, body: str) -> None:  # pragma: no cover - Protocol
        """실패하면 MailDeliveryError."""
        ...


class SmtpMailer(MailerInterface):
    """SMTP 로 텍스트 메일을 보낸다. 라우트가 threadpool 에서 돌기 때문에 동기로 보낸다."""

    def __init__(self, config: MailConfig, *, timeout: float = 10.0) -> None:
        self._config = config
        self._timeout = timeout

    def send(self, recipient: str, subject: str, body: str) -> None:
        if not self._config.is_configured:
            raise MailDeliveryError()

        message = EmailMessage()
        message["From"] = formataddr((self._config.sender_name, self._config.username or ""))
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self._config.host, self._config.port, timeout=self._timeout) as smtp:
                if self._config.use_tls:
                    smtp.starttls()
                smtp.login(self._config.username or "", self._config.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("failed to send mail to %s: %s", recipient, exc)
            raise MailDeliveryError() from exc


def build_otp_message(code: str, ttl_minutes: int) -> tuple[str, str]:
    subject = "ReWear verification code"
    body = (
        f"Your ReWear verification code is {code}.\n"
        f"It expires in {ttl_minutes} minutes.\n\n"
        "If you did not request this code, you can ignore this email."
    )
    return subject, body


def build_redeemed_message(
    *,
    seller_name: str,
    buyer_name: str,
    item_title: str,
    points: int,
    seller_points_total: int,
) -> tuple[str, str]:
    subject = f"Your item \"{item_title}\" was redeemed"
    body = (
        f"Hi {seller_name or 'there'},\n\n"
        f"{buyer_name or 'A member'} redeemed \"{item_title}\" for {points} points.\n"
        f"Your balance is now {seller_points_total} points.\n\n"
        "Thanks for rewearing!"
    )
    return subject, body
