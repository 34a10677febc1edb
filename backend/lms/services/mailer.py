"""
Transactional email.

Messages are built with email.message.EmailMessage and delivered over SMTP
in a worker thread. When SMTP_HOST is empty the message is only logged,
which keeps OTP codes visible in development.
"""

import asyncio
import logging
import smtplib
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage

from lms.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _fmt_date(value: datetime | None) -> str:
    return value.strftime("%d %b %Y") if value else "-"


def _wrap(title: str, body: str) -> str:
    return (
        "<html><body style=\"font-family: Arial, sans-serif;\">"
        f"<h2>{title}</h2>{body}"
        "<p style=\"color:#888;font-size:12px\">Library Management System</p>"
        "</body></html>"
    )


class MailerService:
    """Renders and sends the library notifications."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # ==========================================
    # Delivery
    # ==========================================

    async def send_email(self, to: str, subject: str, html: str, text: str = "") -> bool:
        """
        Sends one message.

        Returns:
            True when delivered (or logged with mail disabled), False when
            the SMTP exchange failed. Failures are logged, never raised.
        """
        message = EmailMessage()
        message["From"] = self.settings.MAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or subject)
        message.add_alternative(html, subtype="html")

        if not self.settings.mail_enabled:
            logger.info(f"Mail disabled, not sending '{subject}' to {to}")
            return True

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError):
            logger.exception(f"Failed to send '{subject}' to {to}")
            return False

        logger.info(f"Sent '{subject}' to {to}")
        return True

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.settings.SMTP_HOST, self.settings.SMTP_PORT, timeout=10) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_USER:
                server.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD)
            server.send_message(message)

    # ==========================================
    # Account
    # ==========================================

    async def send_otp_email(self, to: str, name: str, otp: str, purpose: str = "verification") -> bool:
        """Verification or password reset code."""
        if not self.settings.mail_enabled:
            logger.info(f"OTP for {to} ({purpose}): {otp}")

        minutes = self.settings.OTP_EXPIRE_MINUTES
        if purpose == "reset":
            subject = "Your password reset code"
            intro = "Use the code below to reset your password."
        else:
            subject = "Verify your email"
            intro = "Use the code below to verify your email address."

        html = _wrap(
            subject,
            f"<p>Hi {name},</p><p>{intro}</p>"
            f"<p style=\"font-size:28px;letter-spacing:6px\"><b>{otp}</b></p>"
            f"<p>The code expires in {minutes} minutes.</p>",
        )
        return await self.send_email(to, subject, html, f"{intro} Code: {otp}")

    # ==========================================
    # Circulation
    # ==========================================

    async def send_loan_email(self, to: str, name: str, title: str, due_date: datetime) -> bool:
        html = _wrap(
            "Loan confirmation",
            f"<p>Hi {name},</p><p>You borrowed <b>{title}</b>.</p>"
            f"<p>Please return it by <b>{_fmt_date(due_date)}</b>.</p>",
        )
        return await self.send_email(to, f"You borrowed {title}", html)

    async def send_return_email(self, to: str, name: str, title: str, returned_at: datetime) -> bool:
        html = _wrap(
            "Return received",
            f"<p>Hi {name},</p><p><b>{title}</b> was returned on {_fmt_date(returned_at)}.</p>",
        )
        return await self.send_email(to, f"Return of {title} received", html)

    async def send_due_reminder_email(self, to: str, name: str, title: str, due_date: datetime) -> bool:
        html = _wrap(
            "Due date reminder",
            f"<p>Hi {name},</p><p><b>{title}</b> is due on <b>{_fmt_date(due_date)}</b>.</p>"
            "<p>Return or renew it to avoid late fees.</p>",
        )
        return await self.send_email(to, f"{title} is due soon", html)

    async def send_overdue_email(
        self,
        to: str,
        name: str,
        title: str,
        days_overdue: int,
        accrued: Decimal,
    ) -> bool:
        html = _wrap(
            "Overdue item",
            f"<p>Hi {name},</p><p><b>{title}</b> is {days_overdue} day(s) overdue.</p>"
            f"<p>Late fees accrued so far: <b>${accrued:.2f}</b>.</p>",
        )
        return await self.send_email(to, f"{title} is overdue", html)

    # ==========================================
    # Reservations
    # ==========================================

    async def send_reservation_email(self, to: str, name: str, title: str, expires_at: datetime) -> bool:
        html = _wrap(
            "Reservation placed",
            f"<p>Hi {name},</p><p>Your reservation for <b>{title}</b> was placed.</p>"
            f"<p>It stays valid until {_fmt_date(expires_at)}.</p>",
        )
        return await self.send_email(to, f"Reservation for {title}", html)

    async def send_reservation_approved_email(
        self,
        to: str,
        name: str,
        title: str,
        due_date: datetime,
    ) -> bool:
        html = _wrap(
            "Reservation approved",
            f"<p>Hi {name},</p><p>Your reservation for <b>{title}</b> was approved "
            f"and the loan is due on <b>{_fmt_date(due_date)}</b>.</p>",
        )
        return await self.send_email(to, f"Reservation for {title} approved", html)

    async def send_reservation_cancelled_email(self, to: str, name: str, title: str) -> bool:
        html = _wrap(
            "Reservation cancelled",
            f"<p>Hi {name},</p><p>Your reservation for <b>{title}</b> was cancelled.</p>",
        )
        return await self.send_email(to, f"Reservation for {title} cancelled", html)

    async def send_item_available_email(self, to: str, name: str, title: str) -> bool:
        html = _wrap(
            "Your reserved item is back",
            f"<p>Hi {name},</p><p><b>{title}</b> has been returned and you are next in line.</p>"
            "<p>Visit the desk to pick it up.</p>",
        )
        return await self.send_email(to, f"{title} is available", html)

    # ==========================================
    # Fines
    # ==========================================

    async def send_fine_reminder_email(
        self,
        to: str,
        name: str,
        amount: Decimal,
        reason: str,
        due_date: datetime | None,
        title: str | None = None,
    ) -> bool:
        item_line = f"<p>Item: <b>{title}</b></p>" if title else ""
        html = _wrap(
            "Outstanding fine",
            f"<p>Hi {name},</p><p>You have an outstanding fine of <b>${amount:.2f}</b>.</p>"
            f"<p>Reason: {reason}</p>{item_line}"
            f"<p>Payment due: {_fmt_date(due_date)}</p>",
        )
        return await self.send_email(to, "Outstanding library fine", html)
