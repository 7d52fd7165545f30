"""In-app notifications plus best-effort email.

Rows are added to the caller's session so they commit with the change that
caused them. Email goes out as a background task after the response; failures
are logged and dropped.
"""
import logging
import smtplib
from email.message import EmailMessage
from uuid import UUID

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession

from roster.config import get_settings
from roster.models import Notification, User

logger = logging.getLogger(__name__)


def send_email(to: str, subject: str, body: str) -> None:
    settings = get_settings()
    if not settings.smtp_host:
        logger.debug("email_skipped", extra={"to": to, "subject": subject, "why": "smtp not configured"})
        return
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to
    msg.set_content(body)
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as s:
            if settings.smtp_tls:
                s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("email_failed", extra={"to": to, "subject": subject, "error": str(exc)})


class NotificationService:
    def add(
        self,
        session: AsyncSession,
        user_id: UUID,
        type_: str,
        title: str,
        message: str,
        meta: dict | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type_,
            title=title,
            message=message,
            is_read=False,
            meta=meta or {},
        )
        session.add(notification)
        return notification

    def email(self, background: BackgroundTasks, user: User, subject: str, body: str) -> None:
        # Usernames double as login e-mail addresses.
        if "@" not in user.username:
            return
        background.add_task(send_email, user.username, subject, body)

    def notify_shift_assignment(
        self,
        session: AsyncSession,
        background: BackgroundTasks,
        *,
        inspector: User,
        shift_id: UUID,
        building_name: str,
        week: str,
        role_name: str,
        is_backup: bool,
    ) -> None:
        role_label = f"Backup {role_name}" if is_backup else role_name
        message = f"You have been assigned to {building_name} for week {week} as {role_label}"
        self.add(
            session,
            inspector.id,
            "SHIFT_ASSIGNED",
            "New Shift Assignment",
            message,
            {"shiftId": str(shift_id), "week": week},
        )
        body = (
            f"{message}.\n\n"
            "Please log in to accept or reject the assignment."
        )
        self.email(background, inspector, "New Shift Assignment", body)
