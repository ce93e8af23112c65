import logging
import smtplib
from email.message import EmailMessage
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models.customer import Customer
from models.damage_report import DamageReport, DamageStatus
from models.notification import Notification
from models.user import User
from services.config_service import get_smtp_settings

log = logging.getLogger(__name__)


def format_label(value: str) -> str:
    return value.replace("_", " ").title()


def send_email(subject: str, body: str, recipients: list[str]) -> bool:
    """Send a plain-text email; returns False when SMTP is not configured."""
    settings = get_smtp_settings()
    if settings is None or not recipients:
        return False

    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings["from_address"]
    message["To"] = ", ".join(recipients)
    message.set_content(body)

    with smtplib.SMTP(settings["host"], settings["port"], timeout=10) as smtp:
        smtp.starttls()
        smtp.login(settings["user"], settings["password"])
        smtp.send_message(message)
    return True


class NotificationService:
    @staticmethod
    def status_change_recipients(report: DamageReport, db: Session) -> tuple[Optional[User], list[str]]:
        """Reporter always; the customer contact too once the customer is being notified."""
        reporter = db.get(User, report.reported_by) if report.reported_by else None
        emails: list[str] = []
        if reporter is not None and reporter.email:
            emails.append(str(reporter.email))

        if report.status == DamageStatus.CUSTOMER_NOTIFIED:
            customer = db.get(Customer, report.customer_id)
            if customer is not None and customer.email:
                emails.append(str(customer.email))

        return reporter, emails

    @staticmethod
    def _deliver_status_change(report: DamageReport, actor: User, note: Optional[str], db: Session) -> None:
        reporter, emails = NotificationService.status_change_recipients(report, db)
        status_label = format_label(report.status.value)
        actor_name = getattr(actor, "full_name", None) or getattr(actor, "username", "system")
        message = f"Damage report {report.reference_number} is now {status_label} (changed by {actor_name})"

        if reporter is not None:
            db.add(Notification(
                user_id=reporter.id,
                report_id=report.id,
                type="STATUS_CHANGE",
                message=message[:500],
            ))
            db.commit()

        body = message
        if note:
            body += f"\n\nNote: {note}"
        send_email(f"Status Update: {report.reference_number} -> {status_label}", body, emails)

    @staticmethod
    def notify_status_change(report: DamageReport, actor: User, db: Session, note: Optional[str] = None) -> None:
        """Best-effort: failures are logged and never reach the caller."""
        reference = report.reference_number
        try:
            NotificationService._deliver_status_change(report, actor, note, db)
        except Exception as exc:
            db.rollback()
            log.error("Status notification for %s failed: %s", reference, exc, exc_info=True)

    @staticmethod
    def list_for_user(user_id: UUID, db: Session, unread_only: bool = False) -> list[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(100).all()

    @staticmethod
    def mark_read(user_id: UUID, notification_id: Optional[UUID], db: Session) -> int:
        query = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        if notification_id is not None:
            query = query.filter(Notification.id == notification_id)
        updated = query.update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return int(updated or 0)
