"""
Email Background Tasks
"""
from notevault.core.config import settings
from notevault.core.logging import get_logger
from notevault.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(name="notevault.tasks.notifications.send_email")
def send_email(
    to: str,
    subject: str,
    body: str,
) -> dict:
    """
    Send an email.
    Delivery goes through the configured mail relay; here it is logged.
    """
    logger.info("Sending email", to=to, subject=subject, sender=settings.email_from)
    return {"status": "sent", "to": to, "subject": subject}


@celery_app.task(name="notevault.tasks.notifications.send_welcome_email")
def send_welcome_email(to: str, full_name: str) -> dict:
    body = (
        f"Hi {full_name},\n\n"
        "Welcome to NoteVault! Browse notes from students across India or "
        f"start selling your own at {settings.frontend_url}.\n"
    )
    return send_email(to, "Welcome to NoteVault", body)


@celery_app.task(name="notevault.tasks.notifications.send_password_reset_email")
def send_password_reset_email(to: str, token: str) -> dict:
    reset_link = f"{settings.frontend_url}/reset-password?token={token}"
    body = (
        "We received a request to reset your NoteVault password.\n\n"
        f"Reset it here (valid for {settings.password_reset_expire_minutes} minutes): {reset_link}\n\n"
        "If you did not ask for this, ignore this email."
    )
    return send_email(to, "Reset your NoteVault password", body)
