"""
This module contains the Celery worker and the notification tasks of the VehiQuest service.
"""
import logging
import smtplib
from email.message import EmailMessage

from celery import Celery, Task
from celery.signals import celeryd_init

from .config import Settings, get_settings

# Configure logging
logger = logging.getLogger(__name__)

celery_app = Celery('vehiquest', include=["vehiquest.worker"])


def configure_celery(settings: Settings):
    """
    Points the Celery app at the broker and result backend named in `settings`.
    """
    celery_app.conf.update(broker_url=settings.broker_url, result_backend=settings.result_backend)


@celeryd_init.connect
def configure_worker(sender=None, conf=None, **kwargs):
    settings = get_settings()
    conf.update(broker_url=settings.broker_url, result_backend=settings.result_backend)


class BaseTaskWithRetry(Task):
    """
    Base task with automatic retry mechanism.
    """
    autoretry_for = (smtplib.SMTPException, ConnectionError, TimeoutError)
    retry_kwargs = {'max_retries': 5}
    retry_backoff = True


def _send_email(recipient: str, subject: str, message: str):
    """
    Helper function that delivers one HTML email over SMTP.

    Args:
        recipient (str): The address to deliver to.
        subject (str): The subject line.
        message (str): The body, wrapped in a paragraph.
    """
    config = get_settings()
    if not (config.smtp_user and config.smtp_password):
        logger.warning(f"SMTP is not configured, dropping '{subject}' for {recipient}")
        return False

    mail = EmailMessage()
    mail["From"] = config.smtp_user
    mail["To"] = recipient
    mail["Subject"] = subject
    mail.set_content(message)
    mail.add_alternative(f"<p>{message}</p>", subtype="html")

    with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=30) as smtp:
        smtp.starttls()
        smtp.login(config.smtp_user, config.smtp_password)
        smtp.send_message(mail)
    logger.info(f"Email '{subject}' sent to {recipient}")
    return True


@celery_app.task(bind=True, base=BaseTaskWithRetry)
def send_notification(self, recipient, subject, message):
    """
    Celery task to notify a guest or a host by email.

    Args:
        recipient (str): The email address of the person to notify.
        subject (str): The subject of the notification.
        message (str): The body of the notification.
    """
    logger.info(f"{type(self)} -- Sending '{subject}' to {recipient}")
    return _send_email(recipient, subject, message)


def booking_messages(guest_email, guest_name, host_email, transaction_id):
    """
    Builds the (recipient, subject, message) triples sent once a booking is committed.
    """
    return [
        (
            guest_email,
            "Booking Successful!",
            f"Vehicle Ready, get your vehicle from store, Your Transaction Id: {transaction_id}",
        ),
        (
            host_email,
            "Your Vehicle got booked!",
            f"Deliver you vehicle to the store. {guest_name or guest_email} is on the way.....",
        ),
    ]


def dispatch_booking_notifications(guest_email, guest_name, host_email, transaction_id):
    """
    Enqueues the guest and host notifications for a committed booking.

    Runs after the booking is committed; a broker failure is logged and never
    reaches the caller.
    """
    for recipient, subject, message in booking_messages(guest_email, guest_name, host_email, transaction_id):
        try:
            send_notification.delay(recipient, subject, message)
        except Exception:
            logger.exception(f"Could not enqueue '{subject}' for {recipient}")
