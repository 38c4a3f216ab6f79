"""
Contact Acknowledgement Email

Sends the plain-text auto-reply to a contact form submitter. Sending is
synchronous: the submission view awaits the relay before answering.
"""
import logging

from django.conf import settings
from django.core.mail import EmailMessage

logger = logging.getLogger(__name__)

ACKNOWLEDGEMENT_SUBJECT = "Thanks for contacting us!"


def build_acknowledgement_body(name, inquiry_type, message):
    """Plain-text body quoting the submitter's message verbatim."""
    return f"""Hi {name},

Thanks for your {str(inquiry_type).lower()}.

We received your message:
"{message}"

We'll respond as soon as possible.

- {getattr(settings, 'CONTACT_SIGNATURE', 'Your Company')}"""


def send_acknowledgement(submission):
    """
    Send the acknowledgement email for a validated submission.

    Args:
        submission: Validated serializer data (name, email, inquiryType, message, ...)

    Returns:
        int: Number of messages the backend reports as sent

    Raises:
        Whatever the configured mail backend raises (SMTPException, OSError, TimeoutError)
    """
    from_email = getattr(settings, 'CONTACT_EMAIL_FROM', None) or settings.DEFAULT_FROM_EMAIL

    email = EmailMessage(
        subject=ACKNOWLEDGEMENT_SUBJECT,
        body=build_acknowledgement_body(
            submission['name'],
            submission['inquiryType'],
            submission['message'],
        ),
        from_email=from_email,
        to=[submission['email']],
    )
    sent = email.send(fail_silently=False)

    logger.info(f"Acknowledgement email sent to {submission['email']}")
    return sent
