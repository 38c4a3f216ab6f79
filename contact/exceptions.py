"""
Contact Submission Errors

Each error kind carries the HTTP status and the fixed message returned to the
submitter. Internal detail stays in the server log.
"""
from rest_framework import status


class ContactSubmissionError(Exception):
    """Base class for failures while handling a contact form submission."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = 'Internal server error'

    def to_response_data(self):
        return {'message': self.public_message}


class SubmissionParseError(ContactSubmissionError):
    """The multipart body could not be parsed."""

    public_message = 'Could not read submission'


class SubmissionValidationError(ContactSubmissionError):
    """Required fields are missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = 'Validation failed'

    def __init__(self, fields):
        super().__init__(f"Invalid fields: {', '.join(sorted(fields))}")
        self.fields = fields

    def to_response_data(self):
        return {'message': self.public_message, 'fields': self.fields}


class CaptchaRejectedError(ContactSubmissionError):
    """The verification service returned a negative verdict."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = 'Failed reCAPTCHA verification'


class CaptchaUnavailableError(ContactSubmissionError):
    """The verification service failed or answered with a malformed verdict."""

    status_code = status.HTTP_502_BAD_GATEWAY
    public_message = 'Verification service unavailable'


class UpstreamTimeoutError(ContactSubmissionError):
    """The verification service or the mail relay did not answer in time."""

    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    public_message = 'Upstream service timed out'


class AcknowledgementEmailError(ContactSubmissionError):
    """The submission was logged but the acknowledgement email was not sent."""

    public_message = 'Your message was received but the confirmation email could not be sent'
