"""
Contact Form Serializers

Validates the multipart contact form submission on the server, mirroring the
checks the form client already performs.
"""
from django.conf import settings
from rest_framework import serializers

from .validation import (
    DEFAULT_INQUIRY_TYPE,
    ERROR_MESSAGES,
    INQUIRY_TYPE_CHOICES,
    is_valid_email,
)


def _required_messages(field):
    return {
        'required': ERROR_MESSAGES[field],
        'blank': ERROR_MESSAGES[field],
        'null': ERROR_MESSAGES[field],
    }


class ContactSubmissionSerializer(serializers.Serializer):
    """
    Public contact form submission serializer.

    Field names follow the wire format, so `inquiryType` stays camel-cased.
    Values are not trimmed: a field the client accepts is accepted here too.
    """

    name = serializers.CharField(
        trim_whitespace=False,
        error_messages=_required_messages('name'),
        help_text="Name of the person contacting us"
    )

    email = serializers.CharField(
        error_messages=_required_messages('email'),
        help_text="Address the acknowledgement is sent to"
    )

    phone = serializers.CharField(
        required=False,
        allow_blank=True,
        default='',
        help_text="Optional phone number"
    )

    subject = serializers.CharField(
        trim_whitespace=False,
        error_messages=_required_messages('subject'),
        help_text="Subject line chosen by the submitter"
    )

    inquiryType = serializers.ChoiceField(
        choices=INQUIRY_TYPE_CHOICES,
        required=False,
        default=DEFAULT_INQUIRY_TYPE,
        help_text="Category of the inquiry"
    )

    message = serializers.CharField(
        trim_whitespace=False,
        error_messages=_required_messages('message'),
        help_text="Message content, quoted verbatim in the acknowledgement"
    )

    file = serializers.FileField(
        required=False,
        allow_empty_file=True,
        help_text="Optional attachment"
    )

    def validate_email(self, value):
        if not is_valid_email(value):
            raise serializers.ValidationError(ERROR_MESSAGES['email'])
        return value

    def validate_file(self, value):
        max_size = getattr(settings, 'CONTACT_MAX_UPLOAD_SIZE', 5 * 1024 * 1024)
        if value.size > max_size:
            raise serializers.ValidationError(
                f"Attachment is larger than {max_size // (1024 * 1024)} MB."
            )
        return value
