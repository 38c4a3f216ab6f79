"""
Contact Form Field Rules

Shared by the form client and the submission serializer so both sides
reject the same drafts with the same messages.
"""

INQUIRY_TYPE_CHOICES = [
    ('Support', 'Support'),
    ('Feedback', 'Feedback'),
    ('Other', 'Other'),
]

INQUIRY_TYPES = [value for value, _label in INQUIRY_TYPE_CHOICES]

DEFAULT_INQUIRY_TYPE = 'Support'

ERROR_MESSAGES = {
    'name': 'Name is required.',
    'email': 'Invalid email.',
    'subject': 'Subject is required.',
    'message': 'Message is required.',
}

REQUIRED_FIELDS = ('name', 'subject', 'message')


def is_valid_email(value):
    """Loose check: the address only needs an '@' separator."""
    return isinstance(value, str) and '@' in value


def validate_fields(fields):
    """
    Check submitted contact fields.

    Args:
        fields: Mapping of field name to value (name, email, subject, message, ...)

    Returns:
        dict: Field name to error message. Empty when the fields are submittable.
    """
    errors = {}

    for field in REQUIRED_FIELDS:
        if not fields.get(field):
            errors[field] = ERROR_MESSAGES[field]

    if not is_valid_email(fields.get('email')):
        errors['email'] = ERROR_MESSAGES['email']

    # Keep the form's field order
    return {field: errors[field] for field in ERROR_MESSAGES if field in errors}
