"""
Contact Form Client

Headless counterpart of the rendered contact form. Holds the draft the user
is editing, validates it locally, obtains a reCAPTCHA token through an
injected challenge and posts the multipart submission to /api/contact.

Usage:
    client = ContactFormClient(
        'https://example.com/api/contact',
        challenge=StaticTokenChallenge(token),
    )
    client.update_field('name', 'Ada')
    ...
    outcome = client.submit()
"""
import logging
import mimetypes
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, Optional

import requests

from .validation import DEFAULT_INQUIRY_TYPE, INQUIRY_TYPES, validate_fields

logger = logging.getLogger(__name__)

TOKEN_FIELD = 'g-recaptcha-response'
FILE_FIELD = 'file'

# Python attribute name -> multipart part name
WIRE_NAMES = {
    'name': 'name',
    'email': 'email',
    'phone': 'phone',
    'subject': 'subject',
    'inquiry_type': 'inquiryType',
    'message': 'message',
}


@dataclass
class SubmissionDraft:
    """The form fields as the user has typed them so far."""

    name: str = ''
    email: str = ''
    phone: str = ''
    subject: str = ''
    inquiry_type: str = DEFAULT_INQUIRY_TYPE
    message: str = ''

    def to_fields(self) -> Dict[str, str]:
        """Draft values keyed by their multipart part names."""
        return {wire: getattr(self, attr) for attr, wire in WIRE_NAMES.items()}


@dataclass
class Attachment:
    """A file picked by the user, sent as the `file` part."""

    filename: str
    content: bytes
    content_type: str = 'application/octet-stream'

    @classmethod
    def from_path(cls, path):
        content_type, _ = mimetypes.guess_type(path)
        with open(path, 'rb') as f:
            content = f.read()
        return cls(
            filename=os.path.basename(path),
            content=content,
            content_type=content_type or 'application/octet-stream',
        )


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of one submit attempt, shown as a banner until the next attempt."""

    success: bool
    message: str
    status_code: Optional[int] = None

    @property
    def celebrate(self) -> bool:
        """Whether to show the celebratory flourish next to the banner."""
        return self.success


def validate(draft: SubmissionDraft) -> Dict[str, str]:
    """Return field name -> error message for every rule the draft breaks."""
    return validate_fields(draft.to_fields())


class HumanVerificationChallenge(ABC):
    """
    Capability that yields a reCAPTCHA token for one submission.

    execute() may block until the user resolves an interactive challenge.
    reset() is called after every execution so a token is never reused.
    """

    @abstractmethod
    def execute(self) -> Optional[str]:
        """Run the challenge and return a token, or None if none was obtained."""

    @abstractmethod
    def reset(self) -> None:
        """Discard the current token."""


class StaticTokenChallenge(HumanVerificationChallenge):
    """
    Challenge backed by a token obtained elsewhere.

    Works with Google's reCAPTCHA test keys, whose siteverify accepts any token.
    The token is handed out once; after reset() a new one must be supplied.
    """

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def provide(self, token: str) -> None:
        self._token = token

    def execute(self) -> Optional[str]:
        return self._token

    def reset(self) -> None:
        self._token = None


class ContactFormClient:
    """
    Form session state plus the submit workflow.

    UI state exposed for rendering: draft, attachment, errors, outcome,
    is_submitting, submit_enabled, submit_label.
    """

    SUBMIT_LABEL = 'Send Message'
    BUSY_LABEL = 'Sending...'
    SUCCESS_MESSAGE = 'Thank you for your message! \U0001f389'
    FAILURE_MESSAGE = 'Something went wrong. Try again later.'

    def __init__(
        self,
        endpoint: str,
        challenge: HumanVerificationChallenge,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        self.endpoint = endpoint
        self.challenge = challenge
        self.session = session or requests.Session()
        self.timeout = timeout

        self.draft = SubmissionDraft()
        self.attachment: Optional[Attachment] = None
        self.errors: Dict[str, str] = {}
        self.outcome: Optional[SubmissionOutcome] = None
        self.is_submitting = False
        self._submit_lock = threading.Lock()

    @property
    def submit_enabled(self) -> bool:
        return not self.is_submitting

    @property
    def submit_label(self) -> str:
        return self.BUSY_LABEL if self.is_submitting else self.SUBMIT_LABEL

    def update_field(self, name: str, value: str) -> None:
        """
        Set one draft field.

        Accepts the attribute name or the wire name (`inquiryType`).

        Raises:
            ValueError: For an unknown field or an inquiry type outside the choices
        """
        attr = name
        if attr not in WIRE_NAMES:
            attr = next((a for a, wire in WIRE_NAMES.items() if wire == name), None)
        if attr is None:
            raise ValueError(f"Unknown contact form field: {name}")

        if attr == 'inquiry_type' and value not in INQUIRY_TYPES:
            raise ValueError(
                f"Inquiry type must be one of {', '.join(INQUIRY_TYPES)}, got {value!r}"
            )

        self.draft = replace(self.draft, **{attr: value})

    def attach(self, attachment: Attachment) -> None:
        self.attachment = attachment

    def clear_attachment(self) -> None:
        self.attachment = None

    def reset(self) -> None:
        """Back to an empty form."""
        self.draft = SubmissionDraft()
        self.attachment = None
        self.errors = {}
        self.outcome = None

    def submit(self) -> Optional[SubmissionOutcome]:
        """
        Validate, verify and post the current draft.

        Returns:
            The outcome of the POST, or None when validation failed or a
            submission was already in flight.
        """
        if not self._submit_lock.acquire(blocking=False):
            logger.debug("Submission already in flight; ignoring submit")
            return None

        self.is_submitting = True
        self.errors = {}
        self.outcome = None
        try:
            errors = validate(self.draft)
            if errors:
                self.errors = errors
                return None

            self.outcome = self._send()
            if self.outcome.success:
                self.draft = SubmissionDraft()
                self.attachment = None
            return self.outcome
        finally:
            self.is_submitting = False
            self._submit_lock.release()

    def _obtain_token(self) -> Optional[str]:
        try:
            return self.challenge.execute()
        finally:
            self.challenge.reset()

    def _build_payload(self, token: Optional[str]):
        # (None, value) tuples make requests encode text parts, keeping the
        # body multipart even without an attachment.
        parts = [(wire, (None, value)) for wire, value in self.draft.to_fields().items()]
        if self.attachment is not None:
            parts.append((FILE_FIELD, (
                self.attachment.filename,
                self.attachment.content,
                self.attachment.content_type,
            )))
        if token:
            parts.append((TOKEN_FIELD, (None, token)))
        return parts

    def _send(self) -> SubmissionOutcome:
        try:
            token = self._obtain_token()
        except Exception:
            logger.exception("reCAPTCHA challenge failed")
            return SubmissionOutcome(success=False, message=self.FAILURE_MESSAGE)

        try:
            response = self.session.post(
                self.endpoint,
                files=self._build_payload(token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Contact form submission failed: {e}")
            return SubmissionOutcome(success=False, message=self.FAILURE_MESSAGE)

        if 200 <= response.status_code < 300:
            return SubmissionOutcome(
                success=True,
                message=self.SUCCESS_MESSAGE,
                status_code=response.status_code,
            )

        logger.warning(f"Contact form submission rejected with status {response.status_code}")
        return SubmissionOutcome(
            success=False,
            message=self.FAILURE_MESSAGE,
            status_code=response.status_code,
        )
