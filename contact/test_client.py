"""
Tests for the headless contact form client
"""
from unittest.mock import Mock

import pytest
import requests

from contact.client import (
    Attachment,
    ContactFormClient,
    HumanVerificationChallenge,
    StaticTokenChallenge,
    SubmissionDraft,
    validate,
)

ENDPOINT = 'https://example.com/api/contact'


class FakeChallenge(HumanVerificationChallenge):
    """Challenge that hands out a fixed token and records its calls."""

    def __init__(self, token='captcha-token', error=None):
        self.token = token
        self.error = error
        self.executions = 0
        self.resets = 0

    def execute(self):
        self.executions += 1
        if self.error:
            raise self.error
        return self.token

    def reset(self):
        self.resets += 1


def make_response(status_code):
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    return response


@pytest.fixture
def challenge():
    return FakeChallenge()


@pytest.fixture
def session():
    session = Mock(spec=requests.Session)
    session.post.return_value = make_response(200)
    return session


@pytest.fixture
def client(challenge, session):
    client = ContactFormClient(ENDPOINT, challenge=challenge, session=session, timeout=5)
    client.update_field('name', 'Ada Lovelace')
    client.update_field('email', 'ada@example.com')
    client.update_field('phone', '555-0100')
    client.update_field('subject', 'Engine schematics')
    client.update_field('inquiryType', 'Feedback')
    client.update_field('message', 'Typo on page 3.')
    return client


def posted_parts(session):
    """Multipart parts of the single POST as {name: (filename, value[, content_type])}."""
    session.post.assert_called_once()
    return dict(session.post.call_args.kwargs['files'])


class TestValidate:
    """Test the local validation rules."""

    def test_valid_draft_has_no_errors(self):
        draft = SubmissionDraft(name='Ada', email='ada@example.com', subject='Hi', message='Hello')

        assert validate(draft) == {}

    def test_empty_draft_names_every_required_field(self):
        assert validate(SubmissionDraft()) == {
            'name': 'Name is required.',
            'email': 'Invalid email.',
            'subject': 'Subject is required.',
            'message': 'Message is required.',
        }

    @pytest.mark.parametrize('field', ['name', 'subject', 'message'])
    def test_missing_required_field_is_the_only_error(self, field):
        draft = SubmissionDraft(name='Ada', email='ada@example.com', subject='Hi', message='Hello')
        setattr(draft, field, '')

        assert list(validate(draft)) == [field]

    def test_email_without_at_sign(self):
        draft = SubmissionDraft(name='Ada', email='ada.example.com', subject='Hi', message='Hello')

        assert validate(draft) == {'email': 'Invalid email.'}

    def test_phone_and_inquiry_type_are_unconstrained(self):
        draft = SubmissionDraft(
            name='Ada', email='a@b', subject='Hi', message='Hello', phone='', inquiry_type='Other'
        )

        assert validate(draft) == {}


class TestSubmitValidation:
    """Test that an invalid draft never leaves the process."""

    def test_invalid_draft_aborts_before_network(self, client, challenge, session):
        client.update_field('email', 'nope')
        client.update_field('subject', '')

        outcome = client.submit()

        assert outcome is None
        assert client.errors == {'email': 'Invalid email.', 'subject': 'Subject is required.'}
        assert client.outcome is None
        assert challenge.executions == 0
        session.post.assert_not_called()
        assert client.is_submitting is False
        assert client.submit_label == 'Send Message'

    def test_errors_are_recomputed_on_each_attempt(self, client):
        client.update_field('name', '')
        client.submit()
        assert client.errors == {'name': 'Name is required.'}

        client.update_field('name', 'Ada')
        client.submit()
        assert client.errors == {}


class TestSubmitSuccess:
    """Test a submission the server accepts."""

    def test_posts_every_field_and_token(self, client, session):
        client.submit()

        assert session.post.call_args.args == (ENDPOINT,)
        assert session.post.call_args.kwargs['timeout'] == 5
        assert posted_parts(session) == {
            'name': (None, 'Ada Lovelace'),
            'email': (None, 'ada@example.com'),
            'phone': (None, '555-0100'),
            'subject': (None, 'Engine schematics'),
            'inquiryType': (None, 'Feedback'),
            'message': (None, 'Typo on page 3.'),
            'g-recaptcha-response': (None, 'captcha-token'),
        }

    def test_attachment_is_sent_as_file_part(self, client, session):
        client.attach(Attachment('notes.pdf', b'%PDF-1.7', 'application/pdf'))

        client.submit()

        assert posted_parts(session)['file'] == ('notes.pdf', b'%PDF-1.7', 'application/pdf')

    def test_success_resets_draft_and_attachment(self, client):
        client.attach(Attachment('notes.txt', b'hi', 'text/plain'))

        outcome = client.submit()

        assert outcome.success is True
        assert outcome.celebrate is True
        assert outcome.message == ContactFormClient.SUCCESS_MESSAGE
        assert outcome.status_code == 200
        assert client.outcome is outcome
        assert client.draft == SubmissionDraft()
        assert client.draft.inquiry_type == 'Support'
        assert client.attachment is None

    def test_challenge_is_reset_after_use(self, client, challenge):
        client.submit()

        assert challenge.executions == 1
        assert challenge.resets == 1

    def test_no_token_part_without_token(self, client, session, challenge):
        challenge.token = None

        client.submit()

        assert 'g-recaptcha-response' not in posted_parts(session)


class TestSubmitFailure:
    """Test that failures keep what the user typed."""

    def test_server_error_preserves_draft(self, client, session):
        session.post.return_value = make_response(500)
        client.attach(Attachment('notes.txt', b'hi', 'text/plain'))
        draft_before = client.draft

        outcome = client.submit()

        assert outcome.success is False
        assert outcome.celebrate is False
        assert outcome.message == ContactFormClient.FAILURE_MESSAGE
        assert outcome.status_code == 500
        assert client.draft == draft_before
        assert client.attachment is not None

    def test_rejected_captcha_preserves_draft(self, client, session):
        session.post.return_value = make_response(400)
        draft_before = client.draft

        outcome = client.submit()

        assert outcome.success is False
        assert client.draft == draft_before

    @pytest.mark.parametrize('status_code', [301, 304])
    def test_redirect_status_is_not_a_success(self, status_code, client, session):
        """Only 2xx counts as delivered."""
        session.post.return_value = make_response(status_code)
        client.attach(Attachment('notes.txt', b'hi', 'text/plain'))
        draft_before = client.draft

        outcome = client.submit()

        assert outcome.success is False
        assert outcome.celebrate is False
        assert outcome.status_code == status_code
        assert client.draft == draft_before
        assert client.attachment is not None

    def test_network_error_is_a_failure(self, client, session):
        session.post.side_effect = requests.exceptions.ConnectionError('unreachable')
        draft_before = client.draft

        outcome = client.submit()

        assert outcome.success is False
        assert outcome.status_code is None
        assert client.draft == draft_before
        assert client.is_submitting is False

    def test_challenge_error_is_a_failure(self, client, session, challenge):
        challenge.error = RuntimeError('widget failed to load')

        outcome = client.submit()

        assert outcome.success is False
        assert challenge.resets == 1
        session.post.assert_not_called()
        assert client.is_submitting is False


class TestBusyState:
    """Test the in-flight state of the submit control."""

    def test_control_is_busy_while_posting(self, client, session):
        seen = {}

        def post(*args, **kwargs):
            seen['submitting'] = client.is_submitting
            seen['enabled'] = client.submit_enabled
            seen['label'] = client.submit_label
            seen['resubmit'] = client.submit()
            return make_response(200)

        session.post.side_effect = post

        client.submit()

        assert seen == {
            'submitting': True,
            'enabled': False,
            'label': 'Sending...',
            'resubmit': None,
        }
        assert session.post.call_count == 1
        assert client.submit_enabled is True
        assert client.submit_label == 'Send Message'


class TestDraftEditing:
    """Test field updates on the form client."""

    def test_update_field_accepts_wire_and_attribute_names(self, client):
        client.update_field('inquiry_type', 'Other')
        assert client.draft.inquiry_type == 'Other'

        client.update_field('inquiryType', 'Support')
        assert client.draft.inquiry_type == 'Support'

    def test_unknown_field_raises(self, client):
        with pytest.raises(ValueError):
            client.update_field('website', 'http://spam.example')

    def test_unknown_inquiry_type_raises(self, client):
        with pytest.raises(ValueError):
            client.update_field('inquiryType', 'Sales')

    def test_reset_clears_everything(self, client):
        client.attach(Attachment('a.txt', b'a'))
        client.update_field('name', '')
        client.submit()

        client.reset()

        assert client.draft == SubmissionDraft()
        assert client.attachment is None
        assert client.errors == {}
        assert client.outcome is None


class TestChallengesAndAttachments:

    def test_static_token_is_handed_out_once(self):
        challenge = StaticTokenChallenge('abc')

        assert challenge.execute() == 'abc'
        challenge.reset()
        assert challenge.execute() is None

        challenge.provide('def')
        assert challenge.execute() == 'def'

    def test_attachment_from_path(self, tmp_path):
        path = tmp_path / 'photo.png'
        path.write_bytes(b'\x89PNG')

        attachment = Attachment.from_path(str(path))

        assert attachment.filename == 'photo.png'
        assert attachment.content == b'\x89PNG'
        assert attachment.content_type == 'image/png'
