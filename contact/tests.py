"""
Tests for the Contact Form Submission Endpoint
"""
import smtplib
from unittest.mock import patch

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from rest_framework import status
from rest_framework.exceptions import Throttled
from rest_framework.test import APIClient

from contact.client import SubmissionDraft, validate
from contact.emails import build_acknowledgement_body
from contact.exceptions import AcknowledgementEmailError
from contact.views import ContactFormConfigView
from core.recaptcha_service import RecaptchaTimeoutError, RecaptchaVerificationError

SUBMIT_URL = '/api/contact'


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def form_data():
    return {
        'name': 'Ada Lovelace',
        'email': 'ada@example.com',
        'phone': '+44 20 7946 0000',
        'subject': 'Engine schematics',
        'inquiryType': 'Feedback',
        'message': 'The "analytical engine" notes\nhave a typo on page 3.',
        'g-recaptcha-response': 'test-token',
    }


class TestContactFormSubmission:
    """Test the happy path of POST /api/contact."""

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_valid_submission_sends_acknowledgement(self, mock_captcha, api_client, form_data, mailoutbox):
        """Positive verdict and a working relay: 200 and exactly one email."""
        mock_captcha.return_value = True

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'success': True}
        assert len(mailoutbox) == 1

        email = mailoutbox[0]
        assert email.to == ['ada@example.com']
        assert email.subject == 'Thanks for contacting us!'
        assert email.from_email == 'contact@example.com'
        assert form_data['message'] in email.body
        assert 'Hi Ada Lovelace,' in email.body
        assert 'Thanks for your feedback.' in email.body

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_token_and_client_ip_are_verified(self, mock_captcha, api_client, form_data, mailoutbox):
        """The token from the form is checked together with the caller's IP."""
        mock_captcha.return_value = True

        api_client.post(SUBMIT_URL, form_data, HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1')

        mock_captcha.assert_called_once_with('test-token', user_ip='203.0.113.7')

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_attachment_is_accepted(self, mock_captcha, api_client, form_data, mailoutbox):
        """A file part is parsed and logged without being stored."""
        mock_captcha.return_value = True
        form_data['file'] = SimpleUploadedFile('notes.txt', b'page 3', content_type='text/plain')

        with patch('contact.views.logger') as mock_logger:
            response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        logged = [str(call.args[0]) for call in mock_logger.info.call_args_list]
        assert any('notes.txt' in line and 'text/plain' in line for line in logged)

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_inquiry_type_defaults_to_support(self, mock_captcha, api_client, form_data, mailoutbox):
        """Omitting inquiryType falls back to Support."""
        mock_captcha.return_value = True
        del form_data['inquiryType']

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert 'Thanks for your support.' in mailoutbox[0].body


class TestCaptchaVerification:
    """Test how verification verdicts and failures are reported."""

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_negative_verdict_returns_400_without_mail(self, mock_captcha, mock_send, api_client, form_data):
        """A rejected token stops the submission before any email is sent."""
        mock_captcha.return_value = False

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'message': 'Failed reCAPTCHA verification'}
        mock_send.assert_not_called()

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.requests.post')
    def test_missing_token_is_rejected(self, mock_post, mock_send, api_client, form_data):
        """No token means no call to Google and a 400."""
        del form_data['g-recaptcha-response']

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        mock_post.assert_not_called()
        mock_send.assert_not_called()

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_verification_timeout_returns_504(self, mock_captcha, mock_send, api_client, form_data):
        mock_captcha.side_effect = RecaptchaTimeoutError('timed out')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT
        assert response.data == {'message': 'Upstream service timed out'}
        mock_send.assert_not_called()

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_malformed_verdict_returns_502(self, mock_captcha, mock_send, api_client, form_data):
        mock_captcha.side_effect = RecaptchaVerificationError('Malformed reCAPTCHA verdict')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.data == {'message': 'Verification service unavailable'}
        mock_send.assert_not_called()


class TestServerValidation:
    """Test that the server re-checks the fields the client validates."""

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_missing_fields_are_rejected(self, mock_captcha, mock_send, api_client, form_data):
        """Direct API callers cannot skip the required fields."""
        mock_captcha.return_value = True
        form_data['name'] = ''
        form_data['email'] = 'not-an-email'
        del form_data['message']

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Validation failed'
        assert response.data['fields'] == {
            'name': 'Name is required.',
            'email': 'Invalid email.',
            'message': 'Message is required.',
        }
        mock_send.assert_not_called()

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_unknown_inquiry_type_is_rejected(self, mock_captcha, mock_send, api_client, form_data):
        mock_captcha.return_value = True
        form_data['inquiryType'] = 'Sales'

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'inquiryType' in response.data['fields']
        mock_send.assert_not_called()

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_long_draft_accepted_by_client_is_accepted_here(self, mock_captcha, api_client, mailoutbox):
        """No length limit the form client does not also report."""
        mock_captcha.return_value = True
        draft = SubmissionDraft(
            name='A' * 300,
            email='ada@' + 'e' * 300 + '.com',
            phone='5' * 80,
            subject='S' * 300,
            message='x' * 5001,
        )
        assert validate(draft) == {}

        form_data = draft.to_fields()
        form_data['g-recaptcha-response'] = 'test-token'
        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert len(mailoutbox) == 1
        assert 'x' * 5001 in mailoutbox[0].body


class TestMailFailures:
    """Test acknowledgement email failures."""

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_mail_failure_returns_500(self, mock_captcha, mock_send, api_client, form_data):
        """A relay error fails the request even though the submission was logged."""
        mock_captcha.return_value = True
        mock_send.side_effect = smtplib.SMTPAuthenticationError(535, b'bad credentials')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': AcknowledgementEmailError.public_message}
        assert b'bad credentials' not in response.content
        mock_send.assert_called_once()

    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_mail_timeout_returns_504(self, mock_captcha, mock_send, api_client, form_data):
        mock_captcha.return_value = True
        mock_send.side_effect = TimeoutError('smtp timed out')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_504_GATEWAY_TIMEOUT

    @override_settings(CONTACT_ACK_EMAIL_REQUIRED=False)
    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_best_effort_mail_keeps_submission(self, mock_captcha, mock_send, api_client, form_data):
        """With best-effort email the submitter still gets a success."""
        mock_captcha.return_value = True
        mock_send.side_effect = smtplib.SMTPException('relay down')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'success': True, 'acknowledgement_sent': False}


class TestUnexpectedErrors:
    """Test that internal detail never reaches the caller."""

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_unexpected_exception_returns_generic_500(self, mock_captcha, api_client, form_data):
        mock_captcha.side_effect = RuntimeError('database password is hunter2')

        response = api_client.post(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': 'Internal server error'}
        assert b'hunter2' not in response.content

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_json_body_is_not_parsed(self, mock_captcha, api_client, form_data):
        """Only multipart bodies are accepted."""
        response = api_client.post(SUBMIT_URL, form_data, format='json')

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': 'Could not read submission'}
        mock_captcha.assert_not_called()

    @pytest.mark.parametrize('body', [b'--abc\r\ngarbage', b''])
    @patch('contact.views.send_acknowledgement')
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_garbled_multipart_body_is_a_parse_error(self, mock_captcha, mock_send, body, api_client):
        """A multipart body with no readable parts is not treated as an empty form."""
        mock_captcha.return_value = True

        response = api_client.generic(
            'POST', SUBMIT_URL, body, content_type='multipart/form-data; boundary=abc'
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'message': 'Could not read submission'}
        mock_captcha.assert_not_called()
        mock_send.assert_not_called()


class TestResponseShape:
    """Test that every answer is JSON, whatever the caller accepts."""

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_html_accept_header_still_gets_json(self, mock_captcha, api_client, form_data, mailoutbox):
        mock_captcha.return_value = True

        response = api_client.post(SUBMIT_URL, form_data, HTTP_ACCEPT='text/html')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'application/json'
        assert response.json() == {'success': True}
        assert len(mailoutbox) == 1

    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_html_accept_header_on_rejection(self, mock_captcha, api_client, form_data):
        mock_captcha.return_value = False

        response = api_client.post(SUBMIT_URL, form_data, HTTP_ACCEPT='text/html')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {'message': 'Failed reCAPTCHA verification'}

    def test_framework_errors_use_message_key(self, api_client):
        with patch.object(ContactFormConfigView, 'get', side_effect=Throttled(wait=5)):
            response = api_client.get('/api/contact/config')

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert set(response.data) == {'message'}
        assert response.data['message'].startswith('Request was throttled.')


class TestMethodNotAllowed:
    """Test that only POST reaches the handler."""

    @pytest.mark.parametrize('method', ['get', 'put', 'patch', 'delete', 'options'])
    @patch('core.recaptcha_service.recaptcha_service.verify_token')
    def test_other_methods_return_405(self, mock_captcha, method, api_client, form_data):
        response = getattr(api_client, method)(SUBMIT_URL, form_data)

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert response.data == {'message': 'Method not allowed'}
        mock_captcha.assert_not_called()


class TestContactFormConfig:
    """Test the public widget configuration endpoint."""

    def test_get_config(self, api_client):
        response = api_client.get('/api/contact/config')

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'recaptcha_site_key': 'test-site-key',
            'inquiry_types': ['Support', 'Feedback', 'Other'],
        }

    def test_post_not_allowed(self, api_client):
        response = api_client.post('/api/contact/config', {})

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED


class TestAcknowledgementBody:

    def test_message_is_quoted_verbatim(self):
        body = build_acknowledgement_body('Grace', 'Other', '  spaced\n"quoted"  ')

        assert body.startswith('Hi Grace,')
        assert 'Thanks for your other.' in body
        assert '"  spaced\n"quoted"  "' in body
