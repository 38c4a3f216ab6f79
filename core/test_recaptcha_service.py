"""
Tests for the reCAPTCHA verification service
"""
from unittest.mock import Mock, patch

import pytest
import requests
from django.core.exceptions import ImproperlyConfigured
from django.test import override_settings

from core.recaptcha_service import (
    RecaptchaService,
    RecaptchaTimeoutError,
    RecaptchaVerificationError,
)


def make_response(status_code=200, payload=None, json_error=None):
    response = Mock()
    response.status_code = status_code
    response.text = str(payload)
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def service():
    with override_settings(RECAPTCHA_SECRET_KEY='shh', RECAPTCHA_ENABLED=True, RECAPTCHA_TIMEOUT=3):
        return RecaptchaService()


class TestVerifyToken:
    """Test verdict handling."""

    @patch('core.recaptcha_service.requests.post')
    def test_positive_verdict(self, mock_post, service):
        mock_post.return_value = make_response(payload={'success': True, 'hostname': 'example.com'})

        assert service.verify_token('tok', user_ip='198.51.100.4') is True
        mock_post.assert_called_once_with(
            RecaptchaService.VERIFY_URL,
            data={'secret': 'shh', 'response': 'tok', 'remoteip': '198.51.100.4'},
            timeout=3
        )

    @patch('core.recaptcha_service.requests.post')
    def test_negative_verdict(self, mock_post, service):
        mock_post.return_value = make_response(
            payload={'success': False, 'error-codes': ['timeout-or-duplicate']}
        )

        assert service.verify_token('tok') is False
        assert 'remoteip' not in mock_post.call_args.kwargs['data']

    @pytest.mark.parametrize('token', [None, '', ['tok']])
    @patch('core.recaptcha_service.requests.post')
    def test_missing_or_garbled_token_is_rejected_locally(self, mock_post, token, service):
        assert service.verify_token(token) is False
        mock_post.assert_not_called()

    @patch('core.recaptcha_service.requests.post')
    def test_disabled_accepts_everything(self, mock_post):
        with override_settings(RECAPTCHA_ENABLED=False):
            service = RecaptchaService()

        assert service.verify_token(None) is True
        mock_post.assert_not_called()

    def test_missing_secret_is_a_configuration_error(self):
        with override_settings(RECAPTCHA_SECRET_KEY='', RECAPTCHA_ENABLED=True):
            service = RecaptchaService()

        with pytest.raises(ImproperlyConfigured):
            service.verify_token('tok')


class TestVerificationFailures:
    """Test failures that leave no usable verdict."""

    @patch('core.recaptcha_service.requests.post')
    def test_timeout(self, mock_post, service):
        mock_post.side_effect = requests.exceptions.Timeout()

        with pytest.raises(RecaptchaTimeoutError):
            service.verify_token('tok')

    @patch('core.recaptcha_service.requests.post')
    def test_network_error(self, mock_post, service):
        mock_post.side_effect = requests.exceptions.ConnectionError('dns failure')

        with pytest.raises(RecaptchaVerificationError) as exc_info:
            service.verify_token('tok')
        assert not isinstance(exc_info.value, RecaptchaTimeoutError)

    @patch('core.recaptcha_service.requests.post')
    def test_http_error_status(self, mock_post, service):
        mock_post.return_value = make_response(status_code=503, payload='unavailable')

        with pytest.raises(RecaptchaVerificationError):
            service.verify_token('tok')

    @patch('core.recaptcha_service.requests.post')
    def test_non_json_body(self, mock_post, service):
        mock_post.return_value = make_response(json_error=ValueError('no json'))

        with pytest.raises(RecaptchaVerificationError):
            service.verify_token('tok')

    @pytest.mark.parametrize('payload', [
        {'success': 'true'},
        {'success': 1},
        {'error-codes': []},
        [True],
        None,
    ])
    @patch('core.recaptcha_service.requests.post')
    def test_malformed_verdict(self, mock_post, payload, service):
        mock_post.return_value = make_response(payload=payload)

        with pytest.raises(RecaptchaVerificationError):
            service.verify_token('tok')


class TestErrorMessages:

    def test_known_and_unknown_codes(self, service):
        message = service.get_error_message(['invalid-input-response', 'browser-error'])

        assert message == 'CAPTCHA verification failed. Please try again.; Unknown error: browser-error'
