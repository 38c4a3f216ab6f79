"""
Google reCAPTCHA Verification Service

Verifies reCAPTCHA tokens from the contact form against Google's siteverify API.

Documentation: https://developers.google.com/recaptcha/docs/verify
"""

import requests
import logging
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

logger = logging.getLogger(__name__)


class RecaptchaVerificationError(Exception):
    """Raised when the verification service cannot produce a usable verdict."""
    pass


class RecaptchaTimeoutError(RecaptchaVerificationError):
    """Raised when the verification service does not answer in time."""
    pass


class RecaptchaService:
    """
    Service for verifying Google reCAPTCHA tokens.

    Usage:
        service = RecaptchaService()
        is_human = service.verify_token(token, user_ip='192.168.1.1')
    """

    VERIFY_URL = 'https://www.google.com/recaptcha/api/siteverify'

    def __init__(self):
        self.secret_key = getattr(settings, 'RECAPTCHA_SECRET_KEY', None)
        self.enabled = getattr(settings, 'RECAPTCHA_ENABLED', True)
        self.timeout = getattr(settings, 'RECAPTCHA_TIMEOUT', 10)

        if self.enabled and not self.secret_key:
            logger.warning(
                "reCAPTCHA is enabled but RECAPTCHA_SECRET_KEY is not set. "
                "Contact form submissions will fail!"
            )

    def verify_token(self, token: str, user_ip: str = None) -> bool:
        """
        Verify a reCAPTCHA token.

        Args:
            token: The g-recaptcha-response token from the form
            user_ip: Optional user IP address passed on as remoteip

        Returns:
            True if Google accepted the token, False otherwise

        Raises:
            RecaptchaTimeoutError: If Google did not answer within RECAPTCHA_TIMEOUT
            RecaptchaVerificationError: If the request failed or the verdict is malformed
            ImproperlyConfigured: If verification is enabled without a secret key
        """
        if not self.enabled:
            logger.info("reCAPTCHA verification disabled - accepting all tokens")
            return True

        if not token or not isinstance(token, str):
            logger.warning("No reCAPTCHA token provided")
            return False

        if not self.secret_key:
            logger.error("RECAPTCHA_SECRET_KEY not configured")
            raise ImproperlyConfigured("RECAPTCHA_SECRET_KEY is required when RECAPTCHA_ENABLED is on")

        payload = {
            'secret': self.secret_key,
            'response': token,
        }
        if user_ip:
            payload['remoteip'] = user_ip

        try:
            response = requests.post(
                self.VERIFY_URL,
                data=payload,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"reCAPTCHA verification timed out after {self.timeout}s")
            raise RecaptchaTimeoutError("reCAPTCHA verification timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"reCAPTCHA verification network error: {e}")
            raise RecaptchaVerificationError(f"reCAPTCHA network error: {e}") from e

        if response.status_code != 200:
            logger.error(
                f"reCAPTCHA API returned status {response.status_code}: {response.text}"
            )
            raise RecaptchaVerificationError(
                f"reCAPTCHA API error: {response.status_code}"
            )

        try:
            result = response.json()
        except ValueError as e:
            logger.error(f"reCAPTCHA API returned a non-JSON body: {response.text[:200]}")
            raise RecaptchaVerificationError("reCAPTCHA API returned invalid JSON") from e

        success = result.get('success') if isinstance(result, dict) else None
        if not isinstance(success, bool):
            logger.error(f"reCAPTCHA verdict has no boolean 'success' field: {result!r}")
            raise RecaptchaVerificationError("Malformed reCAPTCHA verdict")

        if success:
            logger.info("reCAPTCHA token verified successfully")
            return True

        error_codes = result.get('error-codes') or []
        logger.warning(
            f"reCAPTCHA verification failed: {error_codes} ({self.get_error_message(error_codes)})"
        )
        return False

    def get_error_message(self, error_codes: list) -> str:
        """
        Convert reCAPTCHA error codes to human-readable messages.

        Error codes documented by Google:
        - missing-input-secret: Secret key missing
        - invalid-input-secret: Secret key invalid or malformed
        - missing-input-response: Token missing
        - invalid-input-response: Token invalid or malformed
        - bad-request: Request invalid or malformed
        - timeout-or-duplicate: Token too old or already used
        """
        error_map = {
            'missing-input-secret': 'Server configuration error',
            'invalid-input-secret': 'Server configuration error',
            'missing-input-response': 'CAPTCHA verification required',
            'invalid-input-response': 'CAPTCHA verification failed. Please try again.',
            'bad-request': 'CAPTCHA request was malformed',
            'timeout-or-duplicate': 'CAPTCHA expired or already used. Please refresh.',
        }

        messages = [error_map.get(code, f'Unknown error: {code}') for code in error_codes]
        return '; '.join(messages)


# Singleton instance
recaptcha_service = RecaptchaService()
