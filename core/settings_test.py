"""
Settings for the test suite.

Supplies the secrets the real settings module insists on, then points the
outbound services at harmless values.
"""
import os

os.environ.setdefault('SECRET_KEY', 'test-secret-key-not-for-production')
os.environ.setdefault('DEBUG', 'True')

from core.settings import *  # noqa: E402,F401,F403

RECAPTCHA_SITE_KEY = 'test-site-key'
RECAPTCHA_SECRET_KEY = 'test-secret'
RECAPTCHA_ENABLED = True

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
EMAIL_HOST_USER = 'contact@example.com'
CONTACT_EMAIL_FROM = 'contact@example.com'
CONTACT_ACK_EMAIL_REQUIRED = True

LOGGING['root']['level'] = 'WARNING'  # noqa: F405
SECURE_SSL_REDIRECT = False
