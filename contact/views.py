"""
Contact Form Views

Public endpoints for the contact form: the multipart submission handler and
the widget configuration the form needs before it can obtain a token.
"""
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.negotiation import DefaultContentNegotiation
from rest_framework.parsers import MultiPartParser
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.recaptcha_service import (
    RecaptchaTimeoutError,
    RecaptchaVerificationError,
    recaptcha_service,
)

from .emails import send_acknowledgement
from .exceptions import (
    AcknowledgementEmailError,
    CaptchaRejectedError,
    CaptchaUnavailableError,
    ContactSubmissionError,
    SubmissionParseError,
    SubmissionValidationError,
    UpstreamTimeoutError,
)
from .serializers import ContactSubmissionSerializer
from .validation import INQUIRY_TYPES

logger = logging.getLogger(__name__)

TOKEN_FIELD = 'g-recaptcha-response'


def get_client_ip(request):
    """Get client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip


class JSONOnlyContentNegotiation(DefaultContentNegotiation):
    """Always answer with the first configured renderer, whatever the Accept header asks for."""

    def select_renderer(self, request, renderers, format_suffix=None):
        return (renderers[0], renderers[0].media_type)


class PublicContactAPIView(APIView):
    """Unauthenticated endpoint whose errors are all shaped as {"message": ...}."""

    authentication_classes = []
    permission_classes = [AllowAny]
    content_negotiation_class = JSONOnlyContentNegotiation

    def http_method_not_allowed(self, request, *args, **kwargs):
        return Response(
            {'message': 'Method not allowed'},
            status=status.HTTP_405_METHOD_NOT_ALLOWED
        )

    def handle_exception(self, exc):
        response = super().handle_exception(exc)
        if isinstance(response.data, dict) and 'detail' in response.data:
            response.data = {'message': str(response.data['detail'])}
        return response


class ContactSubmitView(PublicContactAPIView):
    """
    Public endpoint for contact form submissions.

    POST /api/contact

    Accepts multipart/form-data only. Verifies the reCAPTCHA token, logs the
    submission and emails an acknowledgement to the submitter.
    """

    parser_classes = [MultiPartParser]
    http_method_names = ['post']

    def post(self, request):
        """Submit a contact form."""
        try:
            return self.handle_submission(request)

        except ContactSubmissionError as exc:
            if exc.status_code >= 500:
                logger.error(f"Contact form error: {exc!r}", exc_info=True)
            else:
                logger.warning(f"Contact form rejected: {exc}")
            return Response(exc.to_response_data(), status=exc.status_code)

        except Exception:
            logger.exception("Contact form error")
            return Response(
                {'message': 'Internal server error'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    def handle_submission(self, request):
        data, files = self.parse_form(request)

        self.verify_human(data.get(TOKEN_FIELD), get_client_ip(request))

        serializer = ContactSubmissionSerializer(data=data)
        if not serializer.is_valid():
            raise SubmissionValidationError({
                field: str(errors[0]) for field, errors in serializer.errors.items()
            })
        submission = serializer.validated_data

        self.log_submission(submission, files)

        acknowledged = self.acknowledge(submission)
        if not acknowledged:
            return Response(
                {'success': True, 'acknowledgement_sent': False},
                status=status.HTTP_200_OK
            )

        return Response({'success': True}, status=status.HTTP_200_OK)

    def parse_form(self, request):
        """Parse the multipart body into text fields and uploaded files."""
        try:
            data, files = request.data, request.FILES
        except (ParseError, UnsupportedMediaType) as exc:
            raise SubmissionParseError(str(exc)) from exc

        # Django reads a truncated or garbled multipart body as zero parts
        if not data and not files:
            raise SubmissionParseError("Multipart body contained no parts")
        return data, files

    def verify_human(self, token, user_ip):
        try:
            is_human = recaptcha_service.verify_token(token, user_ip=user_ip)
        except RecaptchaTimeoutError as exc:
            raise UpstreamTimeoutError(str(exc)) from exc
        except RecaptchaVerificationError as exc:
            raise CaptchaUnavailableError(str(exc)) from exc

        if not is_human:
            raise CaptchaRejectedError("reCAPTCHA returned a negative verdict")

    def log_submission(self, submission, files):
        logger.info("Form Submission: %s", {
            'name': submission['name'],
            'email': submission['email'],
            'phone': submission['phone'],
            'subject': submission['subject'],
            'inquiryType': submission['inquiryType'],
            'message': submission['message'],
        })
        for field in files:
            for upload in files.getlist(field):
                logger.info(
                    f"File uploaded: {upload.name} "
                    f"({upload.content_type}, {upload.size} bytes)"
                )

    def acknowledge(self, submission):
        """
        Send the acknowledgement email.

        Returns:
            bool: False when sending failed and the email is best-effort

        Raises:
            UpstreamTimeoutError, AcknowledgementEmailError: when the email is required
        """
        try:
            send_acknowledgement(submission)
            return True
        except Exception as exc:
            if not getattr(settings, 'CONTACT_ACK_EMAIL_REQUIRED', True):
                logger.exception(
                    f"Acknowledgement email to {submission['email']} failed; submission kept"
                )
                return False
            if isinstance(exc, TimeoutError):
                raise UpstreamTimeoutError("Mail relay timed out") from exc
            raise AcknowledgementEmailError(f"Mail dispatch failed: {exc}") from exc


class ContactFormConfigView(PublicContactAPIView):
    """
    Public widget configuration for the contact form.

    GET /api/contact/config
    """

    http_method_names = ['get']

    def get(self, request):
        return Response({
            'recaptcha_site_key': getattr(settings, 'RECAPTCHA_SITE_KEY', ''),
            'inquiry_types': INQUIRY_TYPES,
        })
