"""
Email sending functions for registration confirmations and payment notifications.

Every sender returns ``{'success': bool, 'error': str | None}`` and never raises:
email delivery must not break the payment flow.
"""
from email.mime.image import MIMEImage
from urllib.parse import urlencode

from django.conf import settings
from django.core.mail import EmailMultiAlternatives, send_mail
from django.template.loader import render_to_string
from django.utils import timezone
from django.utils.html import strip_tags
import logging

from .events import get_catalogue
from .exceptions import UnknownEvent
from .utils import generate_qr_code_png, site_url

logger = logging.getLogger(__name__)

QR_CONTENT_ID = 'entry-qr-code'


def _result(success, error=None):
    return {'success': success, 'error': error}


def _event_context(registration):
    """Event details for templates, preferring the live catalogue."""
    try:
        event = get_catalogue().get(registration.event_type)
        return {
            'event_name': registration.event_name or event.title,
            'event_date': event.date,
            'event_time': event.time,
            'event_location': event.location,
        }
    except UnknownEvent:
        return {
            'event_name': registration.event_name,
            'event_date': '',
            'event_time': '',
            'event_location': '',
        }


def _base_context(registration):
    context = {
        'registration': registration,
        'customer_name': registration.full_name,
        'client_reference': registration.client_reference,
        'support_email': getattr(settings, 'SUPPORT_EMAIL', ''),
        'support_phone': getattr(settings, 'SUPPORT_PHONE', ''),
        'site_url': site_url(),
    }
    context.update(_event_context(registration))
    return context


def _amount(registration, payment_data):
    payment_data = payment_data or {}
    amount = payment_data.get('amount')
    if amount in (None, ''):
        amount = payment_data.get('Amount')
    if amount in (None, ''):
        amount = registration.event_price
    return amount


def send_payment_confirmation_email(registration, payment_data=None):
    """
    Send the registration confirmation with the entry QR code attached inline.

    Args:
        registration: Registration instance
        payment_data: settlement details stored on the registration
    """
    try:
        qr_png = generate_qr_code_png(registration.client_reference)
        context = _base_context(registration)
        context.update({
            'amount': _amount(registration, payment_data),
            'currency': registration.currency,
            'qr_code_cid': QR_CONTENT_ID if qr_png else None,
        })

        subject = f"Registration Confirmation - {context['event_name']}"
        html_message = render_to_string('registrations/emails/payment_confirmation.html', context)
        plain_message = strip_tags(html_message)

        message = EmailMultiAlternatives(
            subject=subject,
            body=plain_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            to=[registration.email],
        )
        message.attach_alternative(html_message, 'text/html')
        if qr_png:
            message.mixed_subtype = 'related'
            image = MIMEImage(qr_png, _subtype='png')
            image.add_header('Content-ID', f'<{QR_CONTENT_ID}>')
            image.add_header('Content-Disposition', 'inline', filename=f'{registration.client_reference}.png')
            message.attach(image)
        message.send(fail_silently=False)

        logger.info(f"Payment confirmation email sent to {registration.email} for {registration.client_reference}")
        return _result(True)
    except Exception as e:
        logger.error(f"Failed to send payment confirmation email for {registration.client_reference}: {str(e)}")
        return _result(False, str(e))


def send_payment_failure_email(registration, payment_data=None):
    """
    Tell the registrant their payment did not go through; the registration stays on file.
    """
    try:
        context = _base_context(registration)
        context.update({
            'amount': _amount(registration, payment_data),
            'currency': registration.currency,
            'payment_date': timezone.localtime().strftime('%B %d, %Y'),
            'status_display': registration.get_payment_status_display(),
        })

        subject = f"Payment Failed - {context['event_name']}"
        html_message = render_to_string('registrations/emails/payment_failed.html', context)
        plain_message = strip_tags(html_message)

        send_mail(
            subject=subject,
            message=plain_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[registration.email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Payment failure email sent to {registration.email} for {registration.client_reference}")
        return _result(True)
    except Exception as e:
        logger.error(f"Failed to send payment failure email for {registration.client_reference}: {str(e)}")
        return _result(False, str(e))


def payment_link(registration):
    """Link back to the pre-filled registration page to finish paying."""
    params = urlencode({'event': registration.event_type, 'ref': registration.client_reference})
    return site_url(f"/register?{params}")


def send_payment_reminder_email(registration):
    """
    Remind a registrant with a pending payment to complete it.
    """
    try:
        context = _base_context(registration)
        context.update({
            'event_price': registration.event_price,
            'currency': registration.currency,
            'registration_link': payment_link(registration),
        })

        subject = f"Payment Reminder - {context['event_name']}"
        html_message = render_to_string('registrations/emails/payment_reminder.html', context)
        plain_message = strip_tags(html_message)

        send_mail(
            subject=subject,
            message=plain_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[registration.email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Payment reminder email sent to {registration.email} for {registration.client_reference}")
        return _result(True)
    except Exception as e:
        logger.error(f"Failed to send payment reminder email for {registration.client_reference}: {str(e)}")
        return _result(False, str(e))


class EmailNotifier:
    """Notification dispatcher handed to the reconciler."""

    def send_confirmation(self, registration, payment_data=None):
        return send_payment_confirmation_email(registration, payment_data)

    def send_failure_notice(self, registration, payment_data=None):
        return send_payment_failure_email(registration, payment_data)

    def send_reminder(self, registration):
        return send_payment_reminder_email(registration)
