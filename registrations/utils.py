"""
Utility functions for the registrations app.
"""
import io
import logging
import re
import uuid

import segno
from django.conf import settings
from django.urls import reverse

from .exceptions import InvalidReference

logger = logging.getLogger(__name__)

# Hubtel caps clientReference at 32 characters
CLIENT_REFERENCE_MAX_LENGTH = 32
CLIENT_REFERENCE_RE = re.compile(r'^[A-Za-z0-9_-]{1,%d}$' % CLIENT_REFERENCE_MAX_LENGTH)

QR_DARK = '#2d8659'
QR_LIGHT = '#ffffff'


def generate_client_reference(event_type):
    """
    Generate a new client reference, e.g. VCS-CEO-3f2a9c0d1e4b5a67.
    """
    prefix = re.sub(r'[^A-Z0-9]', '', str(event_type).upper())[:6] or 'EVT'
    return f"VCS-{prefix}-{uuid.uuid4().hex[:16]}"


def validate_client_reference(reference):
    """Return the stripped reference or raise InvalidReference."""
    if not isinstance(reference, str):
        raise InvalidReference()
    reference = reference.strip()
    if not CLIENT_REFERENCE_RE.match(reference):
        raise InvalidReference(f"Invalid client reference: {reference[:40]!r}")
    return reference


def site_url(path=''):
    base = getattr(settings, 'SITE_URL', 'http://localhost:8000').rstrip('/')
    return f"{base}{path}"


def verification_url(client_reference):
    """Absolute URL encoded in the entry QR code."""
    return site_url(reverse('verify_registration', args=[client_reference]))


def generate_qr_code_png(client_reference, scale=6):
    """
    Render the entry QR code for a registration as PNG bytes.

    Returns None if rendering fails; a missing QR code must not block an email.
    """
    try:
        qr = segno.make(verification_url(client_reference), error='m')
        buffer = io.BytesIO()
        qr.save(buffer, kind='png', scale=scale, border=2, dark=QR_DARK, light=QR_LIGHT)
        return buffer.getvalue()
    except Exception as e:
        logger.error(f"QR code generation failed for {client_reference}: {str(e)}")
        return None
