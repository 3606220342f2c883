"""
Exceptions raised by the registration and payment reconciliation layers.

Each carries the HTTP status the API layer answers with.
"""


class RegistrationError(Exception):
    status_code = 500
    default_message = 'Registration error'

    def __init__(self, message=None, **context):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.context = context


class MalformedCallback(RegistrationError):
    status_code = 400
    default_message = 'Callback payload is missing a client reference or status'


class InvalidReference(RegistrationError):
    status_code = 400
    default_message = 'Invalid client reference'


class UnknownRegistration(RegistrationError):
    status_code = 404
    default_message = 'Registration not found'


class DuplicateReference(RegistrationError):
    status_code = 409
    default_message = 'Client reference already exists'


class UnknownEvent(RegistrationError):
    status_code = 404
    default_message = 'Event not found'


class ProviderError(RegistrationError):
    """Base class for failures talking to Hubtel."""
    status_code = 502
    default_message = 'Payment provider error'

    def __init__(self, message=None, http_status=None, response_code=None, data=None):
        super().__init__(message)
        self.http_status = http_status
        self.response_code = response_code
        self.data = data


class ProviderUnavailable(ProviderError):
    default_message = 'Payment provider unavailable'


class ProviderTimeout(ProviderError):
    status_code = 504
    default_message = 'Request timeout connecting to Hubtel API'


class InvalidCredentials(ProviderError):
    default_message = 'Hubtel rejected the configured credentials'


class InvalidRequest(ProviderError):
    status_code = 400
    default_message = 'Hubtel rejected the request'


class ProviderNotFound(ProviderError):
    status_code = 404
    default_message = 'Transaction not found at Hubtel'


class ProviderNotConfigured(ProviderError):
    status_code = 503
    default_message = 'Hubtel credentials not configured'
