"""Webhook error taxonomy, mapped to HTTP status codes in api.main"""


class WebhookError(Exception):
    """Base class for errors that end webhook processing"""

    status_code = 500
    detail = "Internal server error"

    def __init__(self, message: str = None):
        super().__init__(message or self.detail)


class ConfigurationError(WebhookError):
    """Shared secret missing - webhook authentication is disabled"""

    status_code = 500
    detail = "Webhook secret not configured"


class AuthenticationError(WebhookError):
    """Signature header absent or does not match the raw body"""

    status_code = 401
    detail = "Unauthorized"


class MalformedPayloadError(WebhookError):
    """Body is not JSON or lacks fields required by its topic"""

    status_code = 400
    detail = "Malformed webhook payload"
