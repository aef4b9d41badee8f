"""Shopify webhook signature validation"""
import base64
import hashlib
import hmac
import logging
from typing import Optional, Union

from lib.errors import AuthenticationError, ConfigurationError
from lib.models import WebhookEnvelope
from lib.prometheus_metrics import webhook_signature_verifications_total

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-Sha256"
TOPIC_HEADER = "X-Shopify-Topic"
SHOP_DOMAIN_HEADER = "X-Shopify-Shop-Domain"


class WebhookValidator:
    """
    Validates Shopify webhook signatures.

    Shopify signs the raw request body with HMAC-SHA256 using the app's
    shared secret and sends the base64 digest in X-Shopify-Hmac-Sha256.
    """

    def __init__(self, secret_key: Optional[Union[str, bytes]]):
        """
        Initialize with the shared secret.

        Args:
            secret_key: Shared secret configured in the Shopify admin

        Raises:
            ConfigurationError: If the secret is empty or missing
        """
        if not secret_key:
            logger.error("SHOPIFY_WEBHOOK_SECRET not configured - rejecting webhooks")
            raise ConfigurationError()
        self.secret_key = secret_key.encode() if isinstance(secret_key, str) else secret_key

    def compute_signature(self, payload: bytes) -> str:
        """
        Compute the base64 HMAC-SHA256 signature for a payload.

        Args:
            payload: Raw request body bytes

        Returns:
            Base64-encoded digest
        """
        digest = hmac.new(self.secret_key, payload, hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def validate_signature(self, payload: bytes, signature: Optional[str]) -> bool:
        """
        Validate a webhook signature against the raw body.

        Args:
            payload: Request body bytes, before any parsing
            signature: Value of the signature header

        Returns:
            True if signature is valid, False otherwise
        """
        if not signature:
            return False

        expected_signature = self.compute_signature(payload)

        # Constant-time comparison to prevent timing attacks
        return hmac.compare_digest(
            signature.strip().encode("ascii", "replace"),
            expected_signature.encode("ascii"),
        )

    def verify(self, envelope: WebhookEnvelope) -> WebhookEnvelope:
        """
        Verify an inbound envelope, raising if it cannot be trusted.

        Raises:
            AuthenticationError: If the signature is missing or wrong
        """
        if not self.validate_signature(envelope.raw_body, envelope.signature_header):
            webhook_signature_verifications_total.labels(result="failure").inc()
            logger.warning(
                f"Invalid webhook signature topic={envelope.topic} "
                f"shop={envelope.shop_domain}"
            )
            raise AuthenticationError()

        webhook_signature_verifications_total.labels(result="success").inc()
        return envelope
