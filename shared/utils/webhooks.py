# shared/utils/webhooks.py
"""
Helpers for inbound webhooks and provider callbacks.
"""
import hashlib
import hmac
import logging
import time

logger = logging.getLogger(__name__)


class WebhookSecurity:
    """Signature checks and request ids for inbound webhooks."""

    @staticmethod
    def make_webhook_id(body: bytes) -> str:
        """Short id used to prefix every log line of one webhook delivery."""
        return f"wh_{int(time.time())}_{hashlib.md5(body or b'').hexdigest()[:8]}"

    @staticmethod
    def verify_signature(payload: bytes, signature: str, secret: str, digestmod=hashlib.sha256) -> bool:
        """Verify a hex HMAC signature with timing attack protection."""
        if not signature or not secret:
            return False

        computed_signature = hmac.new(
            secret.encode('utf-8'),
            payload,
            digestmod=digestmod
        ).hexdigest()
        return hmac.compare_digest(computed_signature, signature.strip().lower())

    @staticmethod
    def verify_bearer_token(auth_header: str, secret: str) -> bool:
        """Authorization: Bearer <secret>, compared in constant time."""
        if not secret or not auth_header:
            return False
        return hmac.compare_digest(auth_header.strip(), f"Bearer {secret}")
