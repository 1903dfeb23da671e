# shared/utils/idempotency.py
"""
Idempotency service to prevent duplicate processing.
Used for gateway webhooks and callbacks, which may be delivered more than once.
"""
from django.core.cache import cache


class IdempotencyService:
    """Service to ensure operations are processed only once."""

    @staticmethod
    def build_key(scope, identifier):
        if not identifier:
            return None
        return f"idemp_{scope}_{identifier}"

    @staticmethod
    def check_and_lock(key, ttl=300):  # 5 minutes lock
        """
        Check if operation was already processed and lock for processing.
        Returns True if should proceed, False if duplicate.
        """
        if cache.add(f"{key}_lock", True, ttl):
            if cache.get(f"{key}_processed"):
                cache.delete(f"{key}_lock")
                return False
            return True
        return False  # Already being processed

    @staticmethod
    def mark_processed(key, ttl=24 * 60 * 60):  # 24 hours
        """Mark operation as successfully processed."""
        cache.set(f"{key}_processed", True, ttl)
        cache.delete(f"{key}_lock")

    @staticmethod
    def mark_failed(key):
        """Mark operation as failed (release lock for retry)."""
        cache.delete(f"{key}_lock")
