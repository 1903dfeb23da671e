from .idempotency import IdempotencyService
from .webhooks import WebhookSecurity

__all__ = ['IdempotencyService', 'WebhookSecurity']
