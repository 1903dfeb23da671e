# shared/constants/__init__.py
from .model_fields import (
    TUTOR_FIELDS,
    PENDING_PLAYER_IDS_MARKER,
    SETTING_PRICE_ENROLLMENT,
    SETTING_PRICE_MONTHLY,
    SETTING_PRICE_MONTHLY_FAMILY,
    SETTING_STATEMENT_DAY,
    SETTING_PAYMENT_LINK_BASE_URL,
    DEFAULT_CATEGORY,
    UNKNOWN_CATEGORY,
    PlayerStatus,
    StatusChoices,
    PaymentTypes,
    PaymentMethods,
    GATEWAY_LABELS,
)

__all__ = [
    'TUTOR_FIELDS',
    'PENDING_PLAYER_IDS_MARKER',
    'SETTING_PRICE_ENROLLMENT',
    'SETTING_PRICE_MONTHLY',
    'SETTING_PRICE_MONTHLY_FAMILY',
    'SETTING_STATEMENT_DAY',
    'SETTING_PAYMENT_LINK_BASE_URL',
    'DEFAULT_CATEGORY',
    'UNKNOWN_CATEGORY',
    'PlayerStatus',
    'StatusChoices',
    'PaymentTypes',
    'PaymentMethods',
    'GATEWAY_LABELS',
]
