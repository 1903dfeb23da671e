# core/services.py
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from shared.constants import (
    SETTING_PRICE_ENROLLMENT,
    SETTING_PRICE_MONTHLY,
    SETTING_PRICE_MONTHLY_FAMILY,
)

from .models import Academy, Setting

logger = logging.getLogger(__name__)


DEFAULT_PRICES = {
    SETTING_PRICE_ENROLLMENT: Decimal('130.00'),
    SETTING_PRICE_MONTHLY: Decimal('130.00'),
    SETTING_PRICE_MONTHLY_FAMILY: Decimal('110.50'),
}


class SettingsService:
    """Read and write academy settings with a global fallback."""

    @staticmethod
    def get_value(key: str, default: Optional[str] = None,
                  academy: Optional[Academy] = None) -> Optional[str]:
        if academy is not None:
            row = Setting.objects.filter(academy=academy, key=key).first()
            if row is not None:
                return row.value

        row = Setting.objects.filter(academy__isnull=True, key=key).first()
        if row is not None:
            return row.value
        return default

    @staticmethod
    def get_decimal(key: str, default: Decimal, academy: Optional[Academy] = None) -> Decimal:
        raw = SettingsService.get_value(key, academy=academy)
        if raw in (None, ''):
            return default
        try:
            return Decimal(str(raw).strip())
        except InvalidOperation:
            logger.warning(f"Setting {key} has non-numeric value {raw!r}, using {default}")
            return default

    @staticmethod
    def set_value(key: str, value, academy: Optional[Academy] = None) -> Setting:
        setting, created = Setting.objects.update_or_create(
            academy=academy,
            key=key,
            defaults={'value': str(value)},
        )
        logger.info(f"Setting {key} {'created' if created else 'updated'} for {academy or 'global'}")
        return setting

    @staticmethod
    def get_prices(academy: Optional[Academy] = None) -> Dict[str, Decimal]:
        """Enrollment, monthly and family monthly prices."""
        return {
            'enrollment': SettingsService.get_decimal(
                SETTING_PRICE_ENROLLMENT, DEFAULT_PRICES[SETTING_PRICE_ENROLLMENT], academy),
            'monthly': SettingsService.get_decimal(
                SETTING_PRICE_MONTHLY, DEFAULT_PRICES[SETTING_PRICE_MONTHLY], academy),
            'monthly_family': SettingsService.get_decimal(
                SETTING_PRICE_MONTHLY_FAMILY, DEFAULT_PRICES[SETTING_PRICE_MONTHLY_FAMILY], academy),
        }
