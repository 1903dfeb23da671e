# shared/__init__.py
"""
Shared package - central access to constants and exceptions.
Avoids importing services to prevent circular dependencies.
"""

from .constants import (
    PlayerStatus,
    StatusChoices,
    PaymentTypes,
    PaymentMethods,
)

__all__ = [
    'PlayerStatus',
    'StatusChoices',
    'PaymentTypes',
    'PaymentMethods',
]
