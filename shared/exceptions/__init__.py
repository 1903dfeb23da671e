from .payment import (
    PaymentProcessingError,
    PaymentVerificationError,
    PaymentGatewayError,
)

__all__ = [
    'PaymentProcessingError',
    'PaymentVerificationError',
    'PaymentGatewayError',
]
