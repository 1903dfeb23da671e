# shared/exceptions/payment.py
"""
Payment-related exceptions.
"""


class PaymentProcessingError(Exception):
    """Exception raised for payment processing errors."""

    def __init__(self, message, user_friendly=False, original_error=None):
        self.message = message
        self.user_friendly = user_friendly
        self.original_error = original_error
        super().__init__(self.message)


class PaymentVerificationError(PaymentProcessingError):
    """Exception raised when a gateway notification cannot be verified."""
    pass


class PaymentGatewayError(PaymentProcessingError):
    """Exception raised when a payment gateway returns an error."""
    pass
