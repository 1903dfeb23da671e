# core/exceptions.py
class AcademyException(Exception):
    """Base exception for all academy administration errors."""

    def __init__(self, message=None, user_friendly=False, details=None, error_code=None):
        self.message = message or "An error occurred"
        self.user_friendly = user_friendly
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class AuthenticationError(AcademyException):
    """Authentication and authorization errors."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Authentication failed", user_friendly, details, "AUTH_ERROR")


class ValidationError(AcademyException):
    """Data validation errors."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Validation failed", user_friendly, details, "VALIDATION_ERROR")


class EnrollmentError(AcademyException):
    """Errors while registering players and tutors."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Enrollment failed", user_friendly, details, "ENROLLMENT_ERROR")


class ApprovalError(AcademyException):
    """Invalid approve/reject transitions."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Approval failed", user_friendly, details, "APPROVAL_ERROR")


class RolePermissionError(AcademyException):
    """Authorization and permission-related errors."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Insufficient permissions", user_friendly, details, "PERMISSION_ERROR")


class EmailDeliveryError(AcademyException):
    """Template lookup and email provider errors."""
    def __init__(self, message=None, user_friendly=False, details=None):
        super().__init__(message or "Email delivery failed", user_friendly, details, "EMAIL_ERROR")
