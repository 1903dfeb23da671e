# core/middleware.py
"""
Request middleware: security headers, academy resolution, request logging
and JSON error handling.
"""
import logging
from typing import Any, Optional

from django.conf import settings
from django.http import JsonResponse

from .exceptions import AcademyException
from .models import Academy

logger = logging.getLogger(__name__)


# ============ SECURITY HEADERS MIDDLEWARE ============

class SecurityHeadersMiddleware:
    """Adds baseline security headers."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)

        if response is None or callable(response):
            return response

        response["X-Content-Type-Options"] = "nosniff"
        response["X-Frame-Options"] = "DENY"
        response["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# ============ ACADEMY RESOLUTION MIDDLEWARE ============

class AcademyMiddleware:
    """
    Determines the active academy using this order:
    1. User:    user.current_academy
    2. Session: session['current_academy_id']
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.academy = self._resolve_user(request) or self._resolve_session(request)
        return self.get_response(request)

    def _resolve_user(self, request) -> Optional[Any]:
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return None
        academy = getattr(user, 'current_academy', None)
        if academy is not None and academy.is_active:
            return academy
        return None

    def _resolve_session(self, request) -> Optional[Any]:
        session = getattr(request, 'session', None)
        if session is None:
            return None
        academy_id = session.get('current_academy_id')
        if not academy_id:
            return None
        return Academy.objects.filter(id=academy_id, is_active=True).first()


# ============ EXCEPTION HANDLING MIDDLEWARE ============

class ExceptionHandlingMiddleware:
    """Handles AcademyException and general server errors as JSON."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        # Business logic error
        if isinstance(exception, AcademyException):
            logger.warning(f"Business exception on {request.path}: {exception}")
            return JsonResponse({
                'success': False,
                'error': exception.message if exception.user_friendly else "Operation failed.",
                'code': exception.error_code,
            }, status=400)

        if settings.DEBUG:
            # Let Django render its debug page
            return None

        logger.error(f"System exception on {request.path}: {exception}", exc_info=True)
        return JsonResponse({
            'success': False,
            'error': "System error. Our team has been notified.",
        }, status=500)


# ============ REQUEST LOGGING MIDDLEWARE ============

class RequestLoggingMiddleware:
    """Debug-level structured request/response logging."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if self._should_skip_logging(request) or not settings.DEBUG:
            return self.get_response(request)

        logger.debug("Request", extra={
            "method": request.method,
            "path": request.path,
            "ip": self._get_client_ip(request),
            "user": getattr(request.user, "id", None) if hasattr(request, 'user') else None,
        })

        response = self.get_response(request)

        logger.debug("Response", extra={
            "path": request.path,
            "status": getattr(response, 'status_code', None),
        })
        return response

    def _should_skip_logging(self, request) -> bool:
        """Skip logging for noisy requests."""
        skip_paths = ['/static/', '/media/', '/favicon.ico', '/health/']
        return any(request.path.startswith(path) for path in skip_paths)

    def _get_client_ip(self, request) -> str:
        xff = request.META.get("HTTP_X_FORWARDED_FOR")
        return xff.split(",")[0] if xff else request.META.get("REMOTE_ADDR", "unknown")
