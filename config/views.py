# config/views.py
"""
Project-level views: health check and JSON error handlers.
"""

from django.db import connection
from django.db.utils import OperationalError
from django.http import JsonResponse
from django.utils import timezone


# ============================================================================
# HEALTH & STATUS
# ============================================================================

def health_check_view(request):
    """System health check endpoint."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        db_status = True
    except OperationalError:
        db_status = False

    status_code = 200 if db_status else 503

    return JsonResponse({
        'status': 'ok' if db_status else 'unhealthy',
        'database': 'connected' if db_status else 'disconnected',
        'timestamp': timezone.now().isoformat(),
    }, status=status_code)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def _error(status, message):
    return JsonResponse({'success': False, 'error': message}, status=status)


def handler404(request, exception):
    return _error(404, 'Not found.')


def handler500(request):
    return _error(500, 'System error. Our team has been notified.')


def handler403(request, exception):
    return _error(403, 'You do not have permission to access this resource.')


def handler400(request, exception):
    return _error(400, 'Your request could not be processed.')
