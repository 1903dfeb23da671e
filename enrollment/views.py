# enrollment/views.py
"""
Public enrollment endpoints, called by the enrollment form on the academy site.
"""
import logging

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from core.exceptions import AcademyException, ValidationError
from shared.helpers import parse_json_body

from .serializers import EnrollmentSerializer
from .services import TEMP_ENROLLMENT_TTL, EnrollmentService

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
def enrollment_submit_view(request):
    """Direct enrollment (transfer, proof, cash, cheque)."""
    try:
        body = parse_json_body(request)
    except ValidationError as e:
        return JsonResponse({'error': 'Datos inválidos', 'details': {'body': [e.message]}}, status=400)

    serializer = EnrollmentSerializer(data=body)
    if not serializer.is_valid():
        return JsonResponse({'error': 'Datos inválidos', 'details': serializer.errors}, status=400)

    try:
        result = EnrollmentService.submit_enrollment(serializer.validated_data)
    except (DatabaseError, AcademyException) as e:
        logger.error(f"Enrollment error: {e}", exc_info=True)
        return JsonResponse({'error': 'Error procesando la matrícula'}, status=500)

    return JsonResponse(result)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def enrollment_temp_view(request):
    """POST stores form data before the gateway redirect; GET ?token= reads it back."""
    if request.method == 'POST':
        data = parse_json_body(request)
        token = EnrollmentService.store_temporary(data)
        return JsonResponse({'success': True, 'token': token, 'expiresIn': TEMP_ENROLLMENT_TTL})

    token = request.GET.get('token')
    if not token:
        return JsonResponse({'error': 'Token requerido'}, status=400)

    data = EnrollmentService.load_temporary(token)
    if data is None:
        return JsonResponse({'error': 'Datos no encontrados o expirados'}, status=404)

    return JsonResponse({'success': True, 'data': data})
