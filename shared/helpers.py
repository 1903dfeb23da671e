# shared/helpers.py
"""
Request and serialization helpers shared by the JSON views.
"""
import json
import re
from datetime import date, datetime
from decimal import Decimal

from core.exceptions import ValidationError


def parse_json_body(request):
    """Decode a JSON object body, raising ValidationError on bad input."""
    if not request.body:
        return {}
    try:
        data = json.loads(request.body.decode('utf-8'))
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Invalid JSON body.", user_friendly=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object.", user_friendly=True)
    return data


def parse_date(value, field_name='date'):
    """Parse YYYY-MM-DD into a date."""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: expected YYYY-MM-DD.", user_friendly=True)


def money(value) -> float:
    """Decimal → float rounded to cents for JSON responses."""
    if value is None:
        return 0.0
    return float(Decimal(value).quantize(Decimal('0.01')))


MONTH_YEAR_RE = re.compile(r'^\d{4}-(0[1-9]|1[0-2])$')

SPANISH_MONTHS = (
    'enero', 'febrero', 'marzo', 'abril', 'mayo', 'junio',
    'julio', 'agosto', 'septiembre', 'octubre', 'noviembre', 'diciembre',
)


def format_month_year(month_year: str) -> str:
    """'2024-05' -> 'mayo de 2024'."""
    if not month_year or not MONTH_YEAR_RE.match(month_year):
        return ''
    year, month = month_year.split('-')
    return f"{SPANISH_MONTHS[int(month) - 1]} de {year}"
