# enrollment/serializers.py
"""
Enrollment form validation.

The public form posts camelCase keys; validated data uses model field names.
"""
import re
from datetime import date

from rest_framework import serializers

from players.models import GENDER_CHOICES
from shared.constants import PaymentMethods

NAME_RE = re.compile(r'^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s]+$')
CEDULA_RE = re.compile(r'^[\d-]+$')
TUTOR_DOCUMENT_RE = re.compile(r'^[A-Za-z0-9\s\-]+$')
PHONE_STRIP_RE = re.compile(r'[\s\-().]')

MIN_CEDULA_DIGITS = 7
MIN_PHONE_DIGITS = 7
MAX_AGE_YEARS = 100


def clean_phone(value: str) -> str:
    return PHONE_STRIP_RE.sub('', value or '')


def _years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return today.replace(year=today.year - years, day=28)


def _validate_name(value, label):
    if not NAME_RE.match(value):
        raise serializers.ValidationError(f"{label} solo puede contener letras y espacios")
    return value


class PlayerEnrollmentSerializer(serializers.Serializer):
    firstName = serializers.CharField(source='first_name', max_length=100)
    lastName = serializers.CharField(source='last_name', max_length=100)
    birthDate = serializers.DateField(source='birth_date', input_formats=['%Y-%m-%d'])
    gender = serializers.ChoiceField(choices=[value for value, _ in GENDER_CHOICES])
    cedula = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    category = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    cedulaFrontFile = serializers.CharField(
        source='cedula_front_url', required=False, allow_blank=True, allow_null=True, default=''
    )
    cedulaBackFile = serializers.CharField(
        source='cedula_back_url', required=False, allow_blank=True, allow_null=True, default=''
    )

    def validate_firstName(self, value):
        return _validate_name(value, 'El nombre')

    def validate_lastName(self, value):
        return _validate_name(value, 'El apellido')

    def validate_birthDate(self, value):
        today = date.today()
        if value > today or value < _years_ago(today, MAX_AGE_YEARS):
            raise serializers.ValidationError(
                "La fecha de nacimiento debe ser válida, no puede ser futura ni mayor a 100 años"
            )
        return value

    def validate_cedula(self, value):
        value = (value or '').strip()
        if not value:
            return ''
        if not CEDULA_RE.match(value):
            raise serializers.ValidationError("La cédula solo puede contener números y guiones")
        if len(value.replace('-', '')) < MIN_CEDULA_DIGITS:
            raise serializers.ValidationError("La cédula debe tener al menos 7 dígitos")
        return value

    def validate_category(self, value):
        return (value or '').strip()

    def validate_cedulaFrontFile(self, value):
        return value or ''

    def validate_cedulaBackFile(self, value):
        return value or ''


class EnrollmentSerializer(serializers.Serializer):
    tutorName = serializers.CharField(source='tutor_name', min_length=2, max_length=100)
    tutorCedula = serializers.CharField(source='tutor_cedula', min_length=5, max_length=30)
    tutorEmail = serializers.EmailField(source='tutor_email')
    tutorPhone = serializers.CharField(source='tutor_phone', min_length=7, max_length=15)
    players = PlayerEnrollmentSerializer(many=True, allow_empty=False)
    cedulaTutorFile = serializers.CharField(
        source='tutor_cedula_url', required=False, allow_blank=True, allow_null=True, default=''
    )
    paymentMethod = serializers.ChoiceField(
        source='payment_method', choices=list(PaymentMethods.FROM_ENROLLMENT_FORM)
    )
    paymentProofFile = serializers.CharField(
        source='payment_proof_url', required=False, allow_blank=True, allow_null=True, default=''
    )

    def validate_tutorName(self, value):
        return _validate_name(value, 'El nombre')

    def validate_tutorCedula(self, value):
        if not TUTOR_DOCUMENT_RE.match(value):
            raise serializers.ValidationError(
                "El documento puede contener letras, números, guiones y espacios (mínimo 5 caracteres)"
            )
        return value

    def validate_tutorEmail(self, value):
        return value.strip().lower()

    def validate_tutorPhone(self, value):
        cleaned = clean_phone(value)
        if not cleaned.isdigit() or len(cleaned) < MIN_PHONE_DIGITS:
            raise serializers.ValidationError(
                "El teléfono solo puede contener números (mínimo 7 dígitos)"
            )
        return cleaned

    def validate_cedulaTutorFile(self, value):
        return value or ''

    def validate_paymentProofFile(self, value):
        return value or ''
