# shared/constants/model_fields.py

"""
CONSTANT field names and choice values shared by every app.
NO DEPENDENCIES - safe to import from models, services and views.
"""

# Tutor contact fields (Family, Player and PendingPlayer use the same names)
TUTOR_NAME_FIELD = 'tutor_name'
TUTOR_CEDULA_FIELD = 'tutor_cedula'
TUTOR_EMAIL_FIELD = 'tutor_email'
TUTOR_PHONE_FIELD = 'tutor_phone'

TUTOR_FIELDS = (
    TUTOR_NAME_FIELD,
    TUTOR_CEDULA_FIELD,
    TUTOR_EMAIL_FIELD,
    TUTOR_PHONE_FIELD,
)

# Audit marker written into Payment.notes when a payment covers pending players
PENDING_PLAYER_IDS_MARKER = 'Pending Player IDs:'

# Setting keys (core.Setting)
SETTING_PRICE_ENROLLMENT = 'price_enrollment'
SETTING_PRICE_MONTHLY = 'price_monthly'
SETTING_PRICE_MONTHLY_FAMILY = 'price_monthly_family'
SETTING_STATEMENT_DAY = 'statement_payment_day'
SETTING_PAYMENT_LINK_BASE_URL = 'payment_link_base_url'

DEFAULT_CATEGORY = 'Pendiente'
UNKNOWN_CATEGORY = 'Sin categoría'


# Player status values
class PlayerStatus:
    PENDING = 'Pending'
    ACTIVE = 'Active'
    SCHOLARSHIP = 'Scholarship'
    REJECTED = 'Rejected'
    RETIRED = 'Retired'

    CHOICES = (
        (PENDING, 'Pending'),
        (ACTIVE, 'Active'),
        (SCHOLARSHIP, 'Scholarship'),
        (REJECTED, 'Rejected'),
        (RETIRED, 'Retired'),
    )

    ENROLLED = (ACTIVE, SCHOLARSHIP)


# Payment status values (consolidated from billing and approvals)
class StatusChoices:
    PENDING = 'Pending'
    PENDING_APPROVAL = 'Pending Approval'
    APPROVED = 'Approved'
    PAID = 'Paid'
    REJECTED = 'Rejected'
    CANCELLED = 'Cancelled'

    CHOICES = (
        (PENDING, 'Pending'),
        (PENDING_APPROVAL, 'Pending Approval'),
        (APPROVED, 'Approved'),
        (PAID, 'Paid'),
        (REJECTED, 'Rejected'),
        (CANCELLED, 'Cancelled'),
    )

    # Statuses an admin may still approve or reject
    REVIEWABLE = (PENDING, PENDING_APPROVAL)
    # Statuses excluded from income and summaries
    VOID = (REJECTED, CANCELLED)


class PaymentTypes:
    ENROLLMENT = 'enrollment'
    MONTHLY = 'monthly'
    TOURNAMENT = 'tournament'
    CUSTOM = 'custom'

    CHOICES = (
        (ENROLLMENT, 'Enrollment'),
        (MONTHLY, 'Monthly fee'),
        (TOURNAMENT, 'Tournament'),
        (CUSTOM, 'Custom'),
    )


# Payment methods
class PaymentMethods:
    YAPPY = 'yappy'
    PAGUELOFACIL = 'paguelofacil'
    TRANSFER = 'transfer'
    PROOF = 'proof'
    CASH = 'cash'
    CHEQUE = 'cheque'
    MANUAL = 'manual'

    CHOICES = (
        (YAPPY, 'Yappy'),
        (PAGUELOFACIL, 'Paguelo Fácil'),
        (TRANSFER, 'Bank transfer'),
        (PROOF, 'Payment proof'),
        (CASH, 'Cash'),
        (CHEQUE, 'Cheque'),
        (MANUAL, 'Manual'),
    )

    # Enrollment form values → stored method
    FROM_ENROLLMENT_FORM = {
        'Yappy': YAPPY,
        'Transferencia': TRANSFER,
        'Comprobante': PROOF,
        'Efectivo': CASH,
        'Cheque': CHEQUE,
        'PagueloFacil': PAGUELOFACIL,
    }

    # Form values whose enrollment payment waits for an admin to check it
    NEEDS_APPROVAL = ('Comprobante', 'Transferencia', 'Yappy')


# Gateway names written into payment notes
GATEWAY_LABELS = {
    PaymentMethods.PAGUELOFACIL: 'Paguelo Fácil',
    PaymentMethods.YAPPY: 'Yappy Comercial',
}
