# communications/defaults.py
"""
Starter templates created by `manage.py seed_email_templates`.
Staff edit them afterwards in the admin.
"""

_LAYOUT = (
    '<div style="font-family:Arial,sans-serif;max-width:600px;margin:auto">'
    '<img src="{{logoUrl}}" alt="Logo" style="height:64px"/>'
    '%s'
    '</div>'
)

DEFAULT_TEMPLATES = {
    'enrollment_confirmation': {
        'subject': 'Confirmación de Matrícula',
        'html_template': _LAYOUT % (
            '<p>Hola {{tutorName}},</p>'
            '<p>Recibimos la matrícula de: {{playerNames}}.</p>'
            '<p>Monto: ${{amount}} ({{paymentMethod}}).</p>'
            '<p>Te avisaremos cuando la academia revise la solicitud.</p>'
        ),
    },
    'player_accepted': {
        'subject': '¡{{playerName}} fue aceptado en la academia!',
        'html_template': _LAYOUT % (
            '<p>Hola {{tutorName}},</p>'
            '<p>{{playerName}} fue aceptado con estado {{status}}.</p>'
        ),
    },
    'payment_thank_you': {
        'subject': 'Gracias por tu pago',
        'html_template': _LAYOUT % (
            '<p>Hola {{tutorName}},</p>'
            '<p>Recibimos tu pago de ${{amount}} para {{playerName}} ({{paymentType}}).</p>'
            '<p>Fecha: {{paymentDate}}</p>'
        ),
    },
    'monthly_statement': {
        'subject': 'Estado de cuenta {{monthYear}}',
        'html_template': _LAYOUT % (
            '<p>Hola {{tutorName}},</p>'
            '<p>Este es el estado de cuenta de {{monthYear}}:</p>'
            '<ul>{{playerList}}</ul>'
            '<p>Total pendiente: ${{amount}}. Fecha límite: {{dueDate}}.</p>'
            '<p><a href="{{paymentLink}}">Pagar en línea</a></p>'
        ),
    },
}
