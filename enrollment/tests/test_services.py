from decimal import Decimal
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase

from billing.models import Payment
from communications.models import EmailQueue, EmailTemplate
from core.exceptions import ValidationError
from core.services import SettingsService
from enrollment.serializers import EnrollmentSerializer
from enrollment.services import EnrollmentService
from enrollment.tests.test_serializers import enrollment_payload
from players.models import Family, PendingPlayer, Player


def second_player():
    return {
        'firstName': 'Ana',
        'lastName': 'Pérez',
        'birthDate': '2012-09-10',
        'gender': 'Femenino',
    }


class NormalizeTest(TestCase):
    def test_pads_cedula_and_cleans_phone(self):
        data = EnrollmentService.normalize(enrollment_payload(
            tutorCedula=' 12345 ',
            tutorPhone='6123 4567',
            players=[{'firstName': 'Luis', 'cedula': ' 8-1-1 ', 'category': '  '}],
        ))
        self.assertEqual(data['tutorCedula'], '0012345')
        self.assertEqual(data['tutorPhone'], '61234567')
        self.assertEqual(data['players'][0]['cedula'], '8-1-1')
        self.assertEqual(data['players'][0]['category'], 'Pendiente')

    def test_short_phone_left_alone(self):
        data = EnrollmentService.normalize(enrollment_payload(tutorPhone='61-23'))
        self.assertEqual(data['tutorPhone'], '61-23')

    def test_validate_raises_with_details(self):
        with self.assertRaises(ValidationError) as ctx:
            EnrollmentService.validate(enrollment_payload(tutorEmail='not-an-email'))
        self.assertIn('tutorEmail', ctx.exception.details)


class SubmitEnrollmentTest(TestCase):
    def setUp(self):
        EmailTemplate.objects.create(
            name='enrollment_confirmation',
            subject='Matrícula',
            html_template='{{tutorName}}: {{playerNames}} ${{amount}}',
        )

    def submit(self, **overrides):
        serializer = EnrollmentSerializer(data=enrollment_payload(**overrides))
        self.assertTrue(serializer.is_valid(), serializer.errors)
        return EnrollmentService.submit_enrollment(serializer.validated_data)

    def test_creates_family_players_and_payments(self):
        result = self.submit(players=enrollment_payload()['players'] + [second_player()])

        family = Family.objects.get(id=result['familyId'])
        self.assertEqual(family.name, 'Familia Pérez')
        self.assertEqual(family.players.count(), 2)
        self.assertTrue(all(p.status == 'Pending' for p in family.players.all()))
        self.assertEqual(result['amount'], 260.0)

        main = Payment.objects.get(id=result['paymentId'])
        self.assertEqual(main.amount, Decimal('260.00'))
        self.assertEqual(main.status, 'Pending Approval')
        self.assertEqual(main.method, 'transfer')
        self.assertEqual(main.type, 'enrollment')
        self.assertEqual(Payment.objects.filter(amount=0, type='enrollment').count(), 1)

        email = EmailQueue.objects.get()
        self.assertEqual(email.to_email, 'marta@example.com')
        self.assertIn('260.00', email.html_content)

    def test_category_from_birth_year(self):
        result = self.submit()
        player = Player.objects.get(id=result['playerIds'][0])
        self.assertEqual(player.category, 'U12')

    def test_cash_payment_stays_pending(self):
        SettingsService.set_value('price_enrollment', '100')
        result = self.submit(paymentMethod='Efectivo')
        payment = Payment.objects.get(id=result['paymentId'])
        self.assertEqual(payment.status, 'Pending')
        self.assertEqual(payment.method, 'cash')
        self.assertEqual(payment.amount, Decimal('100'))

    def test_existing_family_is_updated(self):
        Family.objects.create(name='Familia Vieja', tutor_name='Old', tutor_cedula='8-123-4567')
        result = self.submit()

        family = Family.objects.get(id=result['familyId'])
        self.assertEqual(family.name, 'Familia Vieja')
        self.assertEqual(family.tutor_name, 'Marta Pérez')
        self.assertEqual(Family.objects.count(), 1)

    def test_missing_email_template_does_not_fail(self):
        EmailTemplate.objects.all().delete()
        result = self.submit()
        self.assertTrue(result['success'])
        self.assertFalse(EmailQueue.objects.exists())


class EnrollmentFromPaymentTest(TestCase):
    def test_single_player_keeps_tutor_on_pending_player(self):
        result = EnrollmentService.create_enrollment_from_payment(
            enrollment_payload(tutorCedula='12345'), Decimal('80.00'), 'paguelofacil', 'OP-777'
        )

        self.assertTrue(result['success'])
        self.assertIsNone(result['familyId'])
        pending = PendingPlayer.objects.get(id=result['playerIds'][0])
        self.assertEqual(pending.tutor_cedula, '0012345')
        self.assertEqual(pending.tutor_email, 'marta@example.com')

        payment = Payment.objects.get(id=result['paymentId'])
        self.assertIsNone(payment.player_id)
        self.assertEqual(payment.status, 'Approved')
        self.assertEqual(payment.reference, 'OP-777')
        self.assertIn('Paguelo Fácil Operación: OP-777', payment.notes)
        self.assertIn(f"Pending Player IDs: {pending.id}", payment.notes)
        self.assertEqual(list(payment.pending_players.all()), [pending])

    def test_two_players_create_family(self):
        result = EnrollmentService.create_enrollment_from_payment(
            enrollment_payload(players=enrollment_payload()['players'] + [second_player()]),
            160, 'yappy',
        )

        family = Family.objects.get(id=result['familyId'])
        self.assertEqual(family.pending_players.count(), 2)
        self.assertTrue(all(not p.tutor_name for p in family.pending_players.all()))
        payment = Payment.objects.get(id=result['paymentId'])
        self.assertIn('Yappy Comercial', payment.notes)
        self.assertEqual(payment.pending_players.count(), 2)

    def test_invalid_data_returns_error(self):
        result = EnrollmentService.create_enrollment_from_payment(
            enrollment_payload(tutorEmail='bad'), 80, 'yappy'
        )
        self.assertFalse(result['success'])
        self.assertIn('Email del tutor inválido', result['error'])
        self.assertFalse(Payment.objects.exists())

    def test_keeps_rows_created_before_failure(self):
        with patch(
            'enrollment.services.EnrollmentService._create_gateway_enrollment_payment',
            side_effect=DatabaseError('boom'),
        ):
            result = EnrollmentService.create_enrollment_from_payment(enrollment_payload(), 80, 'yappy')

        self.assertFalse(result['success'])
        self.assertEqual(len(result['playerIds']), 1)
        self.assertTrue(PendingPlayer.objects.filter(id=result['playerIds'][0]).exists())


class TemporaryStorageTest(TestCase):
    def test_store_load_discard(self):
        token = EnrollmentService.store_temporary({'tutorName': 'Marta'})
        self.assertTrue(token.startswith('enrollment_'))
        self.assertEqual(EnrollmentService.load_temporary(token), {'tutorName': 'Marta'})

        EnrollmentService.discard_temporary(token)
        self.assertIsNone(EnrollmentService.load_temporary(token))
        self.assertIsNone(EnrollmentService.load_temporary(''))
