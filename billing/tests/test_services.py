from datetime import date
from decimal import Decimal

from django.test import TestCase

from billing.models import Payment
from billing.services import PaymentService, format_month_year, parse_pending_player_ids
from communications.models import EmailQueue, EmailTemplate
from core.exceptions import ValidationError
from players.models import PendingPlayer
from players.tests.test_services import make_player


def make_pending(**kwargs):
    defaults = {
        'first_name': 'Sofía',
        'last_name': 'Ríos',
        'birth_date': date(2015, 6, 1),
        'gender': 'Femenino',
        'tutor_name': 'Carlos Ríos',
        'tutor_email': 'carlos@example.com',
    }
    defaults.update(kwargs)
    return PendingPlayer.objects.create(**defaults)


class HelpersTest(TestCase):
    def test_parse_pending_player_ids(self):
        notes = "Pago Yappy.\nPending Player IDs: 4, 7\notro\nPending Player IDs: 12"
        self.assertEqual(parse_pending_player_ids(notes), [4, 7, 12])
        self.assertEqual(parse_pending_player_ids(''), [])

    def test_format_month_year(self):
        self.assertEqual(format_month_year('2024-05'), 'mayo de 2024')
        self.assertEqual(format_month_year('2024-13'), '')
        self.assertEqual(format_month_year(''), '')


class PaymentModelTest(TestCase):
    def test_is_linked(self):
        self.assertFalse(Payment.objects.create(amount=20).is_linked)
        self.assertTrue(Payment.objects.create(amount=20, player=make_player()).is_linked)

    def test_append_note(self):
        payment = Payment(amount=20)
        payment.append_note('Primera')
        payment.append_note('Segunda')
        self.assertEqual(payment.notes, 'Primera\nSegunda')

    def test_status_change_is_a_single_update(self):
        payment = Payment.objects.create(amount=20, status='Pending')
        payment.status = 'Approved'
        with self.assertNumQueries(1):
            payment.save()


class CreatePaymentTest(TestCase):
    def test_updates_player_payment_info(self):
        player = make_player(payment_status='pending')
        payment = PaymentService.create_payment(
            Decimal('130.00'), payment_type='monthly', method='cash',
            player=player, payment_date=date(2024, 5, 3), month_year='2024-05',
        )

        self.assertEqual(payment.status, 'Approved')
        player.refresh_from_db()
        self.assertEqual(player.payment_status, 'current')
        self.assertEqual(player.last_payment_date, date(2024, 5, 3))

    def test_rejected_payment_leaves_player_alone(self):
        player = make_player(payment_status='pending')
        PaymentService.create_payment(50, player=player, status='Rejected')

        player.refresh_from_db()
        self.assertEqual(player.payment_status, 'pending')
        self.assertIsNone(player.last_payment_date)


class GatewayPaymentTest(TestCase):
    def setUp(self):
        EmailTemplate.objects.create(
            name='payment_thank_you',
            subject='Gracias {{tutorName}}',
            html_template='{{playerName}} ${{amount}} {{paymentType}} {{monthYear}} {{operationId}}',
        )

    def test_player_payment_sends_thank_you(self):
        player = make_player(tutor_name='Marta', tutor_email='marta@example.com')
        payment = PaymentService.create_gateway_payment(
            str(player.id), '130.00', 'yappy', payment_type='monthly',
            month_year='2024-05', reference='TX-1',
        )

        self.assertEqual(payment.player, player)
        self.assertEqual(payment.method, 'yappy')
        email = EmailQueue.objects.get()
        self.assertEqual(email.to_email, 'marta@example.com')
        self.assertEqual(email.subject, 'Gracias Marta')
        self.assertEqual(email.html_content, 'Luis Pérez $130.00 Mensualidad mayo de 2024 TX-1')
        self.assertEqual(email.metadata['payment_id'], payment.id)

    def test_pending_player_gets_unlinked_payment(self):
        pending = make_pending()
        payment = PaymentService.create_gateway_payment(pending.id + 1000, 80, 'yappy')
        self.assertIsNone(payment)

        payment = PaymentService.create_gateway_payment(pending.id, 80, 'yappy', notes='Orden 55')

        self.assertIsNone(payment.player_id)
        self.assertEqual(list(payment.pending_players.all()), [pending])
        self.assertEqual(payment.notes, f"Orden 55. Pending Player IDs: {pending.id}")
        self.assertEqual(EmailQueue.objects.get().to_email, 'carlos@example.com')

    def test_unknown_type_and_bad_month_are_normalized(self):
        player = make_player()
        payment = PaymentService.create_gateway_payment(player.id, 20, 'paguelofacil',
                                                        payment_type='donation', month_year='May')
        self.assertEqual(payment.type, 'custom')
        self.assertEqual(payment.month_year, '')

    def test_invalid_reference(self):
        self.assertIsNone(PaymentService.create_gateway_payment('abc', 20, 'yappy'))
        self.assertFalse(Payment.objects.exists())

    def test_missing_template_does_not_block_payment(self):
        EmailTemplate.objects.all().delete()
        player = make_player(tutor_email='marta@example.com')
        payment = PaymentService.create_gateway_payment(player.id, 20, 'yappy')
        self.assertIsNotNone(payment)
        self.assertFalse(EmailQueue.objects.exists())


class LinkPaymentTest(TestCase):
    def test_link_approves_pending_payment(self):
        player = make_player()
        payment = Payment.objects.create(amount=80, type='enrollment', status='Pending')

        PaymentService.link_payment_to_player(payment, player)

        payment.refresh_from_db()
        self.assertEqual(payment.player, player)
        self.assertEqual(payment.status, 'Approved')
        player.refresh_from_db()
        self.assertEqual(player.payment_status, 'current')

    def test_already_linked_payment_is_rejected(self):
        player = make_player()
        payment = Payment.objects.create(amount=80, player=player)
        with self.assertRaises(ValidationError):
            PaymentService.link_payment_to_player(payment, make_player(first_name='Ana'))


class AutoLinkTest(TestCase):
    def test_links_by_relation_and_by_legacy_notes(self):
        pending = make_pending()
        by_relation = Payment.objects.create(amount=80, type='enrollment')
        by_relation.pending_players.add(pending)
        by_notes = Payment.objects.create(amount=20, notes=f"Pending Player IDs: 99, {pending.id}")
        unrelated = Payment.objects.create(amount=30, notes="Pending Player IDs: 99")

        player = make_player()
        result = PaymentService.auto_link_unlinked_payments(player, pending.id)

        self.assertEqual(result, {'linked': 2, 'total': 2, 'errors': []})
        self.assertEqual(set(player.payments.values_list('id', flat=True)), {by_relation.id, by_notes.id})
        unrelated.refresh_from_db()
        self.assertIsNone(unrelated.player_id)

    def test_without_pending_id_links_nothing(self):
        player = make_player()
        Payment.objects.create(amount=20, notes=f"Pending Player IDs: {player.id}")

        result = PaymentService.auto_link_unlinked_payments(player)

        self.assertEqual(result, {'linked': 0, 'total': 0, 'errors': []})
        self.assertFalse(player.payments.exists())


class SummaryTest(TestCase):
    def test_summary_excludes_void_payments(self):
        player = make_player()
        Payment.objects.create(player=player, amount=130, payment_date=date(2024, 4, 1))
        Payment.objects.create(player=player, amount=130, payment_date=date(2024, 5, 1), status='Paid')
        Payment.objects.create(player=player, amount=500, payment_date=date(2024, 6, 1), status='Rejected')

        summary = PaymentService.get_payment_summary(player)

        self.assertEqual(summary['total'], Decimal('260.00'))
        self.assertEqual(summary['count'], 2)
        self.assertEqual(summary['last_payment'], date(2024, 5, 1))

    def test_unlinked_payments(self):
        player = make_player()
        Payment.objects.create(player=player, amount=10)
        loose = Payment.objects.create(amount=20)
        self.assertEqual(list(PaymentService.get_unlinked_payments()), [loose])
