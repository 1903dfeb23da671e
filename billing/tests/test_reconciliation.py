from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from billing.models import Payment
from billing.reconciliation import ReconciliationService
from core.services import SettingsService
from enrollment.services import EnrollmentService
from enrollment.tests.test_serializers import enrollment_payload
from players.models import Family, PendingPlayer
from players.tests.test_services import make_player
from shared.utils import IdempotencyService

from .test_services import make_pending


class ClassifyTest(TestCase):
    def test_approved_signals(self):
        self.assertEqual(ReconciliationService.classify({'status': 1}), 'approved')
        self.assertEqual(ReconciliationService.classify({'authStatus': '00'}), 'approved')
        self.assertEqual(ReconciliationService.classify({'totalPay': '12.50'}), 'approved')
        self.assertEqual(ReconciliationService.classify({'messageSys': 'Transacción Aprobada'}), 'approved')

    def test_denial_wins(self):
        self.assertEqual(ReconciliationService.classify({'status': 0, 'totalPay': '10'}), 'denied')
        self.assertEqual(ReconciliationService.classify({'authStatus': '05', 'status': 1}), 'denied')
        self.assertEqual(ReconciliationService.classify({'messageSys': 'Denegada por el banco'}), 'denied')

    def test_unknown(self):
        self.assertEqual(ReconciliationService.classify({}), 'unknown')
        self.assertEqual(ReconciliationService.classify({'authStatus': '', 'totalPay': '0'}), 'unknown')


def enrollment_payment(**kwargs):
    defaults = {
        'amount': Decimal('80.00'),
        'type': 'enrollment',
        'method': 'paguelofacil',
        'status': 'Pending',
    }
    defaults.update(kwargs)
    return Payment.objects.create(**defaults)


class ReconcileEnrollmentTest(TestCase):
    def test_matches_operation_in_notes(self):
        stored = enrollment_payment(notes='Paguelo Fácil Operación: OP-100')

        payment, created = ReconciliationService.reconcile_enrollment(80, operation_number='OP-100')

        self.assertFalse(created)
        self.assertEqual(payment.id, stored.id)
        payment.refresh_from_db()
        self.assertEqual(payment.status, 'Approved')
        self.assertIn('Paguelo Fácil Operación: OP-100 (Webhook). Confirmado:', payment.notes)
        self.assertTrue(payment.notes.startswith('Paguelo Fácil Operación: OP-100\nPaguelo Fácil'))
        self.assertNotIn('\n\n', payment.notes)
        self.assertEqual(payment.reference, 'OP-100')

    def test_order_id_prefers_pending(self):
        pending = enrollment_payment(notes='Orden ORD-9')
        enrollment_payment(notes='Orden ORD-9', status='Approved')

        payment, created = ReconciliationService.reconcile_enrollment(
            80, operation_number='OP-200', order_id='ORD-9'
        )

        self.assertFalse(created)
        self.assertEqual(payment.id, pending.id)

    def test_matches_recent_pending_amount_within_a_dollar(self):
        stored = enrollment_payment(amount=Decimal('130.00'))

        payment, created = ReconciliationService.reconcile_enrollment(Decimal('130.50'), operation_number='OP-300')

        self.assertFalse(created)
        self.assertEqual(payment.id, stored.id)

    def test_old_pending_payment_is_not_matched(self):
        stored = enrollment_payment()
        Payment.objects.filter(pk=stored.pk).update(created_at=timezone.now() - timedelta(hours=3))

        payment, created = ReconciliationService.reconcile_enrollment(80, operation_number='OP-400')

        self.assertTrue(created)
        self.assertNotEqual(payment.id, stored.id)
        self.assertIsNone(payment.player_id)
        self.assertEqual(payment.status, 'Approved')
        self.assertEqual(payment.reference, 'OP-400')

    def test_other_method_is_not_matched(self):
        enrollment_payment(method='yappy', notes='OP-500')
        _, created = ReconciliationService.reconcile_enrollment(80, operation_number='OP-500')
        self.assertTrue(created)


class LinkPendingPlayersTest(TestCase):
    def setUp(self):
        SettingsService.set_value('price_enrollment', '80')
        self.family = Family.objects.create(name='Familia Ríos', tutor_name='Carlos Ríos', tutor_cedula='8-555-1')

    def unlinked(self, amount):
        return Payment.objects.create(amount=Decimal(amount), type='enrollment', method='paguelofacil')

    def test_family_match(self):
        make_pending()
        siblings = [
            make_pending(first_name='Ana', family=self.family, tutor_name='', tutor_email=''),
            make_pending(first_name='Eva', family=self.family, tutor_name='', tutor_email=''),
        ]
        payment = self.unlinked('160.00')

        ids = ReconciliationService.link_payment_to_pending_players(payment)

        self.assertEqual(set(ids), {p.id for p in siblings})
        self.assertEqual(payment.pending_players.count(), 2)
        self.assertIn('Pending Player IDs:', payment.notes)

    def test_individual_match_skips_already_linked(self):
        first = make_pending(first_name='Ana')
        second = make_pending(first_name='Eva')
        earlier = self.unlinked('80.00')
        earlier.pending_players.add(second)

        ids = ReconciliationService.link_payment_to_pending_players(self.unlinked('80.00'))

        self.assertEqual(ids, [first.id])

    def test_count_fallback_takes_newest(self):
        make_pending(first_name='Ana')
        second = make_pending(first_name='Eva')
        third = make_pending(first_name='Ema')

        ids = ReconciliationService.link_payment_to_pending_players(self.unlinked('170.00'))

        self.assertEqual(ids, [third.id, second.id])

    def test_old_pending_players_are_ignored(self):
        pending = make_pending()
        PendingPlayer.objects.filter(pk=pending.pk).update(created_at=timezone.now() - timedelta(hours=3))

        payment = self.unlinked('80.00')
        self.assertEqual(ReconciliationService.link_payment_to_pending_players(payment), [])
        self.assertEqual(payment.notes, '')

    def test_default_price_without_setting(self):
        SettingsService.set_value('price_enrollment', '')
        self.assertEqual(ReconciliationService.enrollment_price(), Decimal('80.00'))


class ProcessNotificationTest(TestCase):
    def setUp(self):
        cache.clear()

    def test_payment_for_player_is_recorded_once(self):
        player = make_player()
        notification = {'type': 'payment', 'player_ref': str(player.id), 'amount': '130.00',
                        'payment_type': 'monthly', 'month_year': '2024-05', 'operation': 'OP-1'}

        first = ReconciliationService.process_notification('paguelofacil', notification)
        second = ReconciliationService.process_notification('paguelofacil', notification)

        self.assertEqual(first['action'], 'payment_created')
        self.assertEqual(second['action'], 'duplicate')
        payment = Payment.objects.get()
        self.assertEqual(payment.player, player)
        self.assertEqual(payment.month_year, '2024-05')
        self.assertEqual(payment.reference, 'OP-1')

    def test_unknown_player(self):
        result = ReconciliationService.process_notification(
            'yappy', {'type': 'payment', 'player_ref': '999', 'amount': '10', 'operation': 'TX-9'}
        )
        self.assertEqual(result['action'], 'player_not_found')

    def test_enrollment_with_stored_data(self):
        token = EnrollmentService.store_temporary(enrollment_payload())

        result = ReconciliationService.process_notification(
            'paguelofacil',
            {'type': 'enrollment', 'player_ref': token, 'amount': '80.00', 'operation': 'OP-2'},
        )

        self.assertEqual(result['action'], 'enrollment_created')
        self.assertEqual(PendingPlayer.objects.count(), 1)
        self.assertIsNone(EnrollmentService.load_temporary(token))

    def test_enrollment_with_bad_data_still_records_payment(self):
        token = EnrollmentService.store_temporary(enrollment_payload(tutorEmail='bad'))

        result = ReconciliationService.process_notification(
            'paguelofacil',
            {'type': 'enrollment', 'player_ref': token, 'amount': '80.00', 'operation': 'OP-3'},
        )

        self.assertEqual(result['action'], 'payment_created')
        self.assertEqual(Payment.objects.get().reference, 'OP-3')

    def test_enrollment_without_token_is_reconciled(self):
        stored = enrollment_payment(method='yappy', notes='Orden ORD-4')
        result = ReconciliationService.process_notification(
            'yappy', {'type': 'enrollment', 'amount': '80', 'order_id': 'ORD-4', 'operation': 'TX-4'}
        )
        self.assertEqual(result, {'success': True, 'action': 'payment_matched', 'paymentId': stored.id})

    def test_zero_amount_is_ignored(self):
        result = ReconciliationService.process_notification(
            'yappy', {'type': 'payment', 'player_ref': '1', 'amount': '0', 'operation': 'TX-5'}
        )
        self.assertEqual(result['action'], 'ignored')

    @patch('billing.reconciliation.ReconciliationService._dispatch', side_effect=DatabaseError('boom'))
    def test_failure_releases_lock(self, dispatch):
        with self.assertRaises(DatabaseError):
            ReconciliationService.process_notification('yappy', {'operation': 'TX-6', 'amount': '5'})

        key = IdempotencyService.build_key('yappy', 'TX-6')
        self.assertTrue(IdempotencyService.check_and_lock(key))
