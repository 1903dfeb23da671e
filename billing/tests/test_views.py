import hashlib
import hmac
import json
from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase, override_settings
from django.urls import reverse

from billing.models import Expense, Payment, StaffPayment
from core.models import Academy
from enrollment.services import EnrollmentService
from enrollment.tests.test_serializers import enrollment_payload
from players.models import PendingPlayer
from players.tests.test_services import make_player
from shared.exceptions.payment import PaymentGatewayError
from shared.services.payment import PagueloFacilService, YappyService
from users.services import RoleSetupService, UserManagementService

GATEWAY_SETTINGS = dict(
    APP_BASE_URL='https://academia.example.com',
    YAPPY_MERCHANT_ID='MERCHANT1',
    YAPPY_SECRET_KEY='yappy-secret',
    YAPPY_DOMAIN_URL='https://academia.example.com',
    YAPPY_ENVIRONMENT='testing',
    PAGUELOFACIL_CCLW='CCLW123',
    PAGUELOFACIL_SANDBOX=True,
)


def yappy_hash(order_id, status, domain, confirmation, secret='yappy-secret'):
    message = f"{order_id}{status}{domain}{confirmation}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


@override_settings(**GATEWAY_SETTINGS)
class YappyViewsTest(TestCase):
    def setUp(self):
        cache.clear()

    def post_json(self, name, payload):
        return self.client.post(reverse(name), data=json.dumps(payload), content_type='application/json')

    def test_config(self):
        response = self.client.get(reverse('billing:yappy_config'))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['merchantId'], 'MERCHANT1')
        self.assertEqual(data['domain'], 'academia.example.com')
        self.assertIn('uat', data['cdnUrl'])

    def test_order_validation(self):
        base = {'amount': '10.00', 'description': 'Mensualidad', 'orderId': 'ORD-1'}
        cases = [
            (dict(base, amount='0'), 'monto'),
            (dict(base, amount='NaN'), 'monto'),
            (dict(base, amount='Infinity'), 'monto'),
            (dict(base, description=''), 'descripción'),
            (dict(base, orderId=''), 'ID de orden'),
            (dict(base, orderId='X' * 16), '15'),
        ]
        for payload, fragment in cases:
            with self.subTest(payload=payload):
                response = self.post_json('billing:yappy_order', payload)
                self.assertEqual(response.status_code, 400)
                self.assertIn(fragment, response.json()['error'])

    @patch.object(YappyService, 'create_order')
    @patch.object(YappyService, 'validate_merchant')
    def test_order_created(self, validate_merchant, create_order):
        validate_merchant.return_value = {'token': 'tok', 'epochTime': 1700000000}
        create_order.return_value = {'orderId': 'ORD-1', 'transactionId': 'TX-1'}

        response = self.post_json('billing:yappy_order',
                                  {'amount': '10.00', 'description': 'Mensualidad', 'orderId': 'ORD-1'})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['orderData']['transactionId'], 'TX-1')
        self.assertEqual(data['merchantId'], 'MERCHANT1')
        kwargs = create_order.call_args.kwargs
        self.assertEqual(kwargs['token'], 'tok')
        self.assertEqual(kwargs['ipn_url'], 'https://academia.example.com/billing/yappy/callback/')

    @patch.object(YappyService, 'validate_merchant')
    def test_order_gateway_failure(self, validate_merchant):
        validate_merchant.side_effect = PaymentGatewayError('Credenciales inválidas', user_friendly=True)

        response = self.post_json('billing:yappy_order',
                                  {'amount': '10.00', 'description': 'Mensualidad', 'orderId': 'ORD-1'})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['error'], 'Credenciales inválidas')

    def test_callback_rejects_bad_hash(self):
        response = self.post_json('billing:yappy_callback', {
            'orderId': 'payment-1-99', 'status': 'E', 'domain': 'academia.example.com',
            'confirmationNumber': 'C1', 'hash': 'deadbeef',
        })
        self.assertEqual(response.status_code, 401)
        self.assertFalse(Payment.objects.exists())

    def test_callback_records_player_payment(self):
        player = make_player()
        order_id = f"payment-{player.id}-1"
        response = self.post_json('billing:yappy_callback', {
            'orderId': order_id,
            'status': 'E',
            'domain': 'academia.example.com',
            'confirmationNumber': 'C-77',
            'amount': '130.00',
            'hash': yappy_hash(order_id, 'E', 'academia.example.com', 'C-77'),
            'metadata': {'type': 'payment', 'paymentType': 'monthly', 'monthYear': '2024-05'},
        })

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertTrue(data['redirectUrl'].startswith(
            f"https://academia.example.com/dashboard/players/{player.id}?yappy=success"
        ))
        payment = Payment.objects.get()
        self.assertEqual(payment.player, player)
        self.assertEqual(payment.amount, Decimal('130.00'))
        self.assertEqual(payment.month_year, '2024-05')
        self.assertIn(f"Orden: {order_id}", payment.notes)

    def test_callback_enrollment_from_stored_data(self):
        token = EnrollmentService.store_temporary(enrollment_payload())
        response = self.client.get(reverse('billing:yappy_callback'), {
            'orderId': 'ENR-1',
            'status': 'E',
            'confirmationNumber': 'C-88',
            'amount': '80.00',
            'metadata': json.dumps({'type': 'enrollment', 'enrollmentToken': token}),
        })

        self.assertEqual(response.status_code, 200)
        self.assertIn('/enrollment/success?yappy=success', response.json()['redirectUrl'])
        self.assertEqual(PendingPlayer.objects.count(), 1)
        self.assertEqual(Payment.objects.get().method, 'yappy')

    def test_callback_failed_enrollment(self):
        response = self.client.get(reverse('billing:yappy_callback'), {
            'orderId': 'ENR-2', 'status': 'R', 'type': 'enrollment',
        })
        data = response.json()
        self.assertFalse(data['success'])
        self.assertEqual(data['redirectUrl'], 'https://academia.example.com/enrollment?yappy=failed&orderId=ENR-2')
        self.assertFalse(Payment.objects.exists())


@override_settings(**GATEWAY_SETTINGS)
class PagueloFacilViewsTest(TestCase):
    def setUp(self):
        cache.clear()

    def post_json(self, name, payload):
        return self.client.post(reverse(name), data=json.dumps(payload), content_type='application/json')

    def test_link_validation(self):
        response = self.post_json('billing:paguelofacil_link', {'amount': '0.50', 'description': 'x'})
        self.assertEqual(response.status_code, 400)

        response = self.post_json('billing:paguelofacil_link', {'amount': '10'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'La descripción es requerida')

    def test_link_rejects_non_finite_amount(self):
        for amount in ('NaN', 'Infinity', '-Infinity'):
            with self.subTest(amount=amount):
                response = self.post_json('billing:paguelofacil_link', {'amount': amount, 'description': 'x'})
                self.assertEqual(response.status_code, 400)
                self.assertIn('monto', response.json()['error'])

    @patch.object(PagueloFacilService, 'create_payment_link')
    def test_link_sends_custom_params_in_order(self, create_payment_link):
        create_payment_link.return_value = {'url': 'https://pay.example/abc', 'code': 'LK-1'}

        response = self.post_json('billing:paguelofacil_link', {
            'amount': '130',
            'description': 'Mensualidad mayo',
            'orderId': 'payment-5-1',
            'customParams': {'monthYear': '2024-05', 'playerId': '5', 'type': 'payment'},
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['paymentUrl'], 'https://pay.example/abc')
        kwargs = create_payment_link.call_args.kwargs
        self.assertEqual(kwargs['custom_params'], [
            ('type', 'payment'), ('playerId', '5'), ('paymentType', ''), ('amount', ''), ('monthYear', '2024-05'),
        ])
        self.assertEqual(kwargs['return_url'], 'https://academia.example.com/billing/paguelofacil/callback/')

    def test_callback_approved_payment(self):
        player = make_player()
        response = self.client.get(reverse('billing:paguelofacil_callback'), {
            'Estado': 'Aprobada', 'TotalPagado': '130.00', 'Oper': 'OP-10',
            'PARM_1': f'payment-{player.id}-1', 'PARM_2': 'payment', 'PARM_3': str(player.id),
            'PARM_4': 'monthly', 'PARM_5': '130.00', 'PARM_6': '2024-05',
        })

        self.assertEqual(response.status_code, 302)
        self.assertEqual(
            response['Location'],
            f"https://academia.example.com/dashboard/players/{player.id}?paguelofacil=success&oper=OP-10",
        )
        payment = Payment.objects.get()
        self.assertEqual(payment.player, player)
        self.assertEqual(payment.type, 'monthly')
        self.assertEqual(payment.reference, 'OP-10')

    def test_callback_denied_includes_reason(self):
        response = self.client.get(reverse('billing:paguelofacil_callback'), {
            'Estado': 'Denegada', 'TotalPagado': '0', 'PARM_2': 'enrollment', 'PARM_3': 'enrollment_1_ab',
        })

        self.assertEqual(response.status_code, 302)
        self.assertTrue(response['Location'].startswith(
            'https://academia.example.com/enrollment?paguelofacil=failed&razon=Transacci'
        ))
        self.assertFalse(Payment.objects.exists())

    def test_webhook_invalid_json(self):
        response = self.client.post(reverse('billing:paguelofacil_webhook'), data='nope',
                                    content_type='application/json')
        self.assertEqual(response.status_code, 400)

    def test_webhook_reconciles_enrollment_once(self):
        payload = {'codOper': 'OP-20', 'status': 1, 'authStatus': '00', 'totalPay': '80.00',
                   'PARM_1': 'ENR-20', 'PARM_2': 'enrollment'}

        for _ in range(2):
            response = self.post_json('billing:paguelofacil_webhook', payload)
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json(), {'success': True, 'received': True})

        payment = Payment.objects.get()
        self.assertEqual(payment.type, 'enrollment')
        self.assertEqual(payment.status, 'Approved')
        self.assertEqual(payment.reference, 'OP-20')

    def test_webhook_non_finite_amount_records_nothing(self):
        for total in ('NaN', 'Infinity'):
            with self.subTest(total=total):
                response = self.post_json('billing:paguelofacil_webhook',
                                          {'codOper': f'OP-{total}', 'totalPay': total})
                self.assertEqual(response.status_code, 200)
        self.assertFalse(Payment.objects.exists())

    def test_webhook_denied_records_nothing(self):
        response = self.post_json('billing:paguelofacil_webhook',
                                  {'codOper': 'OP-21', 'status': 0, 'messageSys': 'Denegada'})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Payment.objects.exists())

    @patch('billing.views.ReconciliationService.process_notification', side_effect=RuntimeError('down'))
    def test_webhook_processing_failure(self, process_notification):
        response = self.post_json('billing:paguelofacil_webhook', {'codOper': 'OP-22', 'status': 1})
        self.assertEqual(response.status_code, 500)


class StaffPaymentViewsTest(TestCase):
    def setUp(self):
        RoleSetupService.seed_defaults()
        self.academy = Academy.objects.create(name='Academia Central')
        self.accountant = UserManagementService.create_user(
            email='books@example.com', password='bookspass123',
            academy=self.academy, role_name='accountant',
        )
        self.coach = UserManagementService.create_user(
            email='coach@example.com', password='coachpass123',
            academy=self.academy, role_name='coach',
        )
        self.player = make_player()

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_manual_payment_requires_permission(self):
        self.client.force_login(self.coach)
        response = self.post_json(reverse('billing:payments'), {'playerId': self.player.id, 'amount': '130'})
        self.assertEqual(response.status_code, 403)

    def test_manual_payment(self):
        self.client.force_login(self.accountant)
        response = self.post_json(reverse('billing:payments'), {
            'playerId': self.player.id, 'amount': '130.00', 'type': 'monthly',
            'method': 'cash', 'monthYear': '2024-05',
        })

        self.assertEqual(response.status_code, 201)
        payment = Payment.objects.get()
        self.assertEqual(payment.created_by, self.accountant)
        self.assertEqual(response.json()['payment']['playerName'], 'Luis Pérez')

        response = self.post_json(reverse('billing:payments'), {'amount': '10', 'monthYear': 'mayo'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('monthYear', response.json()['errors'])

    def test_link_payment(self):
        payment = Payment.objects.create(amount=80, type='enrollment', status='Pending')
        self.client.force_login(self.accountant)
        url = reverse('billing:link_payment', args=[payment.id])

        response = self.post_json(url, {'playerId': self.player.id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['payment']['status'], 'Approved')

        response = self.post_json(url, {'playerId': self.player.id})
        self.assertEqual(response.status_code, 400)

    def test_unlinked_and_summary(self):
        Payment.objects.create(amount=20)
        Payment.objects.create(player=self.player, amount=130)
        self.client.force_login(self.accountant)

        response = self.client.get(reverse('billing:unlinked_payments'))
        self.assertEqual(len(response.json()['payments']), 1)

        response = self.client.get(reverse('billing:player_summary', args=[self.player.id]))
        self.assertEqual(response.json()['total'], 130.0)
        self.assertEqual(response.json()['count'], 1)

    def test_export_csv(self):
        Payment.objects.create(player=self.player, amount=130, reference='REF-1')
        Payment.objects.create(player=self.player, amount=99, status='Cancelled')
        self.client.force_login(self.accountant)

        response = self.client.get(reverse('billing:export_payments'))

        self.assertEqual(response['Content-Type'], 'text/csv')
        lines = response.content.decode().strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertIn('REF-1', lines[1])
        self.assertIn('Luis Pérez', lines[1])


class ExpenseViewsTest(TestCase):
    def setUp(self):
        RoleSetupService.seed_defaults()
        self.academy = Academy.objects.create(name='Academia Central')
        self.accountant = UserManagementService.create_user(
            email='books@example.com', password='bookspass123',
            academy=self.academy, role_name='accountant',
        )
        self.coach = UserManagementService.create_user(
            email='coach@example.com', password='coachpass123',
            academy=self.academy, role_name='coach',
        )

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_requires_manage_payments(self):
        self.assertEqual(self.client.get(reverse('billing:expenses')).status_code, 401)

        self.client.force_login(self.coach)
        self.assertEqual(self.client.get(reverse('billing:expenses')).status_code, 403)
        response = self.post_json(reverse('billing:staff_payments'), {'staffName': 'Pedro', 'amount': '300'})
        self.assertEqual(response.status_code, 403)
        self.assertFalse(StaffPayment.objects.exists())

    def test_create_and_list_expenses(self):
        self.client.force_login(self.accountant)
        response = self.post_json(reverse('billing:expenses'), {
            'description': 'Balones', 'category': 'Equipo', 'amount': '45.50', 'date': '2024-05-03',
        })

        self.assertEqual(response.status_code, 201)
        expense = Expense.objects.get()
        self.assertEqual(expense.amount, Decimal('45.50'))
        self.assertEqual(expense.date, date(2024, 5, 3))

        Expense.objects.create(description='Arbitraje', amount=20, date=date(2024, 6, 1))
        response = self.client.get(reverse('billing:expenses') + '?start=2024-05-01&end=2024-05-31')
        self.assertEqual([e['description'] for e in response.json()['expenses']], ['Balones'])

    def test_invalid_expense(self):
        self.client.force_login(self.accountant)
        response = self.post_json(reverse('billing:expenses'), {'description': 'Conos', 'amount': '0'})

        self.assertEqual(response.status_code, 400)
        self.assertIn('amount', response.json()['errors'])

        response = self.client.get(reverse('billing:expenses') + '?start=mayo')
        self.assertEqual(response.status_code, 400)

    def test_delete_expense(self):
        expense = Expense.objects.create(description='Conos', amount=15)
        self.client.force_login(self.accountant)

        response = self.client.delete(reverse('billing:expense_detail', args=[expense.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(Expense.objects.exists())

        response = self.client.delete(reverse('billing:expense_detail', args=[expense.id]))
        self.assertEqual(response.status_code, 404)

    def test_staff_payments(self):
        self.client.force_login(self.accountant)
        response = self.post_json(reverse('billing:staff_payments'), {
            'staffName': 'Pedro Gómez', 'amount': '300.00', 'notes': 'Mayo',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['staffPayment']['staffName'], 'Pedro Gómez')
        staff_payment = StaffPayment.objects.get()
        self.assertEqual(staff_payment.payment_date, date.today())

        response = self.client.get(reverse('billing:staff_payments'))
        self.assertEqual(len(response.json()['staffPayments']), 1)

        response = self.client.delete(reverse('billing:staff_payment_detail', args=[staff_payment.id]))
        self.assertEqual(response.status_code, 200)
        self.assertFalse(StaffPayment.objects.exists())
