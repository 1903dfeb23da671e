import json

from django.test import TestCase
from django.urls import reverse

from billing.models import Payment
from billing.tests.test_services import make_pending
from core.models import Academy
from players.models import PendingPlayer, Player
from players.tests.test_services import make_player
from tournaments.models import TournamentRegistration
from tournaments.tests.test_services import make_tournament
from users.services import RoleSetupService, UserManagementService


class ApprovalViewsTest(TestCase):
    def setUp(self):
        RoleSetupService.seed_defaults()
        academy = Academy.objects.create(name='Academia Central')
        self.admin = UserManagementService.create_user(
            email='admin@example.com', password='adminpass123', academy=academy, role_name='admin',
        )
        self.accountant = UserManagementService.create_user(
            email='books@example.com', password='bookspass123', academy=academy, role_name='accountant',
        )

    def post(self, url, payload=None):
        return self.client.post(url, data=json.dumps(payload or {}), content_type='application/json')

    def test_queues_require_permission(self):
        url = reverse('approvals:players')
        self.assertEqual(self.client.get(url).status_code, 401)

        self.client.force_login(self.accountant)
        self.assertEqual(self.client.get(url).status_code, 403)
        self.assertEqual(self.client.get(reverse('approvals:payments')).status_code, 200)

    def test_pending_players_lists_both_kinds(self):
        player = make_player(status='Pending')
        pending = make_pending()
        payment = Payment.objects.create(amount=80, type='enrollment')
        payment.pending_players.add(pending)

        self.client.force_login(self.admin)
        data = self.client.get(reverse('approvals:players')).json()

        self.assertEqual([p['id'] for p in data['players']], [player.id])
        self.assertEqual(data['pendingPlayers'][0]['id'], pending.id)
        self.assertEqual(data['pendingPlayers'][0]['tutorEmail'], 'carlos@example.com')
        self.assertEqual(data['pendingPlayers'][0]['paymentIds'], [payment.id])

    def test_approve_player(self):
        player = make_player(status='Pending')
        self.client.force_login(self.admin)

        response = self.post(reverse('approvals:approve_player', args=[player.id]), {'status': 'Active'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['player']['status'], 'Active')
        payment = Payment.objects.get(pk=response.json()['paymentId'])
        self.assertEqual(payment.created_by, self.admin)

    def test_approve_player_invalid_status(self):
        player = make_player(status='Pending')
        self.client.force_login(self.admin)
        response = self.post(reverse('approvals:approve_player', args=[player.id]), {'status': 'Retired'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('status', response.json()['errors'])

    def test_approve_processed_player_is_rejected(self):
        player = make_player(status='Active')
        self.client.force_login(self.admin)
        response = self.post(reverse('approvals:approve_player', args=[player.id]), {'status': 'Active'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['code'], 'APPROVAL_ERROR')

    def test_approve_and_reject_pending_player(self):
        first, second = make_pending(), make_pending(first_name='Lucía')
        self.client.force_login(self.admin)

        response = self.post(reverse('approvals:approve_pending_player', args=[first.id]),
                             {'status': 'Scholarship'})
        self.assertEqual(response.json()['player']['status'], 'Scholarship')
        self.assertEqual(response.json()['player']['monthlyFee'], 0.0)

        response = self.post(reverse('approvals:reject_pending_player', args=[second.id]))
        self.assertTrue(response.json()['success'])
        self.assertFalse(PendingPlayer.objects.exists())
        self.assertEqual(Player.objects.count(), 1)

    def test_reject_player(self):
        player = make_player(status='Pending')
        self.client.force_login(self.admin)
        response = self.post(reverse('approvals:reject_player', args=[player.id]))
        self.assertEqual(response.json()['player']['status'], 'Rejected')

    def test_payment_actions(self):
        approve = Payment.objects.create(amount=40, status='Pending Approval', method='proof')
        reject = Payment.objects.create(amount=40, status='Pending Approval', method='proof')
        self.client.force_login(self.accountant)

        data = self.client.get(reverse('approvals:payments')).json()
        self.assertEqual({p['id'] for p in data['payments']}, {approve.id, reject.id})

        response = self.post(reverse('approvals:approve_payment', args=[approve.id]))
        self.assertEqual(response.json()['payment']['status'], 'Paid')
        response = self.post(reverse('approvals:reject_payment', args=[reject.id]))
        self.assertEqual(response.json()['payment']['status'], 'Rejected')

        response = self.post(reverse('approvals:reject_payment', args=[approve.id]))
        self.assertEqual(response.status_code, 400)

    def test_registration_actions(self):
        registration = TournamentRegistration.objects.create(
            tournament=make_tournament(), team_name='Tigres', coach_name='Raúl',
            coach_email='raul@example.com', category='U12',
        )
        self.client.force_login(self.admin)

        data = self.client.get(reverse('approvals:registrations')).json()
        self.assertEqual(data['registrations'][0]['teamName'], 'Tigres')

        response = self.post(reverse('approvals:approve_registration', args=[registration.id]))
        self.assertEqual(response.json()['status'], 'approved')
        response = self.post(reverse('approvals:reject_registration', args=[registration.id]))
        self.assertEqual(response.status_code, 400)
