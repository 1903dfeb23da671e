from django.test import TestCase
from django.urls import reverse


class HealthCheckTest(TestCase):
    def test_health(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')
        self.assertEqual(response.json()['database'], 'connected')

    def test_unknown_route_is_json(self):
        response = self.client.get('/no-such-route/')
        self.assertEqual(response.status_code, 404)
