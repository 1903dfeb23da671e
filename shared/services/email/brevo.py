"""
Brevo transactional email API client.
"""
import logging
from typing import Any, Dict, Optional

import requests
from django.conf import settings

from core.exceptions import EmailDeliveryError

logger = logging.getLogger(__name__)


class BrevoService:
    """Send transactional emails through Brevo (formerly Sendinblue)."""

    BASE_URL = "https://api.brevo.com/v3"
    TIMEOUT = 30
    MAX_RETRIES = 3

    def __init__(self):
        self.api_key = (getattr(settings, 'BREVO_API_KEY', '') or '').strip()
        self.from_email = getattr(settings, 'BREVO_FROM_EMAIL', '')
        self.from_name = getattr(settings, 'BREVO_FROM_NAME', '')

        if not self.api_key:
            logger.error("Brevo API key not configured")
            raise EmailDeliveryError(
                "Email service not configured.",
                user_friendly=True
            )

    def _make_request(self, method: str, endpoint: str, data: Dict = None,
                      retry_count: int = 0) -> Dict[str, Any]:
        url = f"{self.BASE_URL}{endpoint}"
        headers = {
            'api-key': self.api_key,
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

        try:
            response = requests.request(
                method=method,
                url=url,
                json=data,
                headers=headers,
                timeout=self.TIMEOUT
            )
            response.raise_for_status()
            return response.json() if response.content else {}

        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            if retry_count < self.MAX_RETRIES - 1:
                logger.warning(f"Brevo network error, retrying ({retry_count + 1}/{self.MAX_RETRIES})")
                return self._make_request(method, endpoint, data, retry_count + 1)
            logger.error(f"Brevo unreachable after all retries: {e}")
            raise EmailDeliveryError("Email service unreachable.", details={'error': str(e)})

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0
            try:
                message = e.response.json().get('message', str(e))
            except ValueError:
                message = str(e)

            if 500 <= status_code < 600 and retry_count < self.MAX_RETRIES - 1:
                logger.warning(f"Brevo server error {status_code}, retrying ({retry_count + 1}/{self.MAX_RETRIES})")
                return self._make_request(method, endpoint, data, retry_count + 1)

            logger.error(f"Brevo HTTP error {status_code}: {message}")
            raise EmailDeliveryError(
                f"Email provider error ({status_code}): {message}",
                details={'status_code': status_code}
            )

        except ValueError:
            logger.error("Brevo returned a non-JSON response")
            raise EmailDeliveryError("Invalid response from email service.")

    def send_email(self, to_email: str, subject: str, html_content: str,
                   to_name: Optional[str] = None) -> Optional[str]:
        """
        Send one email.

        Returns:
            Brevo message id without angle brackets, or None when Brevo omits it
        """
        recipient = {'email': to_email}
        if to_name:
            recipient['name'] = to_name

        result = self._make_request('POST', '/smtp/email', {
            'sender': {'name': self.from_name, 'email': self.from_email},
            'to': [recipient],
            'subject': subject,
            'htmlContent': html_content,
        })

        message_id = result.get('messageId')
        if message_id:
            message_id = message_id.strip().lstrip('<').rstrip('>').strip()
        logger.info(f"Email sent to {to_email}: {message_id}")
        return message_id

    def get_account(self) -> Dict[str, Any]:
        """Account email and remaining sending credits."""
        result = self._make_request('GET', '/account')
        credits = 0
        for plan in result.get('plan', []):
            credits += plan.get('credits', 0) or 0
        return {'email': result.get('email'), 'credits': credits}
