"""
Shared HTTP plumbing for the payment gateway clients.
Retries timeouts, connection errors and 5xx responses, and maps HTTP errors
to payment exceptions.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

import requests

from shared.exceptions.payment import PaymentGatewayError, PaymentProcessingError

logger = logging.getLogger(__name__)


class BaseGatewayClient:
    """Base class for gateway clients; subclasses set GATEWAY_NAME."""

    GATEWAY_NAME = 'gateway'
    TIMEOUT = 30
    MAX_RETRIES = 3

    def _make_request(self, method: str, url: str, json_data: Dict = None,
                      form_data: Dict = None, headers: Optional[Dict] = None,
                      retry_count: int = 0) -> requests.Response:
        """
        Send a request to the gateway with retry logic.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Absolute URL
            json_data: JSON body
            form_data: Form-encoded body
            headers: Extra headers
            retry_count: Current retry attempt

        Returns:
            requests.Response with a 2xx status

        Raises:
            PaymentGatewayError: If the request fails
        """
        name = self.GATEWAY_NAME
        request_headers = {'Accept': 'application/json', 'User-Agent': 'AcademyAdmin/1.0'}
        if headers:
            request_headers.update(headers)

        try:
            logger.debug(f"{name} {method} {url} - Attempt {retry_count + 1}")

            response = requests.request(
                method=method,
                url=url,
                json=json_data,
                data=form_data,
                headers=request_headers,
                timeout=self.TIMEOUT
            )
            response.raise_for_status()
            return response

        except requests.exceptions.Timeout:
            if retry_count < self.MAX_RETRIES - 1:
                logger.warning(f"{name} timeout, retrying ({retry_count + 1}/{self.MAX_RETRIES})")
                return self._make_request(method, url, json_data, form_data, headers, retry_count + 1)
            logger.error(f"{name} timeout after all retries")
            raise PaymentGatewayError(
                "Payment service timeout. Please try again.",
                user_friendly=True
            )

        except requests.exceptions.ConnectionError as e:
            if retry_count < self.MAX_RETRIES - 1:
                logger.warning(f"{name} connection error, retrying ({retry_count + 1}/{self.MAX_RETRIES})")
                return self._make_request(method, url, json_data, form_data, headers, retry_count + 1)
            logger.error(f"{name} connection error after all retries")
            raise PaymentGatewayError(
                "Network error. Please check your connection.",
                user_friendly=True,
                original_error=e
            )

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else 0

            if status_code == 401:
                logger.error(f"{name} authentication failed - check credentials")
                raise PaymentGatewayError(
                    "Payment service authentication failed.",
                    user_friendly=False,
                    original_error=e
                )
            elif status_code == 422:
                try:
                    error_message = e.response.json().get('message', 'Validation error')
                except ValueError:
                    error_message = 'Invalid payment data.'
                logger.error(f"{name} validation error: {error_message}")
                raise PaymentProcessingError(error_message, user_friendly=True, original_error=e)
            elif status_code == 429:
                logger.error(f"{name} rate limit exceeded")
                raise PaymentGatewayError(
                    "Payment service busy. Please try again in a moment.",
                    user_friendly=True
                )
            elif 500 <= status_code < 600:
                if retry_count < self.MAX_RETRIES - 1:
                    logger.warning(f"{name} server error {status_code}, retrying ({retry_count + 1}/{self.MAX_RETRIES})")
                    return self._make_request(method, url, json_data, form_data, headers, retry_count + 1)
                logger.error(f"{name} server error after all retries: {status_code}")
                raise PaymentGatewayError(
                    "Payment service temporarily unavailable. Please try again.",
                    user_friendly=True
                )
            else:
                logger.error(f"{name} HTTP error {status_code}: {str(e)}")
                raise PaymentGatewayError(
                    f"Payment service error: {status_code}",
                    user_friendly=True,
                    original_error=e
                )

        except requests.exceptions.RequestException as e:
            logger.error(f"Unexpected {name} error: {str(e)}", exc_info=True)
            raise PaymentGatewayError(
                "Unexpected payment error. Please try again.",
                user_friendly=True,
                original_error=e
            )

    @staticmethod
    def _parse_json(response: requests.Response, gateway: str) -> Dict:
        try:
            result = response.json()
        except ValueError:
            logger.error(f"{gateway} returned a non-JSON response: {response.text[:200]}")
            raise PaymentGatewayError(
                "Invalid response from payment service.",
                user_friendly=True
            )
        if not isinstance(result, dict):
            raise PaymentGatewayError("Invalid response from payment service.", user_friendly=True)
        return result

    @staticmethod
    def parse_amount(value) -> Decimal:
        """Gateway amounts arrive as strings, numbers or nothing. NaN and Infinity count as 0."""
        try:
            amount = Decimal(str(value or '0').strip() or '0')
        except InvalidOperation:
            return Decimal('0')
        return amount if amount.is_finite() else Decimal('0')
