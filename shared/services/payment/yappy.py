"""
Yappy Comercial (Banco General) client.
Merchant validation, order creation and callback verification.
"""
import hashlib
import hmac
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings

from shared.exceptions.payment import PaymentGatewayError, PaymentProcessingError

from .base import BaseGatewayClient

logger = logging.getLogger(__name__)


def _clean_credential(value) -> str:
    return re.sub(r'[\r\n\t]', '', (value or '').strip())


class YappyService(BaseGatewayClient):
    """Yappy Comercial button integration."""

    GATEWAY_NAME = 'Yappy'

    API_URLS = {
        'testing': 'https://api-comecom-uat.yappycloud.com',
        'production': 'https://apipagosbg.bgeneral.cloud',
    }
    CDN_URLS = {
        'testing': 'https://bt-cdn-uat.yappycloud.com/v1/cdn/web-component-btn-yappy.js',
        'production': 'https://bt-cdn.yappy.cloud/v1/cdn/web-component-btn-yappy.js',
    }

    # E = Ejecutado; R, C and X (rejected, cancelled, expired) are not approvals
    APPROVED_STATUSES = ('E', 'Ejecutado', 'approved', 'completed', 'success')
    SUCCESS_CODE = '0000'
    MAX_ORDER_ID_LENGTH = 15
    MIN_AMOUNT = Decimal('0.01')

    def __init__(self):
        self.merchant_id = _clean_credential(getattr(settings, 'YAPPY_MERCHANT_ID', ''))
        self.secret_key = _clean_credential(getattr(settings, 'YAPPY_SECRET_KEY', ''))
        raw_domain = getattr(settings, 'YAPPY_DOMAIN_URL', '') or getattr(settings, 'APP_BASE_URL', '')
        # The web component and order payload expect the bare domain
        self.domain = re.sub(r'^https?://', '', raw_domain.strip()).rstrip('/')
        self.environment = getattr(settings, 'YAPPY_ENVIRONMENT', 'production') or 'production'

        if not self.merchant_id or not self.secret_key:
            logger.error("Yappy credentials not configured")
            raise PaymentProcessingError(
                "Payment service not configured. Please contact support.",
                user_friendly=True
            )
        if not self.domain:
            logger.error("Yappy domain URL not configured")
            raise PaymentProcessingError(
                "Payment service not configured. Please contact support.",
                user_friendly=True
            )

    @property
    def base_url(self) -> str:
        return self.API_URLS['testing' if self.environment == 'testing' else 'production']

    @property
    def cdn_url(self) -> str:
        return self.CDN_URLS['testing' if self.environment == 'testing' else 'production']

    def get_public_config(self) -> Dict[str, str]:
        """Values the payment button needs on the client."""
        return {
            'merchantId': self.merchant_id,
            'domain': self.domain,
            'cdnUrl': self.cdn_url,
            'environment': self.environment,
        }

    def _is_success(self, result: Dict) -> bool:
        status = result.get('status') or {}
        code = status.get('code') if isinstance(status, dict) else None
        return code == self.SUCCESS_CODE or result.get('success') is True

    @staticmethod
    def _error_message(result: Dict, default: str) -> str:
        status = result.get('status')
        if isinstance(status, dict) and status.get('description'):
            return status['description']
        return result.get('message') or result.get('error') or default

    def validate_merchant(self) -> Dict[str, Any]:
        """
        Validate merchant credentials.

        Returns:
            Dict with 'token' and 'epochTime' for the order request
        """
        payload = {
            'merchantId': self.merchant_id,
            'urlDomain': f"https://{self.domain}",
        }
        response = self._make_request(
            'POST', f"{self.base_url}/payments/validate/merchant", json_data=payload
        )
        result = self._parse_json(response, self.GATEWAY_NAME)
        body = result.get('body') or {}

        if not (self._is_success(result) and body.get('token') and body.get('epochTime')):
            message = self._error_message(result, 'Yappy merchant validation failed')
            logger.error(f"Yappy merchant validation failed: {message}")
            raise PaymentGatewayError(message, user_friendly=True)

        logger.info("Yappy merchant validated")
        return {'token': body['token'], 'epochTime': body['epochTime']}

    def create_order(self, amount, description: str, order_id: str, token: str,
                     payment_date, ipn_url: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a payment order after merchant validation.

        Args:
            amount: Order total
            description: Shown to the payer
            order_id: Merchant order id (max 15 characters)
            token: Token returned by validate_merchant
            payment_date: epochTime returned by validate_merchant
            ipn_url: Callback URL; defaults to the billing callback
        """
        amount = self.parse_amount(amount)
        if amount < self.MIN_AMOUNT:
            raise PaymentProcessingError("Amount must be at least $0.01.", user_friendly=True)
        if not order_id or len(order_id) > self.MAX_ORDER_ID_LENGTH:
            raise PaymentProcessingError(
                f"orderId must have between 1 and {self.MAX_ORDER_ID_LENGTH} characters.",
                user_friendly=True
            )
        if not token or not payment_date:
            raise PaymentProcessingError(
                "Merchant validation is required before creating an order.",
                user_friendly=True
            )

        total = f"{amount:.2f}"
        payload = {
            'merchantId': self.merchant_id,
            'orderId': order_id,
            'domain': self.domain,
            'paymentDate': payment_date,
            'ipnUrl': ipn_url or f"{settings.APP_BASE_URL.rstrip('/')}/billing/yappy/callback/",
            'shipping': '0.00',
            'discount': '0.00',
            'taxes': '0.00',
            'subtotal': total,
            'total': total,
        }

        response = self._make_request(
            'POST',
            f"{self.base_url}/payments/payment-wc",
            json_data=payload,
            headers={'Authorization': token},
        )
        result = self._parse_json(response, self.GATEWAY_NAME)
        body = result.get('body') or {}

        if not (self._is_success(result) and body.get('transactionId')):
            message = self._error_message(result, 'Error creating Yappy order')
            logger.error(f"Yappy order {order_id} failed: {message}")
            raise PaymentGatewayError(message, user_friendly=True)

        logger.info(f"Yappy order {order_id} created: transaction {body['transactionId']}")
        order = {
            'orderId': order_id,
            'amount': float(amount),
            'description': description,
            'merchantId': self.merchant_id,
        }
        order.update(body)
        return order

    @classmethod
    def is_transaction_approved(cls, params: Dict) -> bool:
        return (params.get('status') or '') in cls.APPROVED_STATUSES

    def validate_callback_hash(self, params: Dict, received_hash: str) -> bool:
        """HMAC-SHA256(secret, orderId + status + domain + confirmationNumber)."""
        if not received_hash:
            return False

        message = ''.join(str(value) for value in [
            params.get('orderId') or '',
            params.get('status') or '',
            params.get('domain') or '',
            params.get('confirmationNumber') or params.get('transactionId') or '',
        ])
        expected = hmac.new(
            self.secret_key.encode('utf-8'),
            message.encode('utf-8'),
            hashlib.sha256
        ).hexdigest()
        return hmac.compare_digest(expected.lower(), str(received_hash).strip().lower())
