"""
Paguelo Fácil client: LinkDeamon payment links and callback parsing.
"""
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, Optional, Tuple, Union

from django.conf import settings

from shared.exceptions.payment import PaymentGatewayError, PaymentProcessingError

from .base import BaseGatewayClient

logger = logging.getLogger(__name__)

CustomParams = Union[Dict[str, str], Iterable[Tuple[str, str]]]


def _ascii_only(value) -> str:
    return re.sub(r'[^\x20-\x7E]', '', value or '').strip()


class PagueloFacilService(BaseGatewayClient):
    """Paguelo Fácil hosted payment links."""

    GATEWAY_NAME = 'PagueloFacil'

    LINK_DEAMON_URLS = {
        True: 'https://sandbox.paguelofacil.com/LinkDeamon.cfm',
        False: 'https://secure.paguelofacil.com/LinkDeamon.cfm',
    }
    MIN_AMOUNT = Decimal('1.00')
    MAX_TEXT_LENGTH = 150
    DEFAULT_EXPIRES_IN = 3600

    DENIED_STATES = ('denegado', 'denegada', 'rechazado', 'rechazada', 'denied', 'rejected')
    APPROVED_STATES = ('aprobada', 'aprobado', 'approved')

    def __init__(self):
        self.access_token = _ascii_only(getattr(settings, 'PAGUELOFACIL_ACCESS_TOKEN', ''))
        self.cclw = _ascii_only(getattr(settings, 'PAGUELOFACIL_CCLW', ''))
        self.sandbox = bool(getattr(settings, 'PAGUELOFACIL_SANDBOX', False))

        if not self.cclw:
            logger.error("PagueloFacil CCLW not configured")
            raise PaymentProcessingError(
                "Payment service not configured. Please contact support.",
                user_friendly=True
            )

    @property
    def link_deamon_url(self) -> str:
        return self.LINK_DEAMON_URLS[self.sandbox]

    @staticmethod
    def encode_url_to_hex(url: str) -> str:
        return url.encode('utf-8').hex().upper()

    def create_payment_link(self, amount, description: str, return_url: Optional[str] = None,
                            email: Optional[str] = None, order_id: Optional[str] = None,
                            custom_params: Optional[CustomParams] = None,
                            expires_in: int = DEFAULT_EXPIRES_IN,
                            card_type: Optional[str] = None,
                            pf_cf: Optional[str] = None) -> Dict[str, str]:
        """
        Create a hosted payment link.

        Custom params are sent as PARM_2, PARM_3, ... after the order id (PARM_1)
        and come back untouched in the return URL.

        Returns:
            Dict with 'url' and 'code'
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise PaymentProcessingError("Invalid amount.", user_friendly=True)
        if not amount.is_finite() or amount < self.MIN_AMOUNT:
            raise PaymentProcessingError("The minimum amount is $1.00 USD.", user_friendly=True)

        post_data = {
            'CCLW': self.cclw,
            'CMTN': f"{amount:.2f}",
            'CDSC': (description or '')[:self.MAX_TEXT_LENGTH],
        }
        if return_url:
            post_data['RETURN_URL'] = self.encode_url_to_hex(return_url)
        if email:
            post_data['EMAIL'] = email
        post_data['EXPIRES_IN'] = str(expires_in or self.DEFAULT_EXPIRES_IN)

        index = 1
        if order_id:
            post_data['PARM_1'] = order_id
            index = 2
        if custom_params:
            items = custom_params.items() if isinstance(custom_params, dict) else custom_params
            for _, value in items:
                post_data[f'PARM_{index}'] = str(value)[:self.MAX_TEXT_LENGTH]
                index += 1

        if card_type:
            post_data['CARD_TYPE'] = card_type
        if pf_cf:
            post_data['PF_CF'] = pf_cf

        response = self._make_request(
            'POST',
            self.link_deamon_url,
            form_data=post_data,
            headers={'Accept': '*/*'},
        )
        result = self._parse_json(response, self.GATEWAY_NAME)
        data = result.get('data') or {}

        if not (result.get('success') and data.get('url')):
            message = result.get('message') or result.get('error') or 'Unknown error creating payment link'
            logger.error(f"PagueloFacil link failed for order {order_id}: {message}")
            raise PaymentGatewayError(message, user_friendly=True)

        logger.info(f"PagueloFacil link created for order {order_id}: code {data.get('code')}")
        return {'url': data['url'], 'code': data.get('code', '')}

    @staticmethod
    def parse_callback_params(query) -> Dict[str, str]:
        """Flatten a QueryDict (or plain dict) keeping the first value of each key."""
        params = {}
        for key in query:
            if hasattr(query, 'getlist'):
                values = query.getlist(key)
                params[key] = values[0] if values else ''
            else:
                value = query[key]
                params[key] = value[0] if isinstance(value, (list, tuple)) and value else value
        return params

    @classmethod
    def is_transaction_approved(cls, params: Dict) -> bool:
        """TotalPagado > 0 means approved unless Estado says denied."""
        estado = (params.get('Estado') or '').strip().lower()
        razon = (params.get('Razon') or '').lower()

        if any(word in razon for word in ('authentication', '3ds', 'issuer is rejecting')):
            logger.warning(f"PagueloFacil 3DS problem on operation {params.get('Oper')}: {params.get('Razon')}")

        if estado in cls.DENIED_STATES:
            return False
        if cls.parse_amount(params.get('TotalPagado')) > 0:
            return True
        return estado in cls.APPROVED_STATES
