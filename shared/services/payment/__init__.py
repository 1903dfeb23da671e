# shared/services/payment/__init__.py
from .base import BaseGatewayClient
from .paguelofacil import PagueloFacilService
from .yappy import YappyService

__all__ = [
    'BaseGatewayClient',
    'PagueloFacilService',
    'YappyService',
]
