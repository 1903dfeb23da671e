from .brevo import BrevoService

__all__ = ['BrevoService']
