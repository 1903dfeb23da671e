# users/adapters.py
"""
Account adapter: accounts are created by administrators, never by signup.
"""
import logging

from allauth.account.adapter import DefaultAccountAdapter
from django.conf import settings

logger = logging.getLogger(__name__)


class AcademyAccountAdapter(DefaultAccountAdapter):
    """Custom account adapter for the academy dashboard."""

    def is_open_for_signup(self, request):
        return getattr(settings, 'ACCOUNT_ALLOW_REGISTRATION', False)

    def clean_email(self, email):
        return super().clean_email(email).lower()

    def pre_login(self, request, user, **kwargs):
        """Pick an academy for users logging in without one."""
        if not user.current_academy_id:
            assignment = user.role_assignments.select_related('academy').first()
            if assignment:
                user.current_academy = assignment.academy
                user.save(update_fields=['current_academy'])
                logger.info(f"Academy {assignment.academy} selected for {user.email} on login")

        return super().pre_login(request, user, **kwargs)
