# users/management/commands/seed_roles.py
from django.core.management.base import BaseCommand

from users.services import RoleSetupService


class Command(BaseCommand):
    help = 'Create the default roles (admin, coach, accountant) and their permissions'

    def handle(self, *args, **options):
        result = RoleSetupService.seed_defaults()
        self.stdout.write(
            self.style.SUCCESS(
                f"Roles created: {result['roles']}, permissions created: {result['permissions']}"
            )
        )
