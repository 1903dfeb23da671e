# communications/management/commands/seed_email_templates.py
from django.core.management.base import BaseCommand

from communications.defaults import DEFAULT_TEMPLATES
from communications.models import EmailTemplate


class Command(BaseCommand):
    help = 'Create the default email templates (existing templates are left untouched)'

    def handle(self, *args, **options):
        created_count = 0
        for name, fields in DEFAULT_TEMPLATES.items():
            _, created = EmailTemplate.objects.get_or_create(name=name, defaults=fields)
            if created:
                created_count += 1
                self.stdout.write(f"  + {name}")

        self.stdout.write(self.style.SUCCESS(f"Created {created_count} email templates"))
