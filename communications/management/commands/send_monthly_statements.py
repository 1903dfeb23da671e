# communications/management/commands/send_monthly_statements.py
from django.core.management.base import BaseCommand, CommandError

from communications.services import StatementService
from core.exceptions import EmailDeliveryError


class Command(BaseCommand):
    help = "Queue this month's account statements to tutors on the payment day"

    def add_arguments(self, parser):
        parser.add_argument(
            '--force',
            action='store_true',
            help='Run even if today is not the configured payment day',
        )

    def handle(self, *args, **options):
        try:
            result = StatementService.send_monthly_statements(force=options['force'])
        except EmailDeliveryError as e:
            raise CommandError(e.message)

        if result['skipped']:
            self.stdout.write(self.style.WARNING("Not the payment day; use --force to send anyway"))
            return

        self.stdout.write(self.style.SUCCESS(
            f"Queued {result['queued']} statements for {result['players']} players ({result['monthYear']})"
        ))
