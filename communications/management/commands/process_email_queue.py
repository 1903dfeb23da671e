# communications/management/commands/process_email_queue.py
from django.core.management.base import BaseCommand, CommandError

from communications.services import EmailQueueService
from core.exceptions import EmailDeliveryError


class Command(BaseCommand):
    help = 'Send emails due today within the daily limit and defer the rest'

    def add_arguments(self, parser):
        parser.add_argument(
            '--status-only',
            action='store_true',
            help='Print the queue status without sending anything',
        )

    def handle(self, *args, **options):
        if options['status_only']:
            for key, value in EmailQueueService.get_queue_status().items():
                self.stdout.write(f"{key}: {value}")
            return

        try:
            result = EmailQueueService.process_queue()
        except EmailDeliveryError as e:
            raise CommandError(e.message)

        if not result['success']:
            self.stdout.write(self.style.WARNING(
                f"{result['error']}: {result['queued_for_tomorrow']} emails moved to tomorrow"
            ))
            return

        self.stdout.write(self.style.SUCCESS(
            f"Sent {result['sent']}, failed {result['failed']}, "
            f"deferred {result.get('queued_for_tomorrow', 0)}"
        ))
