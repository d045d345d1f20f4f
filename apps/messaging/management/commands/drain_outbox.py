from django.core.management.base import BaseCommand

from apps.messaging.outbox import drain_outbox


class Command(BaseCommand):
    help = "Send pending outbound WhatsApp messages once."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None)

    def handle(self, *args, **options):
        result = drain_outbox(limit=options["limit"])
        self.stdout.write(
            self.style.SUCCESS(f"Outbox drained: claimed={result.claimed} sent={result.sent} failed={result.failed}")
        )
