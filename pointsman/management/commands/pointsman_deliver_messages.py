"""Management command to retry pending outbound messages."""

from django.core.management.base import BaseCommand

from pointsman.services.notifications import NotificationDispatcher


class Command(BaseCommand):
    help = "Retry pending outbound messages whose backoff has elapsed"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum messages to process in this run",
        )

    def handle(self, *args, **options):
        report = NotificationDispatcher.deliver_pending(limit=options["limit"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Sent {report.sent}, rescheduled {report.retried}, failed {report.failed}."
            )
        )
        for error in report.errors:
            self.stderr.write(error)
