"""Management command to expire reward codes past their expiry date."""

from django.core.management.base import BaseCommand

from pointsman.services.redemption import RedemptionService


class Command(BaseCommand):
    help = "Mark active reward codes whose expires_at has passed as expired"

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=None,
            help="Expire at most this many codes",
        )

    def handle(self, *args, **options):
        expired = RedemptionService.expire_overdue(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(f"Expired {expired} reward codes."))
