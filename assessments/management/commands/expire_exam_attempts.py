from django.core.management.base import BaseCommand
from django.utils import timezone

from ...services import build_engine


class Command(BaseCommand):
    help = "Time out overdue exam attempts (in_progress -> timed_out) and mark expired unopened assignments missed."

    def add_arguments(self, parser):
        parser.add_argument("--quiet", action="store_true", help="Suppress output")

    def handle(self, *args, **opts):
        now = timezone.now()
        timed_out, missed = build_engine().run_expiry_sweep(now)

        if not opts.get("quiet"):
            self.stdout.write(self.style.SUCCESS(
                f"[{now.isoformat()}] Timed out {timed_out} attempt(s), marked {missed} assignment(s) missed."
            ))
