from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from payments.models import Payout
from payments.services.payouts import build_payouts, send_payout


class Command(BaseCommand):
    help = "Group owners' completed bookings into payouts for a period, optionally sending them."

    def add_arguments(self, parser):
        parser.add_argument("--start", required=True, help="First day of the period (YYYY-MM-DD).")
        parser.add_argument("--end", required=True, help="Last day of the period (YYYY-MM-DD).")
        parser.add_argument("--send", action="store_true", help="Transfer the payouts once built.")

    def handle(self, *args, **options):
        period_start = parse_date(options["start"])
        period_end = parse_date(options["end"])
        if period_start is None or period_end is None:
            raise CommandError("--start and --end must be dates in YYYY-MM-DD format.")
        try:
            payouts = build_payouts(period_start, period_end)
        except ValueError as exc:
            raise CommandError(str(exc))

        self.stdout.write(f"Built {len(payouts)} payouts for {period_start} to {period_end}.")
        if not options["send"]:
            return

        failed = 0
        for payout in payouts:
            payout = send_payout(payout)
            if payout.status == Payout.FAILED:
                failed += 1
                self.stdout.write(self.style.WARNING(f"Payout {payout.pk} failed: {payout.failure_reason}"))
        self.stdout.write(self.style.SUCCESS(f"Sent {len(payouts) - failed} payouts, {failed} failed."))
