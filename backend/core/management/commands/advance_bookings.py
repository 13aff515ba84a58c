from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from bookings.services.lifecycle import advance_bookings


class Command(BaseCommand):
    help = "Move confirmed bookings to active and active bookings to completed as time passes."

    def add_arguments(self, parser):
        parser.add_argument("--now", help="ISO timestamp to use instead of the current time.")

    def handle(self, *args, **options):
        now = None
        if options.get("now"):
            now = parse_datetime(options["now"])
            if now is None:
                raise CommandError(f"Could not parse --now value '{options['now']}'.")
            if timezone.is_naive(now):
                now = timezone.make_aware(now)

        counts = advance_bookings(now)
        self.stdout.write(
            self.style.SUCCESS(
                f"Activated {counts['activated']} and completed {counts['completed']} bookings."
            )
        )
