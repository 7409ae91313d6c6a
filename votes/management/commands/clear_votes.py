from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from screenings.catalog import format_date, get_catalog
from votes import store
from votes.models import Vote


class Command(BaseCommand):
    help = "Clear ALL votes for one screening (asks for confirmation)."

    def add_arguments(self, parser):
        parser.add_argument("screening_id", nargs="?", default=None,
                            help="Screening to clear. If omitted, pick from a list.")
        parser.add_argument("--yes", action="store_true", help="Skip the CLEAR confirmation prompt.")

    def handle(self, *args, **opts):
        catalog = get_catalog()
        screenings = sorted(catalog.get_all(), key=lambda s: (s.date, s.id))
        if not screenings:
            raise CommandError("No screenings found")

        screening_id = opts["screening_id"]
        if screening_id is None:
            self.stdout.write("Available screenings:")
            for i, s in enumerate(screenings, 1):
                total = Vote.objects.filter(screening_id=s.id).count()
                self.stdout.write(f"{i}. {s.id} {format_date(s.date)} ({total} total votes)")
            choice = input("Select screening number (or 0 to exit): ").strip()
            try:
                index = int(choice) - 1
            except ValueError:
                index = -1
            if index < 0 or index >= len(screenings):
                self.stdout.write("Nothing cleared.")
                return
            screening_id = screenings[index].id

        screening = catalog.get_by_id(screening_id)
        if screening is None:
            raise CommandError(f"Screening not found: {screening_id}")

        total = Vote.objects.filter(screening_id=screening.id).count()
        self.stdout.write(self.style.WARNING(
            f"About to clear ALL votes for {screening.id} ({format_date(screening.date)}): {total} votes"
        ))
        if not opts["yes"] and input('Type "CLEAR" to confirm: ').strip() != "CLEAR":
            self.stdout.write("Operation cancelled")
            return

        deleted = store.clear_screening(screening.id, now=timezone.now())
        self.stdout.write(self.style.SUCCESS(f"Cleared {deleted} votes."))
