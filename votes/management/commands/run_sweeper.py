from django.conf import settings
from django.core.management.base import BaseCommand

from screenings.catalog import get_catalog
from votes.sweeper import VoteSweeper


class Command(BaseCommand):
    help = "Run the nightly vote sweeper in the foreground (Ctrl+C to stop)."

    def add_arguments(self, parser):
        parser.add_argument("--hour", type=int, default=settings.MOVIENIGHT["SWEEP_HOUR"],
                            help="Local hour to sweep at (default from settings)")
        parser.add_argument("--minute", type=int, default=settings.MOVIENIGHT["SWEEP_MINUTE"])
        parser.add_argument("--now", action="store_true", help="Also sweep once right away")

    def handle(self, *args, **opts):
        sweeper = VoteSweeper(get_catalog(), hour=opts["hour"], minute=opts["minute"])
        if opts["now"]:
            sweeper.run_once()
        self.stdout.write(f"Sweeping daily at {opts['hour']:02d}:{opts['minute']:02d}")
        try:
            sweeper.run_forever()
        except KeyboardInterrupt:
            self.stdout.write(self.style.WARNING("Sweeper stopped."))
