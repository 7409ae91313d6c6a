from django.core.management.base import BaseCommand

from screenings.catalog import get_catalog
from votes.sweeper import sweep


class Command(BaseCommand):
    help = "Purge votes for screenings whose date has passed (one sweep cycle, for cron)."

    def handle(self, *args, **opts):
        result = sweep(get_catalog())
        for screening_id in result.marked:
            self.stdout.write(f"Marked expired screening {screening_id}")
        for screening_id, count in result.purged.items():
            self.stdout.write(f"Purged {count} votes from {screening_id}")
        self.stdout.write(self.style.SUCCESS(f"Sweep complete: {result.total_purged} votes purged."))
