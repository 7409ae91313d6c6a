from django.core.management.base import BaseCommand

from screenings.catalog import get_catalog, summarize


class Command(BaseCommand):
    help = "List the active screenings and how many movies have metadata."

    def handle(self, *args, **opts):
        catalog = get_catalog()
        screenings = catalog.get_all()
        self.stdout.write(f"Catalog {catalog.path}: {len(screenings)} screenings")
        for line in summarize(screenings):
            self.stdout.write(f"   {line}")
