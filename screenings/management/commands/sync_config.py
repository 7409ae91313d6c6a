import json

from django.core.management.base import BaseCommand, CommandError

from screenings.catalog import CatalogError, get_catalog, parse_catalog, summarize


class Command(BaseCommand):
    help = "Validate a catalog JSON file and swap it in as the active screening catalog."

    def add_arguments(self, parser):
        parser.add_argument("path", help="Catalog JSON file ({\"screenings\": [...]})")
        parser.add_argument("--dry-run", action="store_true", help="Validate and summarise only")

    def handle(self, *args, **opts):
        try:
            with open(opts["path"], "r", encoding="utf-8") as f:
                document = json.load(f)
        except OSError as exc:
            raise CommandError(f"Cannot read {opts['path']}: {exc}")
        except ValueError as exc:
            raise CommandError(f"Invalid JSON in {opts['path']}: {exc}")

        try:
            if opts["dry_run"]:
                screenings = parse_catalog(document)
            else:
                screenings = get_catalog().replace_all(document)
        except CatalogError as exc:
            raise CommandError(f"Catalog rejected: {exc}")

        self.stdout.write(f"Found {len(screenings)} screenings")
        for line in summarize(screenings):
            self.stdout.write(f"   {line}")
        if opts["dry_run"]:
            self.stdout.write(self.style.WARNING("Dry run, catalog not changed."))
        else:
            self.stdout.write(self.style.SUCCESS("Catalog updated."))
