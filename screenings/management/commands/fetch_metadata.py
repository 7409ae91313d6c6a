import time

import requests
from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from screenings.catalog import get_catalog
from screenings.tmdb import TMDbClient, empty_metadata


class Command(BaseCommand):
    help = "Fetch TMDb metadata (poster, overview, rating...) for catalog movies and save it into the catalog."

    def add_arguments(self, parser):
        parser.add_argument("--api-key", default=None, help="TMDb API key (default: TMDB_API_KEY setting)")
        parser.add_argument("--force", action="store_true", help="Refetch movies that already have metadata")
        parser.add_argument("--delay", type=float, default=0.2, help="Seconds to wait between movies")

    def handle(self, *args, **opts):
        api_key = opts["api_key"] or settings.MOVIENIGHT["TMDB_API_KEY"]
        if not api_key:
            raise CommandError("TMDb API key is required (--api-key or TMDB_API_KEY)")

        catalog = get_catalog()
        document = catalog.to_document()
        found = {}
        client = TMDbClient(api_key)
        total = existing = fetched = missing = failed = 0

        for screening in document["screenings"]:
            self.stdout.write(f"Screening {screening['id']} ({screening['date']})")
            for movie in screening["movies"]:
                total += 1
                label = f"{movie['title']} ({movie.get('year') or '?'})"
                if not opts["force"] and (movie.get("metadata") or {}).get("tmdb_id"):
                    self.stdout.write(f"  = {label} - metadata exists")
                    existing += 1
                    continue
                try:
                    meta = client.metadata_for(movie["title"], movie.get("year"))
                except requests.RequestException as exc:
                    self.stderr.write(f"  ! {label}: {exc}")
                    failed += 1
                    continue
                if meta is None:
                    self.stdout.write(f"  - {label} not found")
                    found[screening["id"], movie["id"]] = empty_metadata()
                    missing += 1
                else:
                    self.stdout.write(f"  + {label} rating {meta['vote_average']}/10")
                    found[screening["id"], movie["id"]] = meta
                    fetched += 1
                if opts["delay"]:
                    time.sleep(opts["delay"])

        # merged into the saved catalog, which may have been synced meanwhile
        def merge(latest):
            for screening in latest["screenings"]:
                for movie in screening["movies"]:
                    meta = found.get((screening["id"], movie["id"]))
                    if meta is not None:
                        movie["metadata"] = meta

        catalog.update(merge)
        self.stdout.write(
            f"Total movies: {total}  already had metadata: {existing}  fetched: {fetched}  "
            f"not found: {missing}  errors: {failed}"
        )
        self.stdout.write(self.style.SUCCESS(f"Catalog saved to {catalog.path}"))
