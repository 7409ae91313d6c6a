import datetime as dt
import pathlib
import tempfile

from django.contrib.auth import get_user_model
from django.utils import timezone

from screenings.catalog import ScreeningCatalog, format_date, set_catalog


def when(days=0, hours=0):
    return timezone.now() + dt.timedelta(days=days, hours=hours)


def screening_doc(screening_id, date, movie_ids=("A", "B"), theme=None):
    doc = {
        "id": screening_id,
        "date": format_date(date),
        "movies": [{"id": m, "title": f"Movie {m}", "year": 2000 + i} for i, m in enumerate(movie_ids)],
    }
    if theme:
        doc["theme"] = theme
    return doc


def make_user(username, name=None, password="secret123"):
    first, _, last = (name or "").partition(" ")
    return get_user_model().objects.create_user(
        username=username, password=password, first_name=first, last_name=last,
    )


class CatalogMixin:
    """Installs a throwaway catalog for the duration of a test."""

    def install_catalog(self, *screenings):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        catalog = ScreeningCatalog(pathlib.Path(tmp.name) / "config.json")
        catalog.replace_all({"screenings": list(screenings)})
        previous = set_catalog(catalog)
        self.addCleanup(set_catalog, previous)
        return catalog
