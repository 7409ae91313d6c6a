"""
Screening catalog: the list of scheduled screenings and their candidate movies.

The catalog lives in a JSON document on disk and is held in memory as an
immutable tuple. It changes through `replace_all` or `update`, both of which
validate the whole document before swapping it in.
"""
from __future__ import annotations

import copy
import datetime as dt
import json
import logging
import os
import pathlib
import tempfile
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from django.apps import apps
from django.utils import timezone
from django.utils.dateparse import parse_datetime

logger = logging.getLogger(__name__)


# ids are stored in 64-char columns by the vote store
MAX_ID_LENGTH = 64


class CatalogError(ValueError):
    """Raised when a catalog document fails validation."""


@dataclass(frozen=True)
class CandidateMovie:
    id: str
    title: str
    year: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "title": self.title, "year": self.year}
        if self.metadata is not None:
            d["metadata"] = copy.deepcopy(self.metadata)
        return d


@dataclass(frozen=True)
class Screening:
    id: str
    date: dt.datetime
    movies: Tuple[CandidateMovie, ...] = ()
    theme: Optional[str] = None

    def get_movie(self, movie_id: str) -> Optional[CandidateMovie]:
        for movie in self.movies:
            if movie.id == movie_id:
                return movie
        return None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "date": format_date(self.date),
            "movies": [m.to_dict() for m in self.movies],
        }
        if self.theme:
            d["theme"] = self.theme
        return d


def format_date(value: dt.datetime) -> str:
    return value.astimezone(dt.timezone.utc).isoformat().replace("+00:00", "Z")


def parse_date(raw: Any) -> dt.datetime:
    if isinstance(raw, dt.datetime):
        value = raw
    else:
        try:
            value = parse_datetime(str(raw))
        except ValueError:
            value = None
        if value is None:
            raise CatalogError(f"invalid screening date: {raw!r}")
    if timezone.is_naive(value):
        value = timezone.make_aware(value, dt.timezone.utc)
    return value


# ---- parsing / validation ---------------------------------------------------

def _parse_movie(raw: Dict[str, Any], screening_id: str) -> CandidateMovie:
    if not isinstance(raw, dict):
        raise CatalogError(f"screening {screening_id}: movie entries must be objects")
    movie_id = raw.get("id")
    title = raw.get("title")
    if not movie_id or not title:
        raise CatalogError(f"screening {screening_id}: every movie needs an id and a title")
    if len(str(movie_id)) > MAX_ID_LENGTH:
        raise CatalogError(f"screening {screening_id}: movie id longer than {MAX_ID_LENGTH} characters")
    year = raw.get("year")
    if year is not None:
        try:
            year = int(year)
        except (TypeError, ValueError):
            raise CatalogError(f"screening {screening_id}: movie {movie_id} has invalid year {year!r}")
    metadata = raw.get("metadata")
    return CandidateMovie(id=str(movie_id), title=str(title), year=year, metadata=metadata)


def _parse_screening(raw: Dict[str, Any]) -> Screening:
    if not isinstance(raw, dict) or not raw.get("id"):
        raise CatalogError("every screening needs an id")
    screening_id = str(raw["id"])
    if len(screening_id) > MAX_ID_LENGTH:
        raise CatalogError(f"screening id longer than {MAX_ID_LENGTH} characters: {screening_id}")
    movies = tuple(_parse_movie(m, screening_id) for m in raw.get("movies") or [])

    seen = set()
    for movie in movies:
        if movie.id in seen:
            raise CatalogError(f"screening {screening_id}: duplicate movie id {movie.id}")
        seen.add(movie.id)

    return Screening(
        id=screening_id,
        date=parse_date(raw.get("date")),
        movies=movies,
        theme=raw.get("theme") or None,
    )


def parse_catalog(document: Any) -> Tuple[Screening, ...]:
    """Validate a catalog document ({"screenings": [...]} or a bare list)."""
    if isinstance(document, dict):
        raw_screenings = document.get("screenings")
    else:
        raw_screenings = document
    if not isinstance(raw_screenings, list):
        raise CatalogError("catalog must contain a list of screenings")

    screenings = tuple(_parse_screening(s) for s in raw_screenings)
    ids = [s.id for s in screenings]
    if len(ids) != len(set(ids)):
        raise CatalogError("screening ids must be unique")
    return screenings


def default_document(now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """Built-in catalog used when nothing is configured yet."""
    now = now or timezone.now()
    next_week = now + dt.timedelta(days=7)
    week_after = now + dt.timedelta(days=14)
    return {
        "screenings": [
            {
                "id": "screening_1",
                "date": format_date(next_week),
                "movies": [
                    {"id": "movie_1", "title": "The Matrix", "year": 1999},
                    {"id": "movie_2", "title": "Inception", "year": 2010},
                    {"id": "movie_3", "title": "Interstellar", "year": 2014},
                    {"id": "movie_4", "title": "Blade Runner 2049", "year": 2017},
                ],
            },
            {
                "id": "screening_2",
                "date": format_date(week_after),
                "movies": [
                    {"id": "movie_5", "title": "The Dark Knight", "year": 2008},
                    {"id": "movie_6", "title": "Pulp Fiction", "year": 1994},
                    {"id": "movie_7", "title": "The Godfather", "year": 1972},
                    {"id": "movie_8", "title": "Goodfellas", "year": 1990},
                ],
            },
        ]
    }


def to_document(screenings: Iterable[Screening]) -> Dict[str, Any]:
    return {"screenings": [s.to_dict() for s in screenings]}


# ---- catalog ----------------------------------------------------------------

class ScreeningCatalog:
    """Holds the active screenings. Loaded lazily on first access."""

    def __init__(self, path, seed_path=None):
        self.path = pathlib.Path(path)
        self.seed_path = pathlib.Path(seed_path) if seed_path else None
        self._lock = threading.Lock()
        self._screenings: Optional[Tuple[Screening, ...]] = None

    # -- reads

    def _current(self) -> Tuple[Screening, ...]:
        screenings = self._screenings
        if screenings is None:
            with self._lock:
                if self._screenings is None:
                    self._screenings = self._load()
                screenings = self._screenings
        return screenings

    def get_all(self) -> Tuple[Screening, ...]:
        return self._current()

    def get_by_id(self, screening_id: str) -> Optional[Screening]:
        for screening in self._current():
            if screening.id == screening_id:
                return screening
        return None

    def get_next(self, now: dt.datetime) -> Optional[Screening]:
        upcoming = [s for s in self._current() if s.date > now]
        if not upcoming:
            return None
        return min(upcoming, key=lambda s: (s.date, s.id))

    def to_document(self) -> Dict[str, Any]:
        return to_document(self._current())

    # -- writes

    def replace_all(self, document: Any) -> Tuple[Screening, ...]:
        screenings = parse_catalog(document)
        with self._lock:
            self._write(screenings)
            self._screenings = screenings
        logger.info("Catalog replaced: %d screenings", len(screenings))
        return screenings

    def update(self, mutate: Callable[[Dict[str, Any]], None]) -> Tuple[Screening, ...]:
        """Apply `mutate` to the latest saved document and save the result.

        The document is re-read from disk under the lock, so changes written
        by another process since this instance loaded are kept.
        """
        with self._lock:
            current = self._read() if self.path.exists() else (self._screenings or ())
            document = to_document(current)
            mutate(document)
            screenings = parse_catalog(document)
            self._write(screenings)
            self._screenings = screenings
        logger.info("Catalog updated: %d screenings", len(screenings))
        return screenings

    # -- persistence

    def _read(self) -> Tuple[Screening, ...]:
        return parse_catalog(json.loads(self.path.read_text(encoding="utf-8")))

    def _load(self) -> Tuple[Screening, ...]:
        if self.path.exists():
            try:
                screenings = self._read()
            except (OSError, ValueError):
                logger.exception("Could not load catalog from %s, using defaults", self.path)
                return parse_catalog(default_document())
            logger.info("Loaded catalog from %s", self.path)
            return screenings

        if self.seed_path and self.seed_path.exists():
            logger.info("Seeding catalog from %s", self.seed_path)
            screenings = parse_catalog(json.loads(self.seed_path.read_text(encoding="utf-8")))
        else:
            logger.warning("No catalog found at %s, creating default catalog", self.path)
            screenings = parse_catalog(default_document())
        try:
            self._write(screenings)
        except OSError:
            logger.exception("Could not save catalog to %s", self.path)
        return screenings

    def _write(self, screenings: Tuple[Screening, ...]):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".catalog-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(to_document(screenings), f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


def get_catalog() -> ScreeningCatalog:
    return apps.get_app_config("screenings").catalog


def set_catalog(catalog: ScreeningCatalog) -> ScreeningCatalog:
    """Install a catalog instance; returns the previous one."""
    config = apps.get_app_config("screenings")
    previous = config.catalog
    config.catalog = catalog
    return previous


def summarize(screenings: Iterable[Screening]) -> List[str]:
    lines = []
    for i, s in enumerate(screenings, 1):
        with_meta = sum(1 for m in s.movies if m.metadata)
        theme = f" [{s.theme}]" if s.theme else ""
        lines.append(f"{i}. {s.id} {format_date(s.date)}{theme} - {len(s.movies)} movies ({with_meta} with metadata)")
    return lines
