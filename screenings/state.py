"""
Screening state: which screening is next, and whether voting is open.

Everything here is a pure function of the catalog and a wall-clock instant.
"""
import datetime as dt
from typing import List, Optional

from .catalog import Screening, ScreeningCatalog


def is_voting_open(screening: Screening, now: dt.datetime) -> bool:
    # closes the instant the screening starts, no grace period
    return screening.date > now


def get_expired(catalog: ScreeningCatalog, now: dt.datetime) -> List[Screening]:
    return [s for s in catalog.get_all() if s.date <= now]


def get_open(catalog: ScreeningCatalog, now: dt.datetime) -> List[Screening]:
    return [s for s in catalog.get_all() if s.date > now]


def resolve_current(catalog: ScreeningCatalog, now: dt.datetime) -> Optional[Screening]:
    """Next upcoming screening, else the earliest one so the page is never blank."""
    upcoming = catalog.get_next(now)
    if upcoming is not None:
        return upcoming
    screenings = catalog.get_all()
    if not screenings:
        return None
    return min(screenings, key=lambda s: (s.date, s.id))
