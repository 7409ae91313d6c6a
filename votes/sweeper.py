"""
Expiry sweeper: purges votes that belong to screenings whose voting closed.

A screening that passes its date gets a ScreeningReset marker stamped at the
screening's own date (if it has none yet). Every marker that is due and whose
screening is not open anymore has its votes deleted. Screenings that an admin
cleared but that are still open keep the votes cast after the clear.
"""
from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.db import connections, transaction
from django.utils import timezone

from screenings.catalog import ScreeningCatalog
from screenings.state import get_expired, get_open
from .models import ScreeningReset, Vote

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    marked: List[str] = field(default_factory=list)
    purged: Dict[str, int] = field(default_factory=dict)

    @property
    def total_purged(self) -> int:
        return sum(self.purged.values())


def sweep(catalog: ScreeningCatalog, now: Optional[dt.datetime] = None) -> SweepResult:
    now = now or timezone.now()
    result = SweepResult()

    for screening in get_expired(catalog, now):
        _, created = ScreeningReset.objects.get_or_create(
            screening_id=screening.id, defaults={"reset_at": screening.date}
        )
        if created:
            result.marked.append(screening.id)

    open_ids = [s.id for s in get_open(catalog, now)]
    due = (
        ScreeningReset.objects.filter(reset_at__lte=now)
        .exclude(screening_id__in=open_ids)
        .values_list("screening_id", flat=True)
    )
    for screening_id in list(due):
        with transaction.atomic():
            deleted, _ = Vote.objects.filter(screening_id=screening_id).delete()
        if deleted:
            result.purged[screening_id] = deleted

    logger.info(
        "Sweep done: marked %d expired screenings, purged %d votes",
        len(result.marked), result.total_purged,
    )
    return result


class VoteSweeper:
    """Runs `sweep` once a day at a quiet hour on a daemon thread."""

    def __init__(self, catalog: ScreeningCatalog, hour: int = 0, minute: int = 0):
        self.catalog = catalog
        self.hour = hour
        self.minute = minute
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def seconds_until_next_run(self, now: dt.datetime) -> float:
        target = now.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if target <= now:
            target += dt.timedelta(days=1)
        return (target - now).total_seconds()

    def run_once(self) -> Optional[SweepResult]:
        try:
            return sweep(self.catalog)
        except Exception:
            logger.exception("Vote sweep failed, retrying at the next scheduled run")
            return None
        finally:
            # connections are per thread; don't leave this one open for a day
            connections.close_all()

    def run_forever(self):
        logger.info("Vote sweeper scheduled daily at %02d:%02d", self.hour, self.minute)
        while not self._stop.wait(self.seconds_until_next_run(timezone.localtime())):
            logger.info("Checking for expired screenings...")
            self.run_once()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self.run_forever, name="vote-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
