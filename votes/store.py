"""
Vote store: votes, screening reset markers and movie suggestions.

Every function is atomic on its own. The one-vote-per-user-per-screening rule
is enforced by the unique index on Vote; re-votes go through a single
INSERT ... ON CONFLICT DO UPDATE rather than a read followed by a write.
"""
from __future__ import annotations

import datetime as dt
import logging
from typing import Dict, Iterable, List, Optional

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from screenings.catalog import format_date
from .models import MovieSuggestion, ScreeningReset, Vote, normalize_title

logger = logging.getLogger(__name__)


# ---- serialisation ----------------------------------------------------------

def user_identity(user) -> Dict[str, str]:
    return {
        "id": str(user.pk),
        "username": user.username,
        "name": user.get_full_name() or user.username,
    }


def sort_identities(identities: Iterable[Dict[str, str]]) -> List[Dict[str, str]]:
    return sorted(identities, key=lambda u: (u["name"].casefold(), u["username"]))


def vote_to_dict(vote: Optional[Vote]) -> Optional[Dict[str, str]]:
    if vote is None:
        return None
    return {
        "id": str(vote.pk),
        "userId": str(vote.user_id),
        "movieId": vote.movie_id,
        "screeningId": vote.screening_id,
        "createdAt": format_date(vote.created_at),
    }


def suggestion_to_dict(suggestion: MovieSuggestion) -> Dict:
    return {
        "id": str(suggestion.pk),
        "screeningId": suggestion.screening_id,
        "userId": str(suggestion.user_id),
        "title": suggestion.title,
        "year": suggestion.year,
        "createdAt": format_date(suggestion.created_at),
        "user": user_identity(suggestion.user),
    }


# ---- votes ------------------------------------------------------------------

def cast_or_replace_vote(user, movie_id: str, screening_id: str, now: Optional[dt.datetime] = None) -> Vote:
    """Upsert the caller's single vote for a screening."""
    now = now or timezone.now()
    with transaction.atomic():
        Vote.objects.bulk_create(
            [Vote(user=user, movie_id=movie_id, screening_id=screening_id, created_at=now)],
            update_conflicts=True,
            unique_fields=["user", "screening_id"],
            update_fields=["movie_id", "created_at"],
        )
        vote = Vote.objects.get(user=user, screening_id=screening_id)
    logger.info("User %s voted %s for %s", user.pk, movie_id, screening_id)
    return vote


def delete_vote(user, screening_id: str) -> int:
    deleted, _ = Vote.objects.filter(user=user, screening_id=screening_id).delete()
    return deleted


def get_votes_for_screening(screening_id: str) -> List[Vote]:
    return list(Vote.objects.filter(screening_id=screening_id).select_related("user").order_by("created_at", "id"))


def get_vote(user, screening_id: str) -> Optional[Vote]:
    return Vote.objects.filter(user=user, screening_id=screening_id).first()


def get_voters_for_movie(movie_id: str, screening_id: str) -> List[Dict[str, str]]:
    users = get_user_model().objects.filter(votes__movie_id=movie_id, votes__screening_id=screening_id)
    return sort_identities(user_identity(u) for u in users)


def clear_screening(screening_id: str, now: Optional[dt.datetime] = None) -> int:
    """Delete every vote for a screening and stamp its reset marker."""
    now = now or timezone.now()
    with transaction.atomic():
        deleted, _ = Vote.objects.filter(screening_id=screening_id).delete()
        ScreeningReset.objects.update_or_create(screening_id=screening_id, defaults={"reset_at": now})
    logger.info("Cleared %d votes for screening %s", deleted, screening_id)
    return deleted


# ---- suggestions ------------------------------------------------------------

def create_suggestion(screening_id: str, user, title: str, year: Optional[int] = None) -> MovieSuggestion:
    """Ensure a suggestion exists; a duplicate returns the stored row."""
    title = title.strip()
    suggestion, created = MovieSuggestion.objects.get_or_create(
        screening_id=screening_id,
        normalized_title=normalize_title(title),
        year_key=year or 0,
        defaults={"user": user, "title": title, "year": year},
    )
    if created:
        logger.info("User %s suggested %r for %s", user.pk, title, screening_id)
    return suggestion


def get_suggestions(screening_id: str) -> List[MovieSuggestion]:
    return list(
        MovieSuggestion.objects.filter(screening_id=screening_id)
        .select_related("user")
        .order_by("-created_at", "-id")
    )
