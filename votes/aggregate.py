from __future__ import annotations

import datetime as dt
from collections import defaultdict
from typing import Any, Dict, Iterable, List

from screenings.catalog import Screening, format_date
from screenings.state import is_voting_open
from . import store


def build_screening_view(screening: Screening, now: dt.datetime, user=None, sort_by_votes: bool = False) -> Dict[str, Any]:
    """
    Screening metadata plus per-movie vote counts and voters.

    Counts and voters come from one snapshot of the screening's votes so they
    always agree. Votes for movies no longer in the catalog are ignored.
    """
    votes = store.get_votes_for_screening(screening.id)
    voters_by_movie: Dict[str, List[Dict[str, str]]] = defaultdict(list)
    for vote in votes:
        voters_by_movie[vote.movie_id].append(store.user_identity(vote.user))

    movies = []
    for movie in screening.movies:
        voters = store.sort_identities(voters_by_movie.get(movie.id, []))
        movies.append({**movie.to_dict(), "votes": len(voters), "voters": voters})

    if sort_by_votes:
        # sorted() is stable, ties keep catalog order
        movies = sorted(movies, key=lambda m: m["votes"], reverse=True)

    my_vote = None
    if user is not None:
        for vote in votes:
            if vote.user_id == user.pk:
                my_vote = vote.movie_id
                break

    view: Dict[str, Any] = {
        "id": screening.id,
        "date": format_date(screening.date),
        "theme": screening.theme,
        "movies": movies,
        "totalVotes": sum(m["votes"] for m in movies),
        "isVotingClosed": not is_voting_open(screening, now),
        "myVote": my_vote,
    }
    return view


def build_screening_views(screenings: Iterable[Screening], now: dt.datetime, user=None,
                          sort_by_votes: bool = False) -> List[Dict[str, Any]]:
    ordered = sorted(screenings, key=lambda s: (s.date, s.id))
    return [build_screening_view(s, now, user=user, sort_by_votes=sort_by_votes) for s in ordered]

