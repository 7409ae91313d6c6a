"""
Small TMDb client used to enrich catalog movies with display metadata.
"""
from typing import Any, Dict, Optional

import requests
from django.conf import settings
from django.utils import timezone

from .catalog import format_date


def empty_metadata() -> Dict[str, Any]:
    """Marks a movie as searched but not found, so it isn't retried every run."""
    return {
        "tmdb_id": None,
        "overview": "Movie not found in database.",
        "poster_path": None,
        "backdrop_path": None,
        "vote_average": 0,
        "vote_count": 0,
        "runtime": None,
        "genres": [],
        "release_date": None,
        "tagline": None,
        "imdb_id": None,
        "budget": None,
        "revenue": None,
        "fetched_at": format_date(timezone.now()),
    }


class TMDbClient:
    def __init__(self, api_key: str, base_url: Optional[str] = None, image_base_url: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 15):
        conf = settings.MOVIENIGHT
        self.api_key = api_key
        self.base_url = (base_url or conf["TMDB_BASE_URL"]).rstrip("/")
        self.image_base_url = image_base_url or conf["TMDB_IMAGE_BASE_URL"]
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, path: str, **params) -> Dict[str, Any]:
        params["api_key"] = self.api_key
        resp = self.session.get(f"{self.base_url}{path}", params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()

    def _image(self, path: Optional[str]) -> Optional[str]:
        return f"{self.image_base_url}{path}" if path else None

    def search(self, title: str, year: Optional[int] = None) -> Optional[Dict[str, Any]]:
        params = {"query": title}
        if year:
            params["year"] = year
        results = self._get("/search/movie", **params).get("results") or []
        return results[0] if results else None

    def details(self, tmdb_id: int) -> Dict[str, Any]:
        return self._get(f"/movie/{tmdb_id}")

    def metadata_for(self, title: str, year: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """Metadata record for the best match, or None when TMDb has no match."""
        hit = self.search(title, year)
        if hit is None:
            return None
        d = self.details(hit["id"])
        return {
            "tmdb_id": d.get("id"),
            "overview": d.get("overview") or "No description available.",
            "poster_path": self._image(d.get("poster_path")),
            "backdrop_path": self._image(d.get("backdrop_path")),
            "vote_average": d.get("vote_average") or 0,
            "vote_count": d.get("vote_count") or 0,
            "runtime": d.get("runtime") or None,
            "genres": [g["name"] for g in d.get("genres") or []],
            "release_date": d.get("release_date") or None,
            "tagline": d.get("tagline") or None,
            "imdb_id": d.get("imdb_id"),
            "budget": d.get("budget") or None,
            "revenue": d.get("revenue") or None,
            "fetched_at": format_date(timezone.now()),
        }
