import functools
import json
import logging

from django.contrib.auth import authenticate, get_user_model
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from screenings.catalog import format_date, get_catalog
from screenings.state import is_voting_open, resolve_current
from . import store
from .aggregate import build_screening_view, build_screening_views
from .auth import issue_token, token_required
from .forms import LoginForm, RegisterForm, SuggestionForm, VoteForm, first_error

logger = logging.getLogger(__name__)


def json_view(failure_message):
    """Turn unexpected errors into a logged 500 with a generic message."""
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except Exception:
                logger.exception("%s %s failed", request.method, request.path)
                return JsonResponse({"error": failure_message}, status=500)
        return wrapper
    return decorator


def _json_body(request):
    try:
        payload = json.loads(request.body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, ValueError):
        return None
    return payload if isinstance(payload, dict) else None


def _error(message, status=400):
    return JsonResponse({"error": message}, status=status)


def _sort_by_votes(request) -> bool:
    return request.GET.get("sort") == "votes"


# ---- auth -------------------------------------------------------------------

@csrf_exempt
@require_POST
@json_view("Registration failed")
def register(request):
    payload = _json_body(request)
    if payload is None:
        return _error("Invalid JSON")
    form = RegisterForm(data=payload)
    if not form.is_valid():
        return _error(first_error(form))

    cfg = form.cleaned_data
    first, _, last = cfg["name"].strip().partition(" ")
    user = get_user_model().objects.create_user(
        username=cfg["username"], password=cfg["password"], first_name=first, last_name=last,
    )
    logger.info("Registered user %s", user.username)
    return JsonResponse({"token": issue_token(user), "user": store.user_identity(user)}, status=201)


@csrf_exempt
@require_POST
@json_view("Login failed")
def login(request):
    payload = _json_body(request)
    if payload is None:
        return _error("Invalid JSON")
    form = LoginForm(data=payload)
    if not form.is_valid():
        return _error(first_error(form))

    user = authenticate(request, username=form.cleaned_data["username"], password=form.cleaned_data["password"])
    if user is None:
        return _error("Invalid credentials", status=401)
    return JsonResponse({"token": issue_token(user), "user": store.user_identity(user)})


@require_GET
def health(request):
    return JsonResponse({"status": "OK", "timestamp": format_date(timezone.now())})


# ---- screenings -------------------------------------------------------------

@require_GET
@json_view("Failed to fetch screening")
@token_required
def next_screening(request):
    now = timezone.now()
    screening = get_catalog().get_next(now)
    if screening is None:
        return JsonResponse({"screening": None})
    view = build_screening_view(screening, now, user=request.auth_user, sort_by_votes=_sort_by_votes(request))
    return JsonResponse({"screening": view})


@require_GET
@json_view("Failed to fetch screening")
@token_required
def current_screening(request):
    now = timezone.now()
    screening = resolve_current(get_catalog(), now)
    if screening is None:
        return JsonResponse({"screening": None})
    view = build_screening_view(screening, now, user=request.auth_user, sort_by_votes=_sort_by_votes(request))
    return JsonResponse({"screening": view})


@require_GET
@json_view("Failed to fetch screening")
@token_required
def screening_detail(request, screening_id: str):
    screening = get_catalog().get_by_id(screening_id)
    if screening is None:
        return _error("Screening not found", status=404)
    view = build_screening_view(screening, timezone.now(), user=request.auth_user,
                                sort_by_votes=_sort_by_votes(request))
    return JsonResponse({"screening": view})


@require_GET
@json_view("Failed to fetch screenings")
@token_required
def screening_list(request):
    views = build_screening_views(get_catalog().get_all(), timezone.now(), user=request.auth_user,
                                  sort_by_votes=_sort_by_votes(request))
    return JsonResponse({"screenings": views})


# ---- votes ------------------------------------------------------------------

@csrf_exempt
@require_POST
@json_view("Failed to cast vote")
@token_required
def cast_vote(request):
    payload = _json_body(request)
    if payload is None:
        return _error("Invalid JSON")
    form = VoteForm(data=payload)
    if not form.is_valid():
        return _error(first_error(form))
    movie_id = form.cleaned_data["movieId"]
    screening_id = form.cleaned_data["screeningId"]

    screening = get_catalog().get_by_id(screening_id)
    if screening is None:
        return _error("Screening not found", status=404)
    now = timezone.now()
    if not is_voting_open(screening, now):
        return _error("Voting is closed for this screening")
    if screening.get_movie(movie_id) is None:
        return _error("Movie not found in this screening", status=404)

    vote = store.cast_or_replace_vote(request.auth_user, movie_id, screening_id, now=now)
    return JsonResponse({"vote": store.vote_to_dict(vote)})


@require_GET
@json_view("Failed to fetch vote")
@token_required
def my_vote(request, screening_id: str):
    vote = store.get_vote(request.auth_user, screening_id)
    return JsonResponse({"vote": store.vote_to_dict(vote)})


@csrf_exempt
@require_http_methods(["DELETE"])
@json_view("Failed to cancel vote")
@token_required
def cancel_vote(request, screening_id: str):
    screening = get_catalog().get_by_id(screening_id)
    if screening is not None and not is_voting_open(screening, timezone.now()):
        return _error("Voting is closed for this screening")
    deleted = store.delete_vote(request.auth_user, screening_id)
    message = "Vote cancelled" if deleted else "No vote to cancel"
    return JsonResponse({"message": message})


@csrf_exempt
@require_http_methods(["DELETE"])
@json_view("Failed to clear votes")
@token_required
def clear_votes(request, screening_id: str):
    if get_catalog().get_by_id(screening_id) is None:
        return _error("Screening not found", status=404)
    deleted = store.clear_screening(screening_id)
    logger.info("User %s cleared %d votes for %s", request.auth_user.pk, deleted, screening_id)
    return JsonResponse({"message": f"All votes cleared for screening {screening_id}"})


# ---- suggestions ------------------------------------------------------------

@csrf_exempt
@require_POST
@json_view("Failed to create suggestion")
@token_required
def create_suggestion(request):
    payload = _json_body(request)
    if payload is None:
        return _error("Invalid JSON")
    form = SuggestionForm(data=payload)
    if not form.is_valid():
        return _error(first_error(form))

    cfg = form.cleaned_data
    suggestion = store.create_suggestion(cfg["screeningId"], request.auth_user, cfg["title"], cfg["year"])
    return JsonResponse({"suggestion": store.suggestion_to_dict(suggestion)})


@require_GET
@json_view("Failed to fetch suggestions")
@token_required
def screening_suggestions(request, screening_id: str):
    suggestions = store.get_suggestions(screening_id)
    return JsonResponse({"suggestions": [store.suggestion_to_dict(s) for s in suggestions]})
