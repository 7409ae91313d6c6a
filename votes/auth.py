"""
Bearer-token authentication for the JSON API.

Tokens are signed user ids (django.core.signing), so nothing is stored
server side. `token_required` resolves the header into `request.auth_user`.
"""
import functools

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core import signing
from django.http import JsonResponse

TOKEN_SALT = "movienight.auth"


def issue_token(user) -> str:
    return signing.dumps({"uid": user.pk}, salt=TOKEN_SALT)


def user_from_token(token: str):
    """Return the user for a token, or None if it is bad, expired or orphaned."""
    try:
        payload = signing.loads(token, salt=TOKEN_SALT, max_age=settings.MOVIENIGHT["TOKEN_MAX_AGE"])
    except signing.BadSignature:  # includes SignatureExpired
        return None
    User = get_user_model()
    try:
        return User.objects.get(pk=payload.get("uid"), is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        return None


def _bearer(request):
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def token_required(view):
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        token = _bearer(request)
        if token is None:
            return JsonResponse({"error": "Access token required"}, status=401)
        user = user_from_token(token)
        if user is None:
            return JsonResponse({"error": "Invalid or expired token"}, status=403)
        request.auth_user = user
        return view(request, *args, **kwargs)
    return wrapper
