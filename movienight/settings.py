"""
Django settings for the movienight project.

Everything deployment-specific is read from the environment so the same
module serves local runs, tests and the container image.
"""
import os
import pathlib

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent
DATA_DIR = pathlib.Path(os.environ.get("MOVIENIGHT_DATA_DIR", BASE_DIR / "data"))
DATA_DIR.mkdir(parents=True, exist_ok=True)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-movienight-secret-key")
DEBUG = _env_flag("DJANGO_DEBUG", False)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "screenings",
    "votes",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "movienight.urls"
WSGI_APPLICATION = "movienight.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("DATABASE_PATH", str(DATA_DIR / "movieschedule.db")),
        # seconds to wait on a locked database before raising
        "OPTIONS": {"timeout": 10},
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TZ_NAME", "UTC")
USE_I18N = False
USE_TZ = True

# ---- movie night ------------------------------------------------------------

MOVIENIGHT = {
    "CONFIG_PATH": os.environ.get("CONFIG_PATH", str(DATA_DIR / "config.json")),
    "SEED_CONFIG_PATH": str(BASE_DIR / "screenings" / "data" / "config.json"),
    "SWEEPER_ENABLED": _env_flag("MOVIENIGHT_SWEEPER", True),
    "SWEEP_HOUR": int(os.environ.get("MOVIENIGHT_SWEEP_HOUR", 0)),
    "SWEEP_MINUTE": int(os.environ.get("MOVIENIGHT_SWEEP_MINUTE", 0)),
    "TOKEN_MAX_AGE": int(os.environ.get("MOVIENIGHT_TOKEN_MAX_AGE", 7 * 24 * 3600)),
    "SUGGESTION_TITLE_MAX": 200,
    "TMDB_API_KEY": os.environ.get("TMDB_API_KEY", ""),
    "TMDB_BASE_URL": "https://api.themoviedb.org/3",
    "TMDB_IMAGE_BASE_URL": "https://image.tmdb.org/t/p/w500",
}

# ---- logging ----------------------------------------------------------------

LOG_LEVEL = os.environ.get("DJANGO_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "django": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "movienight": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "screenings": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "votes": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
