"""
WSGI entry point. Also starts the nightly vote sweeper for this process.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "movienight.settings")

application = get_wsgi_application()

from django.conf import settings  # noqa: E402

if settings.MOVIENIGHT["SWEEPER_ENABLED"]:
    from screenings.catalog import get_catalog  # noqa: E402
    from votes.sweeper import VoteSweeper  # noqa: E402

    SWEEPER = VoteSweeper(
        get_catalog(),
        hour=settings.MOVIENIGHT["SWEEP_HOUR"],
        minute=settings.MOVIENIGHT["SWEEP_MINUTE"],
    )
    SWEEPER.start()
