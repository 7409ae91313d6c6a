from django.conf import settings
from django.db import models
from django.utils import timezone

from screenings.catalog import MAX_ID_LENGTH


class Vote(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="votes")
    movie_id = models.CharField(max_length=MAX_ID_LENGTH)
    screening_id = models.CharField(max_length=MAX_ID_LENGTH, db_index=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        # one vote per user per screening; re-votes upsert against this
        unique_together = ("user", "screening_id")

    def __str__(self):
        return f"Vote {self.user_id} -> {self.movie_id} @ {self.screening_id}"


class ScreeningReset(models.Model):
    screening_id = models.CharField(max_length=MAX_ID_LENGTH, primary_key=True)
    reset_at = models.DateTimeField(default=timezone.now)

    def __str__(self):
        return f"Reset {self.screening_id} at {self.reset_at:%Y-%m-%d %H:%M}"


class MovieSuggestion(models.Model):
    screening_id = models.CharField(max_length=MAX_ID_LENGTH, db_index=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="suggestions")
    title = models.CharField(max_length=200)
    normalized_title = models.CharField(max_length=200, editable=False)
    year = models.PositiveSmallIntegerField(null=True, blank=True)
    year_key = models.PositiveSmallIntegerField(default=0, editable=False)  # 0 when year unknown
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        unique_together = ("screening_id", "normalized_title", "year_key")

    def save(self, *args, **kwargs):
        self.normalized_title = normalize_title(self.title)
        self.year_key = self.year or 0
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.title} ({self.year or '?'})"


def normalize_title(title: str) -> str:
    return " ".join(title.split()).lower()
