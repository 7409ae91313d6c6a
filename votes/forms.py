from django import forms
from django.conf import settings
from django.contrib.auth import get_user_model
from django.utils import timezone

from screenings.catalog import MAX_ID_LENGTH

MIN_YEAR = 1900


def first_error(form) -> str:
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return "Invalid request"


class JSONFieldsForm(forms.Form):
    """Rejects JSON numbers/lists/objects where a string field is expected."""

    string_fields = ()

    def clean(self):
        cleaned = super().clean()
        for name in self.string_fields:
            raw = self.data.get(name)
            if raw is not None and not isinstance(raw, str):
                self.add_error(name, f"{name} must be a string")
        return cleaned


class VoteForm(JSONFieldsForm):
    _required = {"required": "Movie ID and screening ID are required"}
    string_fields = ("movieId", "screeningId")

    # no max_length: ids the catalog doesn't know are answered with a 404
    movieId = forms.CharField(error_messages=_required)
    screeningId = forms.CharField(error_messages=_required)


class SuggestionForm(JSONFieldsForm):
    string_fields = ("title", "screeningId")

    title = forms.CharField(
        max_length=settings.MOVIENIGHT["SUGGESTION_TITLE_MAX"],
        error_messages={
            "required": "Title and screeningId are required",
            "max_length": "Title must be between 1 and %(limit_value)d characters",
        },
    )
    year = forms.IntegerField(required=False, error_messages={"invalid": "Invalid year provided"})
    screeningId = forms.CharField(max_length=MAX_ID_LENGTH, error_messages={"required": "Title and screeningId are required"})

    def clean_year(self):
        year = self.cleaned_data.get("year")
        # 0 / empty means "unknown"
        if not year:
            return None
        if year < MIN_YEAR or year > timezone.now().year + 5:
            raise forms.ValidationError("Invalid year provided")
        return year


class RegisterForm(forms.Form):
    username = forms.CharField(max_length=150)
    name = forms.CharField(max_length=150)
    password = forms.CharField(min_length=6, max_length=128)

    def clean_username(self):
        username = self.cleaned_data["username"].strip()
        if get_user_model().objects.filter(username__iexact=username).exists():
            raise forms.ValidationError("Username already exists")
        return username


class LoginForm(forms.Form):
    _required = {"required": "Username and password are required"}

    username = forms.CharField(max_length=150, error_messages=_required)
    password = forms.CharField(max_length=128, strip=False, error_messages=_required)
