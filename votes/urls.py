from django.urls import path
from . import views

app_name = "votes"

urlpatterns = [
    path("health", views.health, name="health"),
    path("auth/register", views.register, name="register"),
    path("auth/login", views.login, name="login"),

    path("movies/next-screening", views.next_screening, name="next_screening"),
    path("movies/current-screening", views.current_screening, name="current_screening"),
    path("movies/screening/<str:screening_id>", views.screening_detail, name="screening_detail"),
    path("movies/screenings", views.screening_list, name="screening_list"),

    path("votes", views.cast_vote, name="cast_vote"),
    path("votes/my-vote/<str:screening_id>", views.my_vote, name="my_vote"),
    path("votes/admin/clear/<str:screening_id>", views.clear_votes, name="clear_votes"),
    path("votes/<str:screening_id>", views.cancel_vote, name="cancel_vote"),

    path("suggestions", views.create_suggestion, name="create_suggestion"),
    path("suggestions/screening/<str:screening_id>", views.screening_suggestions, name="screening_suggestions"),
]
