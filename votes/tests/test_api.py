import json
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from votes import store
from votes.auth import issue_token
from votes.models import MovieSuggestion, Vote
from votes.tests.helpers import CatalogMixin, make_user, screening_doc, when


class ApiTestCase(CatalogMixin, TestCase):

    def setUp(self):
        self.catalog = self.install_catalog(
            screening_doc("tomorrow", when(days=1), movie_ids=("A", "B")),
            screening_doc("next-week", when(days=7), movie_ids=("C", "D")),
            screening_doc("yesterday", when(days=-1), movie_ids=("E", "F")),
        )
        self.user = make_user("user1", "User One")
        self.other = make_user("user2", "User Two")

    def auth(self, user=None):
        return {"HTTP_AUTHORIZATION": f"Bearer {issue_token(user or self.user)}"}

    def get(self, url, user=None):
        return self.client.get(url, **self.auth(user))

    def post(self, url, payload, user=None):
        return self.client.post(url, data=json.dumps(payload), content_type="application/json", **self.auth(user))

    def delete(self, url, user=None):
        return self.client.delete(url, **self.auth(user))


class AuthTests(ApiTestCase):

    def test_missing_token(self):
        self.assertEqual(self.client.get("/api/movies/screenings").status_code, 401)

    def test_bad_token(self):
        resp = self.client.get("/api/movies/screenings", HTTP_AUTHORIZATION="Bearer forged")
        self.assertEqual(resp.status_code, 403)

    def test_register_then_use_token(self):
        resp = self.client.post("/api/auth/register", data=json.dumps(
            {"username": "carol", "name": "Carol King", "password": "hunter22"}), content_type="application/json")
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["user"]["name"], "Carol King")
        resp = self.client.get("/api/movies/screenings", HTTP_AUTHORIZATION=f"Bearer {body['token']}")
        self.assertEqual(resp.status_code, 200)

    def test_register_duplicate_username(self):
        resp = self.client.post("/api/auth/register", data=json.dumps(
            {"username": "USER1", "name": "Again", "password": "hunter22"}), content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Username already exists")

    def test_login(self):
        ok = self.client.post("/api/auth/login", data=json.dumps(
            {"username": "user1", "password": "secret123"}), content_type="application/json")
        self.assertEqual(ok.status_code, 200)
        self.assertEqual(ok.json()["user"]["username"], "user1")
        bad = self.client.post("/api/auth/login", data=json.dumps(
            {"username": "user1", "password": "nope"}), content_type="application/json")
        self.assertEqual(bad.status_code, 401)

    def test_health_is_public(self):
        self.assertEqual(self.client.get("/api/health").json()["status"], "OK")


class ScreeningApiTests(ApiTestCase):

    def test_next_screening(self):
        store.cast_or_replace_vote(self.user, "B", "tomorrow")
        screening = self.get("/api/movies/next-screening").json()["screening"]
        self.assertEqual(screening["id"], "tomorrow")
        self.assertEqual(screening["myVote"], "B")
        self.assertFalse(screening["isVotingClosed"])
        self.assertEqual([m["votes"] for m in screening["movies"]], [0, 1])

    def test_next_screening_none_when_all_passed(self):
        self.catalog.replace_all({"screenings": [screening_doc("old", when(days=-3))]})
        self.assertEqual(self.get("/api/movies/next-screening").json(), {"screening": None})

    def test_current_screening_falls_back_to_earliest(self):
        self.catalog.replace_all({"screenings": [
            screening_doc("old", when(days=-3)), screening_doc("older", when(days=-9)),
        ]})
        self.assertEqual(self.get("/api/movies/current-screening").json()["screening"]["id"], "older")
        self.catalog.replace_all({"screenings": []})
        self.assertEqual(self.get("/api/movies/current-screening").json(), {"screening": None})

    def test_screening_by_id(self):
        resp = self.get("/api/movies/screening/yesterday")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["screening"]["isVotingClosed"])
        self.assertEqual(self.get("/api/movies/screening/nope").status_code, 404)

    def test_sorted_by_votes(self):
        store.cast_or_replace_vote(self.user, "D", "next-week")
        movies = self.get("/api/movies/screening/next-week?sort=votes").json()["screening"]["movies"]
        self.assertEqual([m["id"] for m in movies], ["D", "C"])

    def test_all_screenings_by_date(self):
        screenings = self.get("/api/movies/screenings").json()["screenings"]
        self.assertEqual([s["id"] for s in screenings], ["yesterday", "tomorrow", "next-week"])

    def test_storage_failure_is_500_without_details(self):
        with mock.patch("votes.aggregate.store.get_votes_for_screening", side_effect=DatabaseError("locked")), \
                self.assertLogs("votes.views", level="ERROR"):
            resp = self.get("/api/movies/screenings")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "Failed to fetch screenings"})


class VoteApiTests(ApiTestCase):

    def test_cast_vote(self):
        resp = self.post("/api/votes", {"movieId": "A", "screeningId": "tomorrow"})
        self.assertEqual(resp.status_code, 200)
        vote = resp.json()["vote"]
        self.assertEqual((vote["movieId"], vote["screeningId"]), ("A", "tomorrow"))
        self.assertEqual(vote["userId"], str(self.user.pk))

    def test_missing_fields(self):
        resp = self.post("/api/votes", {"movieId": "A"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Movie ID and screening ID are required")

    def test_invalid_json(self):
        resp = self.client.post("/api/votes", data="{", content_type="application/json", **self.auth())
        self.assertEqual(resp.status_code, 400)

    def test_unknown_screening(self):
        self.assertEqual(self.post("/api/votes", {"movieId": "A", "screeningId": "nope"}).status_code, 404)

    def test_overlong_unknown_ids_are_not_found(self):
        self.assertEqual(self.post("/api/votes", {"movieId": "A", "screeningId": "s" * 300}).status_code, 404)
        self.assertEqual(self.post("/api/votes", {"movieId": "m" * 300, "screeningId": "tomorrow"}).status_code, 404)
        self.assertFalse(Vote.objects.exists())

    def test_non_string_ids_are_rejected(self):
        resp = self.post("/api/votes", {"movieId": ["A"], "screeningId": "tomorrow"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "movieId must be a string")
        self.assertFalse(Vote.objects.exists())

    def test_unknown_movie_writes_nothing(self):
        resp = self.post("/api/votes", {"movieId": "C", "screeningId": "tomorrow"})
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(Vote.objects.exists())

    def test_closed_screening_keeps_prior_vote(self):
        store.cast_or_replace_vote(self.user, "E", "yesterday")
        resp = self.post("/api/votes", {"movieId": "F", "screeningId": "yesterday"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Voting is closed for this screening")
        self.assertEqual(store.get_vote(self.user, "yesterday").movie_id, "E")

    def test_revote_scenario(self):
        self.post("/api/votes", {"movieId": "A", "screeningId": "tomorrow"})
        self.post("/api/votes", {"movieId": "B", "screeningId": "tomorrow"}, user=self.other)
        self.post("/api/votes", {"movieId": "B", "screeningId": "tomorrow"})

        movies = {m["id"]: m for m in self.get("/api/movies/screening/tomorrow").json()["screening"]["movies"]}
        self.assertEqual(movies["A"]["votes"], 0)
        self.assertEqual(movies["B"]["votes"], 2)
        self.assertEqual([v["username"] for v in movies["B"]["voters"]], ["user1", "user2"])
        self.assertEqual(Vote.objects.filter(user=self.user).count(), 1)

    def test_my_vote(self):
        self.assertEqual(self.get("/api/votes/my-vote/tomorrow").json(), {"vote": None})
        self.post("/api/votes", {"movieId": "A", "screeningId": "tomorrow"})
        self.assertEqual(self.get("/api/votes/my-vote/tomorrow").json()["vote"]["movieId"], "A")

    def test_cancel_vote_is_idempotent(self):
        self.post("/api/votes", {"movieId": "A", "screeningId": "tomorrow"})
        self.assertEqual(self.delete("/api/votes/tomorrow").status_code, 200)
        self.assertEqual(self.delete("/api/votes/tomorrow").status_code, 200)
        self.assertIsNone(store.get_vote(self.user, "tomorrow"))

    def test_cancel_after_screening_closed_is_rejected(self):
        store.cast_or_replace_vote(self.user, "E", "yesterday")
        resp = self.delete("/api/votes/yesterday")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "Voting is closed for this screening")
        self.assertEqual(store.get_vote(self.user, "yesterday").movie_id, "E")

    def test_cancel_only_touches_own_vote(self):
        self.post("/api/votes", {"movieId": "A", "screeningId": "tomorrow"}, user=self.other)
        self.delete("/api/votes/tomorrow")
        self.assertIsNotNone(store.get_vote(self.other, "tomorrow"))

    def test_admin_clear_then_new_vote(self):
        users = [make_user(f"voter{i}") for i in range(5)]
        for user in users:
            store.cast_or_replace_vote(user, "A", "tomorrow")

        resp = self.delete("/api/votes/admin/clear/tomorrow")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "All votes cleared for screening tomorrow")
        self.assertEqual(store.get_votes_for_screening("tomorrow"), [])

        self.assertEqual(self.post("/api/votes", {"movieId": "B", "screeningId": "tomorrow"}).status_code, 200)
        votes = store.get_votes_for_screening("tomorrow")
        self.assertEqual([(v.user_id, v.movie_id) for v in votes], [(self.user.pk, "B")])

    def test_admin_clear_unknown_screening(self):
        self.assertEqual(self.delete("/api/votes/admin/clear/nope").status_code, 404)

    def test_wrong_method(self):
        self.assertEqual(self.get("/api/votes").status_code, 405)


class SuggestionApiTests(ApiTestCase):

    def test_create_and_list(self):
        resp = self.post("/api/suggestions", {"title": " Alien ", "year": 1979, "screeningId": "tomorrow"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["suggestion"]["title"], "Alien")

        suggestions = self.get("/api/suggestions/screening/tomorrow").json()["suggestions"]
        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0]["user"]["name"], "User One")

    def test_duplicate_is_silent_success(self):
        first = self.post("/api/suggestions", {"title": "Alien", "year": 1979, "screeningId": "tomorrow"})
        second = self.post("/api/suggestions", {"title": "ALIEN", "year": 1979, "screeningId": "tomorrow"},
                           user=self.other)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(first.json()["suggestion"]["id"], second.json()["suggestion"]["id"])
        self.assertEqual(MovieSuggestion.objects.count(), 1)

    def test_invalid_input(self):
        cases = [
            {"title": "", "screeningId": "tomorrow"},
            {"title": "   ", "screeningId": "tomorrow"},
            {"title": "x" * 201, "screeningId": "tomorrow"},
            {"title": "Metropolis", "year": 1850, "screeningId": "tomorrow"},
            {"title": "Far Future", "year": 3000, "screeningId": "tomorrow"},
            {"title": "Alien", "year": "soon", "screeningId": "tomorrow"},
            {"title": "Alien"},
        ]
        for payload in cases:
            with self.subTest(payload=payload):
                self.assertEqual(self.post("/api/suggestions", payload).status_code, 400)
        self.assertFalse(MovieSuggestion.objects.exists())

    def test_non_string_title_is_rejected(self):
        for title in (123, ["Alien"], {"name": "Alien"}):
            with self.subTest(title=title):
                resp = self.post("/api/suggestions", {"title": title, "screeningId": "tomorrow"})
                self.assertEqual(resp.status_code, 400)
                self.assertEqual(resp.json()["error"], "title must be a string")
        self.assertFalse(MovieSuggestion.objects.exists())

    def test_title_length_message(self):
        resp = self.post("/api/suggestions", {"title": "x" * 201, "screeningId": "tomorrow"})
        self.assertEqual(resp.json()["error"], "Title must be between 1 and 200 characters")
