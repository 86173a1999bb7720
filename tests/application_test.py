"""Tests for the HTTP surface in application.py."""

import unittest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from application import create_app
from event_payloads import make_event
from service.event_discovery.auth import Session
from service.event_discovery.config import Settings
from service.event_discovery.errors import AuthError, EventFetchError, EventNotFoundError, PersistenceError
from service.event_discovery.models import DiscussionComment, Event, EventPage, PageInfo, SavedEvent

AUTH = {"Authorization": "Bearer good-token"}


def fake_session(authorization):
    if authorization is None:
        return None
    if authorization == "Bearer good-token":
        return Session(user_id="user-1", email="fan@example.com")
    raise AuthError("Invalid ID token")


def page_of(*ids):
    events = [Event.model_validate(make_event(id=i)) for i in ids]
    return EventPage(events=events, page=PageInfo(size=20, totalElements=len(events), totalPages=1, number=0))


class ApplicationTestCase(unittest.TestCase):
    def setUp(self):
        self.ticketmaster = MagicMock()
        self.ticketmaster.search_events.return_value = page_of(*[f"e{i}" for i in range(12)])
        self.ticketmaster.get_today_events.return_value = page_of(*[f"t{i}" for i in range(8)])
        self.ticketmaster.get_featured_events.return_value = page_of("f1")
        self.ticketmaster.get_event_by_id.return_value = Event.model_validate(make_event())

        self.store = MagicMock()
        self.store.saved_event_ids.return_value = set()
        self.store.is_event_saved.return_value = False
        self.store.list_discussions.return_value = []
        self.store.list_event_savers.return_value = []

        self.authenticator = MagicMock()
        self.authenticator.session_from_header.side_effect = fake_session

        app = create_app(
            settings=Settings(ticketmaster_api_key="test"),
            ticketmaster=self.ticketmaster,
            store=self.store,
            authenticator=self.authenticator,
        )
        self.client = TestClient(app)


class TestListing(ApplicationTestCase):
    def test_health(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "ok")

    def test_home_initial_load(self):
        response = self.client.get("/home")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data["events"]), 9)
        self.assertEqual(len(data["today_events"]), 6)
        self.assertIsNone(data["error"])
        self.ticketmaster.search_events.assert_called_once_with()

    def test_home_failure_is_empty_state(self):
        self.ticketmaster.search_events.side_effect = EventFetchError("Failed to fetch events", status_code=500)

        data = self.client.get("/home").json()

        self.assertEqual(data["events"], [])
        self.assertEqual(data["error"], "Failed to load events")

    def test_unfiltered_listing(self):
        response = self.client.get("/events")

        self.assertEqual(response.status_code, 200)
        self.ticketmaster.search_events.assert_called_once_with(page=0, size=20)
        self.assertEqual(response.json()["total_elements"], 12)

    def test_filtered_listing(self):
        response = self.client.get("/events", params={"search": "rock", "category": "Music", "city": "Leeds"})

        self.assertEqual(response.status_code, 200)
        self.ticketmaster.search_events.assert_called_once_with(
            keyword="rock", category="Music", city="Leeds", page=0, size=20
        )
        labels = [b["label"] for b in response.json()["active_filters"]]
        self.assertEqual(labels, ["Music", "Leeds"])

    def test_unknown_filter_is_422(self):
        response = self.client.get("/events", params={"date_range": "someday"})
        self.assertEqual(response.status_code, 422)
        self.ticketmaster.search_events.assert_not_called()

    def test_listing_failure(self):
        self.ticketmaster.search_events.side_effect = EventFetchError("Failed to fetch events")

        data = self.client.get("/events").json()

        self.assertEqual(data["events"], [])
        self.assertEqual(data["error"], "Failed to load events")

    def test_saved_flags_hydrated_for_signed_in_user(self):
        self.store.saved_event_ids.return_value = {"e1"}

        data = self.client.get("/events", headers=AUTH).json()

        flags = {card["id"]: card["is_saved"] for card in data["events"]}
        self.assertTrue(flags["e1"])
        self.assertFalse(flags["e0"])

    def test_bad_token_is_401(self):
        response = self.client.get("/events", headers={"Authorization": "Bearer nope"})
        self.assertEqual(response.status_code, 401)

    def test_today_and_featured(self):
        self.assertEqual(len(self.client.get("/events/today").json()["events"]), 8)
        self.assertEqual(self.client.get("/events/featured").json()["events"][0]["id"], "f1")


class TestDetail(ApplicationTestCase):
    def test_detail(self):
        response = self.client.get("/events/G5vYZ9xLk1")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["details"]["date"], "Saturday 14 June 2025")

    def test_detail_not_found(self):
        self.ticketmaster.get_event_by_id.side_effect = EventNotFoundError("not found", status_code=404)

        response = self.client.get("/events/missing")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Event not found")

    def test_detail_failed_status_reads_as_not_found(self):
        self.ticketmaster.get_event_by_id.side_effect = EventNotFoundError("Event G5vYZ9xLk1 not found", status_code=503)
        self.assertEqual(self.client.get("/events/G5vYZ9xLk1").status_code, 404)

    def test_detail_transport_failure(self):
        self.ticketmaster.get_event_by_id.side_effect = EventFetchError("Failed to fetch event")
        self.assertEqual(self.client.get("/events/G5vYZ9xLk1").status_code, 502)

    def test_share(self):
        data = self.client.get("/events/G5vYZ9xLk1/share").json()
        self.assertEqual(data["text"], "Check out this event: Arctic Monkeys")
        self.assertTrue(data["url"].endswith("/event/G5vYZ9xLk1"))


class TestSaveAndDiscuss(ApplicationTestCase):
    def test_anonymous_save_prompts_sign_in_without_calls(self):
        response = self.client.post("/events/G5vYZ9xLk1/save")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"]["title"], "Sign in required")
        self.ticketmaster.get_event_by_id.assert_not_called()
        self.store.save_event.assert_not_called()
        self.store.is_event_saved.assert_not_called()

    def test_save(self):
        response = self.client.post("/events/G5vYZ9xLk1/save", headers=AUTH)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_saved"])
        self.store.save_event.assert_called_once()

    def test_toggle_unsaves_previously_saved_event(self):
        self.store.is_event_saved.return_value = True

        response = self.client.post("/events/G5vYZ9xLk1/save", headers=AUTH)

        self.assertEqual(response.json()["title"], "Event removed")
        self.store.delete_saved_event.assert_called_once_with("user-1", "G5vYZ9xLk1")

    def test_save_failure(self):
        self.store.save_event.side_effect = PersistenceError("Saving event failed")

        response = self.client.post("/events/G5vYZ9xLk1/save", headers=AUTH)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"]["description"], "Failed to save event")

    def test_save_with_unreadable_flag_is_500_without_write(self):
        self.store.is_event_saved.side_effect = PersistenceError("Loading saved state failed")

        response = self.client.post("/events/G5vYZ9xLk1/save", headers=AUTH)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"]["title"], "Error")
        self.store.save_event.assert_not_called()
        self.store.delete_saved_event.assert_not_called()

    def test_saved_state(self):
        self.store.saved_event_ids.return_value = {"G5vYZ9xLk1"}
        data = self.client.get("/events/G5vYZ9xLk1/saved", headers=AUTH).json()
        self.assertTrue(data["is_saved"])

    def test_post_and_list_discussion(self):
        self.store.add_discussion.return_value = DiscussionComment(
            id="c1", event_id="G5vYZ9xLk1", user_id="user-1", message="Anyone else going?"
        )
        self.store.list_discussions.return_value = [self.store.add_discussion.return_value]

        posted = self.client.post("/events/G5vYZ9xLk1/discussions", json={"message": "Anyone else going?"}, headers=AUTH)
        listed = self.client.get("/events/G5vYZ9xLk1/discussions")

        self.assertEqual(posted.status_code, 200)
        self.assertEqual(posted.json()["comment"]["id"], "c1")
        self.assertEqual(listed.json()[0]["message"], "Anyone else going?")

    def test_anonymous_comment(self):
        response = self.client.post("/events/G5vYZ9xLk1/discussions", json={"message": "hi"})
        self.assertEqual(response.status_code, 401)
        self.store.add_discussion.assert_not_called()

    def test_blank_comment(self):
        response = self.client.post("/events/G5vYZ9xLk1/discussions", json={"message": " "}, headers=AUTH)
        self.assertEqual(response.status_code, 422)

    def test_saved_events_requires_session(self):
        self.assertEqual(self.client.get("/saved_events").status_code, 401)

        self.store.list_saved_events.return_value = [
            SavedEvent(id="user-1_a", user_id="user-1", event_id="a", event_name="A")
        ]
        data = self.client.get("/saved_events", headers=AUTH).json()
        self.assertEqual(data[0]["event_id"], "a")


class TestShell(ApplicationTestCase):
    def test_filter_options(self):
        data = self.client.get("/filters/options").json()
        self.assertIn("Comedy", data["categories"])

    def test_navigation(self):
        self.assertFalse(self.client.get("/navigation").json()["signed_in"])
        data = self.client.get("/navigation", headers=AUTH).json()
        self.assertEqual(data["avatar_initial"], "F")

    def test_sign_out(self):
        response = self.client.post("/sign_out", headers=AUTH)

        self.assertEqual(response.status_code, 200)
        self.authenticator.sign_out.assert_called_once()


if __name__ == "__main__":
    unittest.main()
