"""Assembles the event detail page: details, discussion and attendees tabs plus the sidebar."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel

from .auth import Session
from .display import (
    build_event_card,
    format_event_date,
    format_event_time,
    format_price_range,
    genre_label,
    select_image_url,
    venue_details,
)
from .errors import EventFetchError, PersistenceError
from .firestore_store import FirestoreStore
from .models import DiscussionComment, Event, EventCard, VenueDetails
from .ticketmaster_client import TicketmasterClient

logger = logging.getLogger(__name__)

SIMILAR_EVENTS_LIMIT = 3

IMPORTANT_INFORMATION = [
    "Please arrive 30 minutes before the event",
    "Valid ID required for entry",
    "No outside food or beverages allowed",
    "Parking available on-site",
]


class EventDetails(BaseModel):
    about: str
    date: str
    time: str
    price: Optional[str] = None
    genre: str
    venue: Optional[VenueDetails] = None
    important_information: list[str]


class Attendees(BaseModel):
    count: int
    user_ids: list[str]


class EventDetailPage(BaseModel):
    id: str
    name: str
    image_url: str
    tickets_url: Optional[str] = None
    is_saved: bool = False
    details: EventDetails
    discussion: list[DiscussionComment]
    attendees: Attendees
    similar_events: list[EventCard]


def about_text(event: Event) -> str:
    if event.info:
        return event.info
    if event.please_note:
        return event.please_note
    genre = genre_label(event).lower()
    return (
        f"Join us for an amazing {genre} experience. "
        "This event promises to be unforgettable with great entertainment and atmosphere."
    )


def similar_events(client: TicketmasterClient, event: Event, limit: int = SIMILAR_EVENTS_LIMIT) -> list[Event]:
    """Upcoming events sharing the genre (else segment) in the same city."""
    classification = event.classifications[0] if event.classifications else None
    category = None
    if classification is not None:
        for ref in (classification.genre, classification.segment):
            if ref and ref.name and ref.name != "Undefined":
                category = ref.name
                break
    city = event.venue.city if event.venue else None
    if category is None and city is None:
        return []

    try:
        page = client.search_events(category=category, city=city, size=limit + 1)
    except EventFetchError as e:
        logger.warning("[detail] Similar events unavailable for %s: %s", event.id, e)
        return []
    return [other for other in page.events if other.id != event.id][:limit]


def _load_discussion(store: FirestoreStore, event_id: str) -> list[DiscussionComment]:
    try:
        return store.list_discussions(event_id)
    except PersistenceError as e:
        logger.warning("[detail] Discussion unavailable for %s: %s", event_id, e)
        return []


def _load_attendees(store: FirestoreStore, event_id: str) -> Attendees:
    try:
        user_ids = store.list_event_savers(event_id)
    except PersistenceError as e:
        logger.warning("[detail] Attendees unavailable for %s: %s", event_id, e)
        user_ids = []
    return Attendees(count=len(user_ids), user_ids=user_ids)


def _load_saved(store: FirestoreStore, session: Optional[Session], event_id: str) -> bool:
    if session is None:
        return False
    try:
        return store.is_event_saved(session.user_id, event_id)
    except PersistenceError as e:
        logger.warning("[detail] Saved state unavailable for %s: %s", event_id, e)
        return False


def build_detail_page(
    event: Event,
    discussion: list[DiscussionComment],
    attendees: Attendees,
    similar: list[Event],
    is_saved: bool = False,
) -> EventDetailPage:
    return EventDetailPage(
        id=event.id,
        name=event.name,
        image_url=select_image_url(event),
        tickets_url=event.url,
        is_saved=is_saved,
        details=EventDetails(
            about=about_text(event),
            date=format_event_date(event.local_date, long=True),
            time=format_event_time(event.local_time),
            price=format_price_range(event),
            genre=genre_label(event),
            venue=venue_details(event),
            important_information=list(IMPORTANT_INFORMATION),
        ),
        discussion=discussion,
        attendees=attendees,
        similar_events=[build_event_card(other) for other in similar],
    )


def load_event_detail(
    client: TicketmasterClient,
    store: FirestoreStore,
    event_id: str,
    session: Optional[Session] = None,
) -> EventDetailPage:
    """Fetch one event and everything its page shows.

    EventNotFoundError / EventFetchError from the event fetch propagate; the
    secondary panels (discussion, attendees, similar) degrade to empty.
    """
    event = client.get_event_by_id(event_id)
    return build_detail_page(
        event,
        discussion=_load_discussion(store, event.id),
        attendees=_load_attendees(store, event.id),
        similar=similar_events(client, event),
        is_saved=_load_saved(store, session, event.id),
    )
