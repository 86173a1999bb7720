"""Save / unsave toggle and the discussion board."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .auth import Session
from .errors import PersistenceError
from .firestore_store import FirestoreStore
from .models import ActionResult, DiscussionComment, Event

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def sign_in_prompt(action: str) -> ActionResult:
    return ActionResult(
        ok=False,
        title="Sign in required",
        description=f"Please sign in to {action}",
        variant="destructive",
    )


class SaveToggle:
    """Heart button state for one event card.

    ``busy`` stays set for the whole round trip; a second toggle while busy is
    rejected rather than queued.
    """

    def __init__(self, store: FirestoreStore, event: Event, session: Optional[Session] = None):
        self.store = store
        self.event = event
        self.session = session
        self.is_saved = False
        self.busy = False
        # Set when the last hydrate() could not read the stored flag
        self.state_unknown = False

    def hydrate(self) -> bool:
        if self.session is None:
            return self.is_saved
        try:
            self.is_saved = self.store.is_event_saved(self.session.user_id, self.event.id)
            self.state_unknown = False
        except PersistenceError as e:
            logger.warning("[saved] Could not load saved state for %s: %s", self.event.id, e)
            self.state_unknown = True
        return self.is_saved

    def toggle(self) -> ActionResult:
        if self.session is None:
            return sign_in_prompt("save events")
        if self.busy:
            return ActionResult(ok=False, title="Please wait", description="Still updating this event",
                                is_saved=self.is_saved)

        self.busy = True
        try:
            if self.state_unknown:
                # Re-read a flag hydrate() could not load before writing
                self.is_saved = self.store.is_event_saved(self.session.user_id, self.event.id)
                self.state_unknown = False
            if self.is_saved:
                self.store.delete_saved_event(self.session.user_id, self.event.id)
                self.is_saved = False
                return ActionResult(ok=True, title="Event removed",
                                    description="Event removed from your saved list", is_saved=False)

            venue = self.event.venue
            self.store.save_event(
                user_id=self.session.user_id,
                event_id=self.event.id,
                event_name=self.event.name,
                event_date=self.event.local_date,
                venue_name=venue.name if venue else None,
            )
            self.is_saved = True
            return ActionResult(ok=True, title="Event saved!", description="Added to your saved events",
                                is_saved=True)
        except PersistenceError as e:
            logger.error("[saved] Error saving event %s: %s", self.event.id, e)
            return ActionResult(ok=False, title="Error", description="Failed to save event",
                                variant="destructive", is_saved=self.is_saved)
        finally:
            self.busy = False


def hydrate_saved_flags(store: FirestoreStore, session: Optional[Session], events: Iterable[Event]) -> dict[str, bool]:
    """Saved flag per event id, loaded in one batch. Anonymous users get all False."""
    events = list(events)
    flags = {event.id: False for event in events}
    if session is None or not events:
        return flags
    try:
        saved = store.saved_event_ids(session.user_id, flags.keys())
    except PersistenceError as e:
        logger.warning("[saved] Could not hydrate saved flags: %s", e)
        return flags
    for event_id in saved:
        if event_id in flags:
            flags[event_id] = True
    return flags


class DiscussionBoard:
    def __init__(self, store: FirestoreStore, event_id: str):
        self.store = store
        self.event_id = event_id

    def comments(self) -> list[DiscussionComment]:
        return self.store.list_discussions(self.event_id)

    def post(self, session: Optional[Session], message: str) -> tuple[ActionResult, Optional[DiscussionComment]]:
        if session is None:
            return sign_in_prompt("join the discussion"), None
        message = (message or "").strip()
        if not message:
            return ActionResult(ok=False, title="Empty comment", description="Write something before posting",
                                variant="destructive"), None
        if len(message) > MAX_COMMENT_LENGTH:
            return ActionResult(
                ok=False,
                title="Comment too long",
                description=f"Comments are limited to {MAX_COMMENT_LENGTH} characters",
                variant="destructive",
            ), None
        try:
            comment = self.store.add_discussion(self.event_id, session.user_id, message)
        except PersistenceError as e:
            logger.error("[discussion] Error posting on %s: %s", self.event_id, e)
            return ActionResult(ok=False, title="Error", description="Failed to post comment",
                                variant="destructive"), None
        return ActionResult(ok=True, title="Comment posted", description="Your comment is live"), comment
