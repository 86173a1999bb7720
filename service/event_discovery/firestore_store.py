"""Firestore persistence for saved events, discussions and user profiles."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .config import Settings
from .errors import PersistenceError
from .models import DiscussionComment, SavedEvent, UserProfile

logger = logging.getLogger(__name__)

USER_PROFILES_COLLECTION = "user_profiles"
SAVED_EVENTS_COLLECTION = "saved_events"
EVENT_DISCUSSIONS_COLLECTION = "event_discussions"


def saved_event_doc_id(user_id: str, event_id: str) -> str:
    """One document per (user, event) pair, so saving twice can never duplicate."""
    return f"{user_id}_{event_id}"


def initialize_firebase_if_needed(project_id: Optional[str] = None, service_account_path: Optional[str] = None) -> None:
    if firebase_admin._apps:  # type: ignore[attr-defined]
        return
    options = {"projectId": project_id} if project_id else None
    if service_account_path and os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        firebase_admin.initialize_app(cred, options)
    else:
        # Fallback to Application Default Credentials if available
        firebase_admin.initialize_app(options=options)


@contextmanager
def _firestore_call(action: str):
    try:
        yield
    except PersistenceError:
        raise
    except Exception as e:
        logger.error("[firestore] %s failed: %s", action, e)
        raise PersistenceError(f"{action} failed") from e


class FirestoreStore:
    """Pass-through to Firestore; the only logic here is the row shape.

    Pass ``db`` to use an existing client (tests pass a MagicMock). Without it
    Firebase is initialised lazily on first use.
    """

    def __init__(self, db=None, project_id: Optional[str] = None, service_account_path: Optional[str] = None):
        self._db = db
        self.project_id = project_id
        self.service_account_path = service_account_path

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreStore":
        return cls(
            project_id=settings.firebase_project_id,
            service_account_path=settings.firebase_service_account_path,
        )

    @property
    def db(self):
        if self._db is None:
            with _firestore_call("Firestore initialisation"):
                initialize_firebase_if_needed(self.project_id, self.service_account_path)
                self._db = firestore.client()
        return self._db

    # -- saved events ------------------------------------------------------

    def save_event(
        self,
        user_id: str,
        event_id: str,
        event_name: str,
        event_date: Optional[str] = None,
        venue_name: Optional[str] = None,
    ) -> SavedEvent:
        doc_id = saved_event_doc_id(user_id, event_id)
        row = SavedEvent(
            id=doc_id,
            user_id=user_id,
            event_id=event_id,
            event_name=event_name,
            event_date=event_date,
            venue_name=venue_name,
        )
        with _firestore_call("Saving event"):
            self.db.collection(SAVED_EVENTS_COLLECTION).document(doc_id).set(row.model_dump(exclude={"id"}))
        logger.info("[firestore] Saved event %s for %s", event_id, user_id)
        return row

    def delete_saved_event(self, user_id: str, event_id: str) -> None:
        with _firestore_call("Removing saved event"):
            self.db.collection(SAVED_EVENTS_COLLECTION).document(saved_event_doc_id(user_id, event_id)).delete()
        logger.info("[firestore] Removed saved event %s for %s", event_id, user_id)

    def is_event_saved(self, user_id: str, event_id: str) -> bool:
        with _firestore_call("Loading saved state"):
            doc = self.db.collection(SAVED_EVENTS_COLLECTION).document(saved_event_doc_id(user_id, event_id)).get()
            return bool(doc.exists)

    def saved_event_ids(self, user_id: str, event_ids: Iterable[str]) -> set[str]:
        """Batch lookup of which of ``event_ids`` the user has saved."""
        event_ids = list(dict.fromkeys(event_ids))
        if not event_ids:
            return set()
        coll = self.db.collection(SAVED_EVENTS_COLLECTION)
        with _firestore_call("Loading saved states"):
            refs = [coll.document(saved_event_doc_id(user_id, eid)) for eid in event_ids]
            saved = set()
            for snapshot in self.db.get_all(refs):
                if snapshot.exists:
                    saved.add(snapshot.to_dict().get("event_id"))
        return saved

    def list_saved_events(self, user_id: str) -> list[SavedEvent]:
        with _firestore_call("Listing saved events"):
            docs = (
                self.db.collection(SAVED_EVENTS_COLLECTION)
                .where(filter=FieldFilter("user_id", "==", user_id))
                .stream()
            )
            rows = [SavedEvent(id=doc.id, **doc.to_dict()) for doc in docs]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows

    def list_event_savers(self, event_id: str) -> list[str]:
        with _firestore_call("Listing attendees"):
            docs = (
                self.db.collection(SAVED_EVENTS_COLLECTION)
                .where(filter=FieldFilter("event_id", "==", event_id))
                .stream()
            )
            return [doc.to_dict().get("user_id") for doc in docs]

    # -- discussions -------------------------------------------------------

    def add_discussion(self, event_id: str, user_id: str, message: str) -> DiscussionComment:
        comment = DiscussionComment(event_id=event_id, user_id=user_id, message=message)
        with _firestore_call("Posting comment"):
            ref = self.db.collection(EVENT_DISCUSSIONS_COLLECTION).document()
            ref.set(comment.model_dump(exclude={"id"}))
        comment.id = ref.id
        logger.info("[firestore] Comment %s posted on %s", ref.id, event_id)
        return comment

    def list_discussions(self, event_id: str) -> list[DiscussionComment]:
        with _firestore_call("Loading discussion"):
            docs = (
                self.db.collection(EVENT_DISCUSSIONS_COLLECTION)
                .where(filter=FieldFilter("event_id", "==", event_id))
                .stream()
            )
            comments = [DiscussionComment(id=doc.id, **doc.to_dict()) for doc in docs]
        comments.sort(key=lambda c: c.created_at)
        return comments

    # -- profiles ----------------------------------------------------------

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        with _firestore_call("Loading profile"):
            doc = self.db.collection(USER_PROFILES_COLLECTION).document(user_id).get()
            if not doc.exists:
                return None
            return UserProfile(id=doc.id, **doc.to_dict())

    def upsert_user_profile(self, profile: UserProfile) -> UserProfile:
        profile = profile.model_copy(update={"updated_at": datetime.now(timezone.utc).isoformat()})
        with _firestore_call("Saving profile"):
            self.db.collection(USER_PROFILES_COLLECTION).document(profile.user_id).set(
                profile.model_dump(exclude={"id"}), merge=True
            )
        return profile.model_copy(update={"id": profile.user_id})
