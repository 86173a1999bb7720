"""Firebase Auth sessions and the session-aware navigation menu.

Sign-in and sign-up happen in the hosted Firebase UI widget on the front end;
this side only verifies the ID token the widget hands out and revokes it on
sign-out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote

from firebase_admin import auth as firebase_auth
from firebase_admin.exceptions import FirebaseError
from pydantic import BaseModel

from .errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    user_id: str
    email: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def initials(self) -> str:
        return self.email[0].upper() if self.email else "?"

    @property
    def display_name(self) -> str:
        return self.metadata.get("name") or self.email or self.user_id


class FirebaseAuthenticator:
    def __init__(self, app=None, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked

    def verify_token(self, token: str) -> Session:
        try:
            decoded = firebase_auth.verify_id_token(token, app=self.app, check_revoked=self.check_revoked)
        except (ValueError, FirebaseError) as e:
            logger.warning("[auth] Rejected ID token: %s", e)
            raise AuthError(f"Invalid ID token: {e}") from e

        uid = decoded.get("uid") or decoded.get("sub")
        if not uid:
            raise AuthError("ID token has no subject")
        metadata = {k: decoded[k] for k in ("name", "picture", "email_verified", "auth_time") if k in decoded}
        return Session(user_id=uid, email=decoded.get("email"), metadata=metadata)

    def session_from_header(self, authorization: Optional[str]) -> Optional[Session]:
        """``None`` for anonymous requests; AuthError for a bad header or token."""
        if not authorization:
            return None
        if not authorization.lower().startswith("bearer "):
            raise AuthError("Missing or invalid Authorization header")
        token = authorization.split(" ", 1)[1].strip()
        if not token:
            raise AuthError("Missing or invalid Authorization header")
        return self.verify_token(token)

    def sign_out(self, session: Session) -> None:
        try:
            firebase_auth.revoke_refresh_tokens(session.user_id, app=self.app)
        except (ValueError, FirebaseError) as e:
            logger.error("[auth] Could not revoke tokens for %s: %s", session.user_id, e)
            raise AuthError("Failed to sign out") from e
        logger.info("[auth] Signed out %s", session.user_id)


class NavLink(BaseModel):
    label: str
    href: str


class NavMenu(BaseModel):
    signed_in: bool
    links: list[NavLink]
    avatar_initial: Optional[str] = None
    display_name: Optional[str] = None
    search_placeholder: str = "Search events..."


def navigation_menu(session: Optional[Session]) -> NavMenu:
    if session is None:
        return NavMenu(
            signed_in=False,
            links=[
                NavLink(label="Home", href="/"),
                NavLink(label="Sign in", href="/login"),
                NavLink(label="Sign up", href="/signup"),
            ],
        )
    return NavMenu(
        signed_in=True,
        links=[
            NavLink(label="Home", href="/"),
            NavLink(label="Saved events", href="/saved"),
            NavLink(label="Profile", href="/profile"),
            NavLink(label="Settings", href="/settings"),
            NavLink(label="Sign out", href="/sign_out"),
        ],
        avatar_initial=session.initials,
        display_name=session.display_name,
    )


def search_path(query: str) -> Optional[str]:
    """Target of the navbar search box; blank queries go nowhere."""
    if not query or not query.strip():
        return None
    return f"/search?q={quote(query, safe='')}"
