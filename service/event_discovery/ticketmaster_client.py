"""Ticketmaster Discovery API client used by the event listing and detail pages."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import requests
from pydantic import ValidationError

from .config import Settings
from .errors import EventFetchError, EventNotFoundError
from .models import Event, EventPage, PageInfo

logger = logging.getLogger(__name__)

TICKETMASTER_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
TODAY_EVENTS_LIMIT = 6


def format_api_datetime(value: datetime) -> str:
    """Render a datetime the way the Discovery API expects (UTC, second precision)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TICKETMASTER_TIME_FORMAT)


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


class TicketmasterClient:
    """Thin wrapper over the /events endpoints.

    Constructed explicitly and handed to whatever needs it, so tests can pass a
    fake ``session`` (anything with a requests-compatible ``get``).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://app.ticketmaster.com/discovery/v2",
        country_code: str = "GB",
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
        clock=None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.country_code = country_code
        self.timeout = timeout
        self.session = session or requests.Session()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_settings(cls, settings: Settings) -> "TicketmasterClient":
        if not settings.ticketmaster_api_key:
            logger.warning("[ticketmaster] No API key configured, requests will be rejected")
        return cls(
            api_key=settings.ticketmaster_api_key,
            base_url=settings.ticketmaster_base_url,
            country_code=settings.ticketmaster_country_code,
            timeout=settings.ticketmaster_timeout,
        )

    # -- public operations -------------------------------------------------

    def search_events(
        self,
        keyword: Optional[str] = None,
        category: Optional[str] = None,
        city: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        page: int = 0,
        size: int = 20,
    ) -> EventPage:
        """Search events in the configured country, soonest first.

        Filters that are not supplied (or are blank) are left out of the query
        entirely rather than sent as empty strings.
        """
        params: dict[str, str] = {
            "apikey": self.api_key,
            "countryCode": self.country_code,
            "page": str(page),
            "size": str(size),
            "sort": "date,asc",
        }
        optional = {
            "keyword": keyword,
            "classificationName": category,
            "city": city,
            "startDateTime": start_date,
            "endDateTime": end_date,
        }
        for name, value in optional.items():
            if value and value.strip():
                params[name] = value.strip()

        data = self._get_json("/events.json", params, "Failed to fetch events")
        return self._parse_page(data)

    def get_event_by_id(self, event_id: str) -> Event:
        data = self._get_json(
            f"/events/{event_id}.json",
            {"apikey": self.api_key},
            "Failed to fetch event",
            not_found=f"Event {event_id} not found",
        )
        try:
            return Event.model_validate(data)
        except ValidationError as e:
            logger.error("[ticketmaster] Event %s failed validation: %s", event_id, e)
            raise EventFetchError("Failed to fetch event") from e

    def get_today_events(self) -> EventPage:
        today = _start_of_day(self._clock())
        tomorrow = today + timedelta(days=1)
        return self.search_events(
            start_date=format_api_datetime(today),
            end_date=format_api_datetime(tomorrow),
        )

    def get_featured_events(self, days_ahead: int = 30, size: int = TODAY_EVENTS_LIMIT) -> EventPage:
        now = self._clock().replace(microsecond=0)
        return self.search_events(
            start_date=format_api_datetime(now),
            end_date=format_api_datetime(now + timedelta(days=days_ahead)),
            size=size,
        )

    # -- internals ---------------------------------------------------------

    def _get_json(
        self,
        path: str,
        params: dict[str, str],
        failure_message: str,
        not_found: Optional[str] = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(
            "[ticketmaster] GET %s %s",
            url,
            {k: v for k, v in params.items() if k != "apikey"},
        )
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("[ticketmaster] Request error: %s", e)
            raise EventFetchError(failure_message) from e

        if not resp.ok and not_found:
            # Any failed lookup of a single resource reads as "not found"
            logger.warning("[ticketmaster] %s (status %s)", not_found, resp.status_code)
            raise EventNotFoundError(not_found, status_code=resp.status_code)
        if not resp.ok:
            logger.error("[ticketmaster] API returned %s for %s", resp.status_code, path)
            raise EventFetchError(failure_message, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            logger.error("[ticketmaster] Invalid JSON from %s: %s", path, e)
            raise EventFetchError(failure_message, status_code=resp.status_code) from e
        if not isinstance(data, dict):
            raise EventFetchError(failure_message, status_code=resp.status_code)
        return data

    def _parse_page(self, data: dict[str, Any]) -> EventPage:
        embedded = data.get("_embedded") or {}
        raw_events = (embedded.get("events") or []) if isinstance(embedded, dict) else []
        events: list[Event] = []
        for raw in raw_events:
            try:
                events.append(Event.model_validate(raw))
            except ValidationError as e:
                event_id = raw.get("id") if isinstance(raw, dict) else None
                logger.warning("[ticketmaster] Skipping malformed event %s: %s", event_id, e)

        try:
            next_href = ((data.get("_links") or {}).get("next") or {}).get("href")
            result = EventPage(
                events=events,
                page=PageInfo.model_validate(data.get("page") or {}),
                next_href=next_href,
            )
        except (ValidationError, AttributeError) as e:
            logger.error("[ticketmaster] Malformed page metadata: %s", e)
            raise EventFetchError("Failed to fetch events") from e
        logger.info("[ticketmaster] Fetched %d events (page %d)", len(events), result.page.number)
        return result
