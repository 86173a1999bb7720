"""Schemas for Ticketmaster events, Firestore rows and the views built from them.

Ticketmaster responses are full of optional, deeply nested fields. Everything
is validated here, at the API boundary, so the rest of the code can read
``event.venue.city`` without guarding every level. Nulls are treated the same
as missing keys and fall back to the field default.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


# ---------------------------------------------------------------------------
# Ticketmaster event record
# ---------------------------------------------------------------------------

class NamedRef(_Schema):
    id: Optional[str] = None
    name: Optional[str] = None


class EventImage(_Schema):
    ratio: Optional[str] = None
    url: Optional[str] = None
    width: int = 0
    height: int = 0
    fallback: bool = False


class Classification(_Schema):
    primary: bool = False
    segment: Optional[NamedRef] = None
    genre: Optional[NamedRef] = None
    sub_genre: Optional[NamedRef] = Field(default=None, alias="subGenre")


class PriceRange(_Schema):
    type: Optional[str] = None
    currency: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None


class EventStart(_Schema):
    local_date: Optional[str] = Field(default=None, alias="localDate")
    local_time: Optional[str] = Field(default=None, alias="localTime")
    date_time: Optional[str] = Field(default=None, alias="dateTime")
    date_tbd: bool = Field(default=False, alias="dateTBD")
    date_tba: bool = Field(default=False, alias="dateTBA")
    time_tba: bool = Field(default=False, alias="timeTBA")
    no_specific_time: bool = Field(default=False, alias="noSpecificTime")


class EventDates(_Schema):
    start: EventStart = Field(default_factory=EventStart)
    timezone: Optional[str] = None
    status: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _status_code(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("status"), dict):
            data = {**data, "status": data["status"].get("code")}
        return data


def _to_float(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class Venue(_Schema):
    id: Optional[str] = None
    name: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, data: Any) -> Any:
        """Flatten Ticketmaster's nested venue shape into plain fields."""
        if not isinstance(data, dict):
            return data
        flat = dict(data)
        city = data.get("city")
        if isinstance(city, dict):
            flat["city"] = city.get("name")
        country = data.get("country")
        if isinstance(country, dict):
            flat["country"] = country.get("name")
            flat.setdefault("country_code", country.get("countryCode"))
        address = data.get("address")
        if isinstance(address, dict):
            flat["address"] = address.get("line1")
        location = data.get("location")
        if isinstance(location, dict):
            flat["latitude"] = _to_float(location.get("latitude"))
            flat["longitude"] = _to_float(location.get("longitude"))
        return flat


class Event(_Schema):
    id: str
    name: str = "Untitled event"
    url: Optional[str] = None
    images: list[EventImage] = Field(default_factory=list)
    classifications: list[Classification] = Field(default_factory=list)
    price_ranges: list[PriceRange] = Field(default_factory=list, alias="priceRanges")
    dates: EventDates = Field(default_factory=EventDates)
    info: Optional[str] = None
    please_note: Optional[str] = Field(default=None, alias="pleaseNote")
    venues: list[Venue] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _embedded_venues(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("_embedded"), dict):
            data = {**data, "venues": data["_embedded"].get("venues") or []}
        return data

    @property
    def venue(self) -> Optional[Venue]:
        return self.venues[0] if self.venues else None

    @property
    def local_date(self) -> Optional[str]:
        return self.dates.start.local_date

    @property
    def local_time(self) -> Optional[str]:
        return self.dates.start.local_time


class PageInfo(_Schema):
    size: int = 0
    total_elements: int = Field(default=0, alias="totalElements")
    total_pages: int = Field(default=0, alias="totalPages")
    number: int = 0


class EventPage(BaseModel):
    events: list[Event] = Field(default_factory=list)
    page: PageInfo = Field(default_factory=PageInfo)
    next_href: Optional[str] = None


# ---------------------------------------------------------------------------
# Firestore rows
# ---------------------------------------------------------------------------

class UserProfile(BaseModel):
    id: Optional[str] = None
    user_id: str
    username: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class SavedEvent(BaseModel):
    id: Optional[str] = None
    user_id: str
    event_id: str
    event_name: str
    event_date: Optional[str] = None
    venue_name: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)


class DiscussionComment(BaseModel):
    id: Optional[str] = None
    event_id: str
    user_id: str
    message: str
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


# ---------------------------------------------------------------------------
# View models returned to the front end
# ---------------------------------------------------------------------------

class EventCard(BaseModel):
    id: str
    name: str
    image_url: str
    genre: str
    date: str
    time: Optional[str] = None
    venue: Optional[str] = None
    price: Optional[str] = None
    tickets_url: Optional[str] = None
    detail_path: str
    is_saved: bool = False


class VenueDetails(BaseModel):
    name: Optional[str] = None
    address: Optional[str] = None
    locality: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class SharePayload(BaseModel):
    title: str
    text: str
    url: str


class ActionResult(BaseModel):
    """Outcome of a user action, carrying the toast the front end should show."""

    ok: bool
    title: str
    description: str
    variant: str = "default"
    is_saved: Optional[bool] = None
