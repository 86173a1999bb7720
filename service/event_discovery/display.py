"""Display values derived from a Ticketmaster event.

Every function here is total: optional fields that are missing (price, venue,
local time, images) degrade to a placeholder or ``None``, never an exception.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from .models import Event, EventCard, PriceRange, SharePayload, VenueDetails

PLACEHOLDER_IMAGE = "/placeholder.svg"
WIDE_RATIO = "16_9"
MIN_HERO_WIDTH = 1024
FALLBACK_GENRE = "Event"
DATE_TBA = "Date TBA"
TIME_TBA = "Time TBA"

CURRENCY_SYMBOLS = {"GBP": "£", "EUR": "€", "USD": "$"}

_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def _normalise_ratio(ratio: Optional[str]) -> str:
    return (ratio or "").replace(":", "_")


def select_image_url(event: Event) -> str:
    """Pick the hero image: wide and large, then any wide one, then the first."""
    images = event.images
    wide = [img for img in images if _normalise_ratio(img.ratio) == WIDE_RATIO]
    chosen = next((img for img in wide if img.width >= MIN_HERO_WIDTH), None)
    if chosen is None and wide:
        chosen = wide[0]
    if chosen is None and images:
        chosen = images[0]
    if chosen is None or not chosen.url:
        return PLACEHOLDER_IMAGE
    return chosen.url


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def _currency_prefix(currency: Optional[str]) -> str:
    if not currency:
        return "£"
    code = currency.upper()
    return CURRENCY_SYMBOLS.get(code, f"{code} ")


def format_price(price: PriceRange) -> Optional[str]:
    low, high = price.min, price.max
    if low is None and high is None:
        return None
    prefix = _currency_prefix(price.currency)
    if low is None or high is None or low == high:
        single = low if low is not None else high
        return f"{prefix}{_format_amount(single)}"
    return f"{prefix}{_format_amount(low)} - {prefix}{_format_amount(high)}"


def format_price_range(event: Event) -> Optional[str]:
    if not event.price_ranges:
        return None
    return format_price(event.price_ranges[0])


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def format_event_date(local_date: Optional[str], long: bool = False) -> str:
    """en-GB date: ``Sat 14 Jun 2025`` on cards, ``Saturday 14 June 2025`` on the detail page."""
    parsed = _parse_date(local_date)
    if parsed is None:
        return DATE_TBA
    weekday = _DAYS[parsed.weekday()]
    month = _MONTHS[parsed.month - 1]
    if not long:
        weekday, month = weekday[:3], month[:3]
    return f"{weekday} {parsed.day} {month} {parsed.year}"


def format_event_time(local_time: Optional[str]) -> str:
    if not local_time:
        return TIME_TBA
    for fmt in ("%H:%M:%S", "%H:%M"):
        try:
            return datetime.strptime(local_time, fmt).strftime("%H:%M")
        except ValueError:
            continue
    return TIME_TBA


def genre_label(event: Event) -> str:
    if event.classifications:
        genre = event.classifications[0].genre
        if genre and genre.name and genre.name != "Undefined":
            return genre.name
    return FALLBACK_GENRE


def venue_line(event: Event) -> Optional[str]:
    venue = event.venue
    if venue is None:
        return None
    parts = [p for p in (venue.name, venue.city) if p]
    return ", ".join(parts) or None


def venue_details(event: Event) -> Optional[VenueDetails]:
    venue = event.venue
    if venue is None:
        return None
    locality = ", ".join(p for p in (venue.city, venue.country) if p) or None
    return VenueDetails(
        name=venue.name,
        address=venue.address,
        locality=locality,
        latitude=venue.latitude,
        longitude=venue.longitude,
    )


def build_event_card(event: Event, is_saved: bool = False) -> EventCard:
    return EventCard(
        id=event.id,
        name=event.name,
        image_url=select_image_url(event),
        genre=genre_label(event),
        date=format_event_date(event.local_date),
        time=format_event_time(event.local_time) if event.local_time else None,
        venue=venue_line(event),
        price=format_price_range(event),
        tickets_url=event.url,
        detail_path=f"/event/{event.id}",
        is_saved=is_saved,
    )


def build_share_payload(event: Event, page_url: str) -> SharePayload:
    return SharePayload(
        title=event.name,
        text=f"Check out this event: {event.name}",
        url=page_url,
    )
