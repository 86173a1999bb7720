"""Filter selection for the event listing and its mapping onto search parameters."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from .ticketmaster_client import format_api_datetime

CATEGORIES = [
    "Music",
    "Sports",
    "Arts & Theatre",
    "Comedy",
    "Family",
    "Film",
    "Miscellaneous",
]

CITIES = [
    "London",
    "Manchester",
    "Birmingham",
    "Leeds",
    "Glasgow",
    "Liverpool",
    "Bristol",
    "Sheffield",
    "Edinburgh",
    "Newcastle",
]

DATE_RANGES: dict[str, str] = {
    "today": "Today",
    "tomorrow": "Tomorrow",
    "this-week": "This Week",
    "this-weekend": "This Weekend",
    "next-week": "Next Week",
    "this-month": "This Month",
    "next-month": "Next Month",
}


@dataclass(frozen=True)
class FilterSelection:
    search: str = ""
    category: str = ""
    city: str = ""
    date_range: str = ""

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name).strip() for f in fields(self))

    def with_changes(self, **changes: str) -> "FilterSelection":
        return replace(self, **{k: v or "" for k, v in changes.items()})

    def cleared(self) -> "FilterSelection":
        return FilterSelection()

    def active_badges(self) -> list[dict[str, str]]:
        """Badges shown under the search bar; the free-text search is not one of them."""
        badges = []
        if self.category:
            badges.append({"key": "category", "label": self.category})
        if self.city:
            badges.append({"key": "city", "label": self.city})
        if self.date_range:
            badges.append({"key": "date_range", "label": DATE_RANGES.get(self.date_range, self.date_range)})
        return badges


def _first_of_next_month(day: datetime) -> datetime:
    if day.month == 12:
        return day.replace(year=day.year + 1, month=1, day=1)
    return day.replace(month=day.month + 1, day=1)


def date_range_window(bucket: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Return the ``[start, end)`` UTC window for a named date bucket."""
    now = now or datetime.now(timezone.utc)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    next_monday = today + timedelta(days=7 - today.weekday())

    if bucket == "today":
        return today, today + timedelta(days=1)
    if bucket == "tomorrow":
        return today + timedelta(days=1), today + timedelta(days=2)
    if bucket == "this-week":
        return today, next_monday
    if bucket == "this-weekend":
        saturday = today + timedelta(days=max(5 - today.weekday(), 0))
        return saturday, next_monday
    if bucket == "next-week":
        return next_monday, next_monday + timedelta(days=7)
    if bucket == "this-month":
        return today, _first_of_next_month(today)
    if bucket == "next-month":
        start = _first_of_next_month(today)
        return start, _first_of_next_month(start)
    raise ValueError(f"Unknown date range: {bucket!r}")


def _canonical(value: str, allowed: list[str], label: str) -> str:
    for option in allowed:
        if option.lower() == value.lower():
            return option
    raise ValueError(f"Unknown {label}: {value!r}")


def selection_to_query(selection: FilterSelection, now: Optional[datetime] = None) -> dict[str, str]:
    """Map a selection onto ``TicketmasterClient.search_events`` keyword arguments.

    Only populated filters are included, so an empty selection yields ``{}``,
    the same call the initial unfiltered load makes.
    """
    query: dict[str, str] = {}
    search = selection.search.strip()
    if search:
        query["keyword"] = search
    if selection.category.strip():
        query["category"] = _canonical(selection.category.strip(), CATEGORIES, "category")
    if selection.city.strip():
        query["city"] = _canonical(selection.city.strip(), CITIES, "city")
    if selection.date_range.strip():
        start, end = date_range_window(selection.date_range.strip(), now)
        query["start_date"] = format_api_datetime(start)
        query["end_date"] = format_api_datetime(end)
    return query


def filter_options() -> dict[str, list]:
    return {
        "categories": list(CATEGORIES),
        "cities": list(CITIES),
        "date_ranges": [{"value": k, "label": v} for k, v in DATE_RANGES.items()],
    }
