"""Search orchestration for the home listing.

Two triggers drive fetching: ``mount()`` runs the unfiltered and "today"
queries straight away, and every filter change (re)arms a debounce timer so a
burst of keystrokes results in a single search. Each fetch is stamped with a
sequence number and only the response for the latest number is applied; a slow
reply to an older search is dropped instead of overwriting newer results.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

from .errors import EventFetchError
from .filters import FilterSelection, selection_to_query
from .models import Event
from .ticketmaster_client import TODAY_EVENTS_LIMIT, TicketmasterClient

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.5
LOAD_ERROR = "Failed to load events"


@dataclass
class SearchState:
    events: list[Event] = field(default_factory=list)
    today_events: list[Event] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None
    filters: FilterSelection = field(default_factory=FilterSelection)


class SearchOrchestrator:
    def __init__(
        self,
        client: TicketmasterClient,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.debounce_seconds = debounce_seconds
        self._timer_factory = timer_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._timer = None
        self._sequence = 0
        self._generation = 0
        self._state = SearchState()

    @property
    def state(self) -> SearchState:
        with self._lock:
            return replace(
                self._state,
                events=list(self._state.events),
                today_events=list(self._state.today_events),
            )

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    def mount(self) -> SearchState:
        """Initial load: unfiltered listing plus today's events."""
        self._run_search({})
        self._load_today()
        return self.state

    # -- filter changes ----------------------------------------------------

    def update_filters(self, selection: FilterSelection) -> None:
        with self._lock:
            self._state.filters = selection
            self._arm_timer()

    def change_filter(self, **changes: str) -> None:
        with self._lock:
            self._state.filters = self._state.filters.with_changes(**changes)
            self._arm_timer()

    def clear_filters(self) -> None:
        self.update_filters(FilterSelection())

    def flush(self) -> None:
        """Fire a pending debounce timer right now."""
        with self._lock:
            pending = self._timer is not None
            self._cancel_timer()
        if pending:
            self._search_current()

    def close(self) -> None:
        with self._lock:
            self._cancel_timer()

    def search_now(self, selection: Optional[FilterSelection] = None) -> SearchState:
        """Run a search for ``selection`` (or the current filters) without debouncing."""
        if selection is not None:
            with self._lock:
                self._state.filters = selection
        self._search_current()
        return self.state

    # -- internals ---------------------------------------------------------

    def _arm_timer(self) -> None:
        self._cancel_timer()
        timer = self._timer_factory(self.debounce_seconds, partial(self._on_timer, self._generation))
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _cancel_timer(self) -> None:
        # Timer.cancel() cannot stop a thread already past its wait; the
        # generation check in _on_timer does.
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._timer is None:
                logger.debug("[search] Ignoring superseded debounce timer (generation %d)", generation)
                return
            self._timer = None
        self._search_current()

    def _search_current(self) -> None:
        with self._lock:
            selection = self._state.filters
        if selection.is_empty():
            # Nothing selected: same query as the initial load.
            self._run_search({})
            return
        try:
            query = selection_to_query(selection, self._clock())
        except ValueError as e:
            logger.warning("[search] Ignoring invalid filters %s: %s", selection, e)
            with self._lock:
                self._state.error = str(e)
            return
        self._run_search(query)

    def _run_search(self, query: dict[str, str]) -> None:
        with self._lock:
            self._sequence += 1
            token = self._sequence
            self._state.loading = True
        logger.info("[search] #%d searching %s", token, query or "(unfiltered)")

        try:
            page = self.client.search_events(**query)
        except EventFetchError as e:
            logger.error("[search] #%d failed: %s", token, e)
            self._apply(token, [], LOAD_ERROR)
            return
        self._apply(token, page.events, None)

    def _apply(self, token: int, events: list[Event], error: Optional[str]) -> bool:
        with self._lock:
            if token != self._sequence:
                logger.info("[search] Discarding stale response #%d (latest #%d)", token, self._sequence)
                return False
            self._state.events = events
            self._state.error = error
            self._state.loading = False
            return True

    def _load_today(self) -> None:
        try:
            page = self.client.get_today_events()
        except EventFetchError as e:
            logger.error("[search] Error loading today events: %s", e)
            return
        with self._lock:
            self._state.today_events = page.events[:TODAY_EVENTS_LIMIT]
