import logging
import os
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from pydantic import BaseModel
from starlette.middleware.base import BaseHTTPMiddleware

from service.event_discovery.auth import FirebaseAuthenticator, NavMenu, Session, navigation_menu
from service.event_discovery.config import Settings, configure_logging, load_settings
from service.event_discovery.display import build_event_card, build_share_payload
from service.event_discovery.errors import AuthError, EventFetchError, EventNotFoundError, PersistenceError
from service.event_discovery.event_detail import EventDetailPage, load_event_detail
from service.event_discovery.filters import FilterSelection, filter_options, selection_to_query
from service.event_discovery.firestore_store import FirestoreStore
from service.event_discovery.models import (
    ActionResult,
    DiscussionComment,
    Event,
    EventCard,
    SavedEvent,
    SharePayload,
)
from service.event_discovery.saved_events import DiscussionBoard, SaveToggle, hydrate_saved_flags, sign_in_prompt
from service.event_discovery.search import LOAD_ERROR, SearchOrchestrator
from service.event_discovery.ticketmaster_client import TicketmasterClient

logger = logging.getLogger(__name__)

HOME_EVENTS_LIMIT = 9


class SimpleLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        method = request.method
        try:
            response = await call_next(request)
            logger.info("%s %s -> %s", method, path, response.status_code)
            return response
        except Exception as e:
            logger.error("%s %s -> error: %s", method, path, e)
            raise


class HomeResponse(BaseModel):
    events: List[EventCard]
    today_events: List[EventCard]
    error: Optional[str] = None


class EventListResponse(BaseModel):
    events: List[EventCard]
    total_elements: int = 0
    page: int = 0
    total_pages: int = 0
    active_filters: List[dict] = []
    error: Optional[str] = None


class CommentRequest(BaseModel):
    message: str


class CommentResponse(BaseModel):
    result: ActionResult
    comment: Optional[DiscussionComment] = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_ticketmaster(request: Request) -> TicketmasterClient:
    return request.app.state.ticketmaster


def get_store(request: Request) -> FirestoreStore:
    return request.app.state.store


def get_session(request: Request, authorization: Optional[str] = Header(default=None)) -> Optional[Session]:
    try:
        return request.app.state.authenticator.session_from_header(authorization)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))


def require_session(session: Optional[Session] = Depends(get_session)) -> Session:
    if session is None:
        raise HTTPException(status_code=401, detail=sign_in_prompt("continue").model_dump())
    return session


def _cards(store: FirestoreStore, session: Optional[Session], events: List[Event]) -> List[EventCard]:
    flags = hydrate_saved_flags(store, session, events)
    return [build_event_card(event, is_saved=flags.get(event.id, False)) for event in events]


def _fetch_event(client: TicketmasterClient, event_id: str) -> Event:
    try:
        return client.get_event_by_id(event_id)
    except EventNotFoundError:
        raise HTTPException(status_code=404, detail="Event not found")
    except EventFetchError:
        raise HTTPException(status_code=502, detail="Failed to load event details")


def _listing(store, session, fetch, active_filters=None) -> EventListResponse:
    try:
        page = fetch()
    except EventFetchError as e:
        logger.error("Error loading events: %s", e)
        return EventListResponse(events=[], active_filters=active_filters or [], error=LOAD_ERROR)
    return EventListResponse(
        events=_cards(store, session, page.events),
        total_elements=page.page.total_elements,
        page=page.page.number,
        total_pages=page.page.total_pages,
        active_filters=active_filters or [],
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    ticketmaster: Optional[TicketmasterClient] = None,
    store: Optional[FirestoreStore] = None,
    authenticator: Optional[FirebaseAuthenticator] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Qiktix UK", version="1.0.0")
    app.add_middleware(SimpleLoggingMiddleware)
    app.state.settings = settings
    app.state.ticketmaster = ticketmaster or TicketmasterClient.from_settings(settings)
    app.state.store = store or FirestoreStore.from_settings(settings)
    app.state.authenticator = authenticator or FirebaseAuthenticator()

    @app.get("/")
    def health():
        return {"status": "ok", "service": "qiktix"}

    @app.get("/home", response_model=HomeResponse)
    def home(
        request: Request,
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        orchestrator = SearchOrchestrator(client, debounce_seconds=request.app.state.settings.search_debounce_seconds)
        state = orchestrator.mount()
        events = state.events[:HOME_EVENTS_LIMIT]
        return HomeResponse(
            events=_cards(store, session, events),
            today_events=_cards(store, session, state.today_events),
            error=state.error,
        )

    @app.get("/events", response_model=EventListResponse)
    def list_events(
        search: str = "",
        category: str = "",
        city: str = "",
        date_range: str = "",
        page: int = Query(default=0, ge=0),
        size: int = Query(default=20, ge=1, le=200),
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        selection = FilterSelection(search=search, category=category, city=city, date_range=date_range)
        try:
            query = selection_to_query(selection)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return _listing(
            store,
            session,
            lambda: client.search_events(**query, page=page, size=size),
            selection.active_badges(),
        )

    @app.get("/events/today", response_model=EventListResponse)
    def today_events(
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        return _listing(store, session, client.get_today_events)

    @app.get("/events/featured", response_model=EventListResponse)
    def featured_events(
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        return _listing(store, session, client.get_featured_events)

    @app.get("/events/{event_id}", response_model=EventDetailPage)
    def event_detail(
        event_id: str,
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        try:
            return load_event_detail(client, store, event_id, session)
        except EventNotFoundError:
            raise HTTPException(status_code=404, detail="Event not found")
        except EventFetchError:
            raise HTTPException(status_code=502, detail="Failed to load event details")

    @app.get("/events/{event_id}/share", response_model=SharePayload)
    def share_event(
        event_id: str,
        request: Request,
        client: TicketmasterClient = Depends(get_ticketmaster),
    ):
        event = _fetch_event(client, event_id)
        page_url = str(request.base_url).rstrip("/") + f"/event/{event.id}"
        return build_share_payload(event, page_url)

    @app.get("/events/{event_id}/saved")
    def saved_state(
        event_id: str,
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        flags = hydrate_saved_flags(store, session, [Event(id=event_id)])
        return {"event_id": event_id, "is_saved": flags[event_id]}

    @app.post("/events/{event_id}/save", response_model=ActionResult)
    def toggle_save(
        event_id: str,
        client: TicketmasterClient = Depends(get_ticketmaster),
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        if session is None:
            raise HTTPException(status_code=401, detail=sign_in_prompt("save events").model_dump())
        event = _fetch_event(client, event_id)
        toggle = SaveToggle(store, event, session)
        toggle.hydrate()
        result = toggle.toggle()
        if not result.ok:
            raise HTTPException(status_code=500, detail=result.model_dump())
        return result

    @app.get("/events/{event_id}/discussions", response_model=List[DiscussionComment])
    def list_discussions(event_id: str, store: FirestoreStore = Depends(get_store)):
        try:
            return DiscussionBoard(store, event_id).comments()
        except PersistenceError:
            raise HTTPException(status_code=502, detail="Failed to load discussion")

    @app.post("/events/{event_id}/discussions", response_model=CommentResponse)
    def post_discussion(
        event_id: str,
        body: CommentRequest,
        store: FirestoreStore = Depends(get_store),
        session: Optional[Session] = Depends(get_session),
    ):
        result, comment = DiscussionBoard(store, event_id).post(session, body.message)
        if session is None:
            raise HTTPException(status_code=401, detail=result.model_dump())
        if comment is None:
            status = 500 if result.title == "Error" else 422
            raise HTTPException(status_code=status, detail=result.model_dump())
        return CommentResponse(result=result, comment=comment)

    @app.get("/saved_events", response_model=List[SavedEvent])
    def saved_events(
        store: FirestoreStore = Depends(get_store),
        session: Session = Depends(require_session),
    ):
        try:
            return store.list_saved_events(session.user_id)
        except PersistenceError:
            raise HTTPException(status_code=502, detail="Failed to load saved events")

    @app.get("/filters/options")
    def filters_options():
        return filter_options()

    @app.get("/navigation", response_model=NavMenu)
    def navigation(session: Optional[Session] = Depends(get_session)):
        return navigation_menu(session)

    @app.post("/sign_out")
    def sign_out(request: Request, session: Session = Depends(require_session)):
        try:
            request.app.state.authenticator.sign_out(session)
        except AuthError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"message": "Signed out"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("application:app", host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
