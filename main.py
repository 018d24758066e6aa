from datetime import date, datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from attendance import attendance_report, event_participation, player_attendance, team_summary
from logging_config import configure_logging, get_logger
from schemas import (
    SCHEMA_MODELS,
    AvailabilityTally,
    CreateEventRequest,
    CreateFileRequest,
    CreateMessageRequest,
    CreatePlayerRequest,
    CreateStatsRequest,
    Event,
    EventFilters,
    EventParticipation,
    EventType,
    FileCategory,
    FileFilters,
    Message,
    MessageFilters,
    Player,
    PlayerAttendance,
    PlayerStats,
    PlayerStatsAggregation,
    Recipients,
    ScorerTotal,
    ShareLink,
    StatsFilters,
    TeamFile,
    TeamSummary,
    UpdateAvailabilityRequest,
    UpdateEventRequest,
    UpdateFileRequest,
    UpdatePlayerRequest,
    UpdateStatsRequest,
)
from services import TeamServices, build_services
from settings import StoreBackend, get_settings
from store import InMemoryRecordStore, JsonFileRecordStore

settings = get_settings()
configure_logging(settings)
logger = get_logger(__name__)

app = FastAPI(title="TeamFlow Team Manager API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Record store & services
# ---------------------------------------------------------------------------
@lru_cache()
def get_services() -> TeamServices:
    if settings.store_backend == StoreBackend.JSON:
        store = JsonFileRecordStore(settings.data_dir)
    else:
        store = InMemoryRecordStore()
    logger.info("store.ready", backend=settings.store_backend.value)
    return build_services(store, settings.public_base_url)


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} not found")


# ---------------------------------------------------------------------------
# Health & Schema
# ---------------------------------------------------------------------------
@app.get("/")
def read_root():
    return {"message": "TeamFlow backend is running"}


@app.get("/schema")
def get_schema_overview():
    return {"models": SCHEMA_MODELS, "version": 1}


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------
@app.get("/api/players", response_model=List[Player])
def list_players(svc: TeamServices = Depends(get_services)):
    return svc.players.get_all()


@app.get("/api/players/search", response_model=List[Player])
def search_players(q: str = "", svc: TeamServices = Depends(get_services)):
    return svc.players.search(q)


@app.post("/api/players", response_model=Player)
def create_player(payload: CreatePlayerRequest, svc: TeamServices = Depends(get_services)):
    return svc.players.create(payload)


@app.get("/api/players/{player_id}", response_model=Player)
def get_player(player_id: str, svc: TeamServices = Depends(get_services)):
    player = svc.players.get_by_id(player_id)
    if not player:
        raise _not_found("Player")
    return player


@app.patch("/api/players/{player_id}", response_model=Player)
def update_player(
    player_id: str, payload: UpdatePlayerRequest, svc: TeamServices = Depends(get_services)
):
    player = svc.players.update(player_id, payload)
    if not player:
        raise _not_found("Player")
    return player


@app.delete("/api/players/{player_id}")
def delete_player(player_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.players.delete(player_id):
        raise _not_found("Player")
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Schedule & availability
# ---------------------------------------------------------------------------
@app.get("/api/events", response_model=List[Event])
def list_events(
    type: Optional[EventType] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    svc: TeamServices = Depends(get_services),
):
    filters = EventFilters(type=type, start_date=start_date, end_date=end_date)
    return svc.events.get_all(filters)


@app.get("/api/events/upcoming", response_model=List[Event])
def list_upcoming_events(limit: int = 10, svc: TeamServices = Depends(get_services)):
    return svc.events.get_upcoming(limit)


@app.get("/api/events/past", response_model=List[Event])
def list_past_events(limit: int = 10, svc: TeamServices = Depends(get_services)):
    return svc.events.get_past(limit)


@app.post("/api/events", response_model=Event)
def create_event(payload: CreateEventRequest, svc: TeamServices = Depends(get_services)):
    return svc.events.create(payload)


@app.get("/api/events/{event_id}", response_model=Event)
def get_event(event_id: str, svc: TeamServices = Depends(get_services)):
    event = svc.events.get_by_id(event_id)
    if not event:
        raise _not_found("Event")
    return event


@app.patch("/api/events/{event_id}", response_model=Event)
def update_event(
    event_id: str, payload: UpdateEventRequest, svc: TeamServices = Depends(get_services)
):
    event = svc.events.update(event_id, payload)
    if not event:
        raise _not_found("Event")
    return event


@app.delete("/api/events/{event_id}")
def delete_event(event_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.events.delete(event_id):
        raise _not_found("Event")
    return {"deleted": True}


@app.put("/api/events/{event_id}/availability", response_model=Event)
def set_availability(
    event_id: str, payload: UpdateAvailabilityRequest, svc: TeamServices = Depends(get_services)
):
    event = svc.events.update_availability(event_id, payload.player_id, payload.status)
    if not event:
        raise _not_found("Event")
    return event


@app.get("/api/events/{event_id}/tally", response_model=AvailabilityTally)
def event_tally(event_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.events.get_by_id(event_id):
        raise _not_found("Event")
    return svc.events.get_availability_stats(event_id, roster_size=len(svc.players.get_all()))


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
@app.get("/api/messages", response_model=List[Message])
def list_messages(
    recipients: Optional[Recipients] = None,
    sender: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
    svc: TeamServices = Depends(get_services),
):
    filters = MessageFilters(recipients=recipients, sender=sender, start=start, end=end)
    return svc.messages.get_all(filters, limit)


@app.get("/api/messages/recent", response_model=List[Message])
def recent_messages(limit: int = 10, svc: TeamServices = Depends(get_services)):
    return svc.messages.get_recent(limit)


@app.post("/api/messages", response_model=Message)
def post_message(payload: CreateMessageRequest, svc: TeamServices = Depends(get_services)):
    return svc.messages.create(payload)


@app.get("/api/messages/{message_id}", response_model=Message)
def get_message(message_id: str, svc: TeamServices = Depends(get_services)):
    message = svc.messages.get_by_id(message_id)
    if not message:
        raise _not_found("Message")
    return message


@app.delete("/api/messages/{message_id}")
def delete_message(message_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.messages.delete(message_id):
        raise _not_found("Message")
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Files & sharing
# ---------------------------------------------------------------------------
@app.get("/api/files", response_model=List[TeamFile])
def list_files(
    category: Optional[FileCategory] = None,
    uploaded_by: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    svc: TeamServices = Depends(get_services),
):
    filters = FileFilters(category=category, uploaded_by=uploaded_by, start=start, end=end)
    return svc.files.get_all(filters)


@app.post("/api/files", response_model=TeamFile)
def upload_file(payload: CreateFileRequest, svc: TeamServices = Depends(get_services)):
    return svc.files.create(payload)


@app.get("/api/files/{file_id}", response_model=TeamFile)
def get_file(file_id: str, svc: TeamServices = Depends(get_services)):
    team_file = svc.files.get_by_id(file_id)
    if not team_file:
        raise _not_found("File")
    return team_file


@app.patch("/api/files/{file_id}", response_model=TeamFile)
def update_file(
    file_id: str, payload: UpdateFileRequest, svc: TeamServices = Depends(get_services)
):
    team_file = svc.files.update(file_id, payload)
    if not team_file:
        raise _not_found("File")
    return team_file


@app.delete("/api/files/{file_id}")
def delete_file(file_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.files.delete(file_id):
        raise _not_found("File")
    return {"deleted": True}


@app.post("/api/files/{file_id}/share", response_model=ShareLink)
def share_file(file_id: str, svc: TeamServices = Depends(get_services)):
    link = svc.files.enable_sharing(file_id)
    if not link:
        raise _not_found("File")
    return link


@app.delete("/api/files/{file_id}/share")
def unshare_file(file_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.files.disable_sharing(file_id):
        raise _not_found("File")
    return {"share_enabled": False}


@app.get("/api/shared/{share_id}", response_model=TeamFile)
def resolve_shared_file(share_id: str, svc: TeamServices = Depends(get_services)):
    team_file = svc.files.get_by_share_id(share_id)
    if not team_file:
        raise _not_found("Shared file")
    return team_file


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
@app.get("/api/stats", response_model=List[PlayerStats])
def list_stats(
    player_id: Optional[str] = None,
    game_id: Optional[str] = None,
    svc: TeamServices = Depends(get_services),
):
    return svc.stats.get_all(StatsFilters(player_id=player_id, game_id=game_id))


@app.post("/api/stats", response_model=PlayerStats)
def record_stats(payload: CreateStatsRequest, svc: TeamServices = Depends(get_services)):
    return svc.stats.create(payload)


@app.get("/api/stats/top-scorers", response_model=List[ScorerTotal])
def top_scorers(limit: int = 10, svc: TeamServices = Depends(get_services)):
    return svc.stats.get_team_top_scorers(limit)


@app.get("/api/stats/players/{player_id}", response_model=PlayerStatsAggregation)
def player_stats(player_id: str, svc: TeamServices = Depends(get_services)):
    return svc.stats.get_player_aggregated_stats(player_id)


@app.patch("/api/stats/{player_id}/{game_id}", response_model=PlayerStats)
def update_stats(
    player_id: str,
    game_id: str,
    payload: UpdateStatsRequest,
    svc: TeamServices = Depends(get_services),
):
    line = svc.stats.update(player_id, game_id, payload)
    if not line:
        raise _not_found("Stats")
    return line


@app.delete("/api/stats/{player_id}/{game_id}")
def delete_stats(player_id: str, game_id: str, svc: TeamServices = Depends(get_services)):
    if not svc.stats.delete(player_id, game_id):
        raise _not_found("Stats")
    return {"deleted": True}


# ---------------------------------------------------------------------------
# Attendance & dashboard (computed)
# ---------------------------------------------------------------------------
@app.get("/api/attendance", response_model=List[PlayerAttendance])
def attendance(svc: TeamServices = Depends(get_services)):
    return attendance_report(svc.players.get_all(), svc.events.get_all())


@app.get("/api/attendance/events", response_model=List[EventParticipation])
def attendance_by_event(svc: TeamServices = Depends(get_services)):
    return event_participation(svc.events.get_all(), len(svc.players.get_all()))


@app.get("/api/attendance/{player_id}", response_model=PlayerAttendance)
def attendance_for_player(player_id: str, svc: TeamServices = Depends(get_services)):
    player = svc.players.get_by_id(player_id)
    return player_attendance(player_id, svc.events.get_all(), player.name if player else None)


@app.get("/api/dashboard", response_model=TeamSummary)
def dashboard(svc: TeamServices = Depends(get_services)):
    return team_summary(
        svc.players.get_all(),
        svc.events.get_all(),
        len(svc.messages.get_all()),
        datetime.now(),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
