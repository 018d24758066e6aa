"""
Schemas for the TeamFlow team manager

Pydantic models below describe the core domain. Each entity is persisted as
a list of ``model_dump(mode="json")`` dicts in its own record store slot:

    roster        -> Player
    events        -> Event
    messages      -> Message
    team-files    -> TeamFile
    player-stats  -> PlayerStats

Request models carry the fields a client may send; update requests leave
everything optional and only the fields explicitly set are merged.
"""

import datetime as dt
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

EventType = Literal["game", "practice", "event"]
AvailabilityStatus = Literal["available", "maybe", "unavailable"]
Recipients = Literal["all", "coaches", "players", "parents"]
FileCategory = Literal["document", "photo", "other"]

Number = Union[int, float]


def _wall_clock(value):
    # event times are local wall-clock values; an offset is dropped, not converted
    if value is not None and value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


class Player(BaseModel):
    id: str = Field(..., description="Unique player id")
    name: str
    jersey_number: str = ""
    position: str = ""
    email: str = ""
    phone: str = ""
    emergency_contact: str = ""
    emergency_phone: str = ""
    photo_url: Optional[str] = None


class Event(BaseModel):
    id: str
    title: str = ""
    type: EventType
    date: dt.date
    time: dt.time
    location: str = ""
    opponent: Optional[str] = None
    notes: Optional[str] = None
    availability: Dict[str, AvailabilityStatus] = Field(
        default_factory=dict,
        description="Player id -> response; a missing key means no response",
    )

    @field_validator("time")
    @classmethod
    def _naive_time(cls, value):
        return _wall_clock(value)


class Message(BaseModel):
    id: str
    sender: str
    content: str
    timestamp: dt.datetime
    recipients: Recipients = "all"


class TeamFile(BaseModel):
    id: str
    name: str
    type: str = Field("", description="Media type or category hint")
    url: str = Field(..., description="Opaque payload, usually a data URL")
    uploaded_by: str
    uploaded_at: dt.datetime
    category: FileCategory = "other"
    share_id: Optional[str] = None
    share_enabled: bool = False
    share_created_at: Optional[dt.datetime] = None


class PlayerStats(BaseModel):
    """One player's line for one game, keyed by ``(player_id, game_id)``.

    Sport specific columns beyond the four known ones are kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    player_id: str
    game_id: str
    points: Optional[Number] = None
    assists: Optional[Number] = None
    rebounds: Optional[Number] = None
    goals: Optional[Number] = None


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class CreatePlayerRequest(BaseModel):
    name: str
    jersey_number: str = ""
    position: str = ""
    email: str = ""
    phone: str = ""
    emergency_contact: str = ""
    emergency_phone: str = ""
    photo_url: Optional[str] = None


class UpdatePlayerRequest(BaseModel):
    name: Optional[str] = None
    jersey_number: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    emergency_phone: Optional[str] = None
    photo_url: Optional[str] = None


class CreateEventRequest(BaseModel):
    title: str = ""
    type: EventType
    date: dt.date
    time: dt.time
    location: str = ""
    opponent: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _naive_time(cls, value):
        return _wall_clock(value)


class UpdateEventRequest(BaseModel):
    title: Optional[str] = None
    type: Optional[EventType] = None
    date: Optional[dt.date] = None
    time: Optional[dt.time] = None
    location: Optional[str] = None
    opponent: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _naive_time(cls, value):
        return _wall_clock(value)


class UpdateAvailabilityRequest(BaseModel):
    player_id: str
    status: AvailabilityStatus


class CreateMessageRequest(BaseModel):
    sender: str
    content: str
    recipients: Recipients = "all"


class CreateFileRequest(BaseModel):
    name: str
    type: str = ""
    url: str
    uploaded_by: str
    category: FileCategory = "other"


class UpdateFileRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[FileCategory] = None


class CreateStatsRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    player_id: str
    game_id: str
    points: Optional[Number] = None
    assists: Optional[Number] = None
    rebounds: Optional[Number] = None
    goals: Optional[Number] = None


class UpdateStatsRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    points: Optional[Number] = None
    assists: Optional[Number] = None
    rebounds: Optional[Number] = None
    goals: Optional[Number] = None


# ---------------------------------------------------------------------------
# Filters (all conjunctive, None means "no constraint")
# ---------------------------------------------------------------------------
class EventFilters(BaseModel):
    type: Optional[EventType] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None


class _TimeRange(BaseModel):
    start: Optional[dt.datetime] = None
    end: Optional[dt.datetime] = None

    @field_validator("start", "end")
    @classmethod
    def _assume_utc(cls, value):
        # stored instants are UTC; naive bounds are read the same way
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=dt.timezone.utc)
        return value


class MessageFilters(_TimeRange):
    recipients: Optional[Recipients] = None
    sender: Optional[str] = None


class FileFilters(_TimeRange):
    category: Optional[FileCategory] = None
    uploaded_by: Optional[str] = None


class StatsFilters(BaseModel):
    player_id: Optional[str] = None
    game_id: Optional[str] = None


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------
class AvailabilityTally(BaseModel):
    available: int = 0
    maybe: int = 0
    unavailable: int = 0
    no_response: Optional[int] = Field(
        None, description="Only set when the roster size is known"
    )


class ScorerTotal(BaseModel):
    player_id: str
    total_points: Number


class PlayerStatsAggregation(BaseModel):
    player_id: str
    total_games: int = 0
    total_points: Number = 0
    total_assists: Number = 0
    total_rebounds: Number = 0
    total_goals: Number = 0
    average_points: float = 0
    average_assists: float = 0
    average_rebounds: float = 0
    average_goals: float = 0


class PlayerAttendance(BaseModel):
    player_id: str
    name: Optional[str] = Field(None, description="None when the id is not on the roster")
    attendance_rate: int
    responded_events: int
    total_events: int


class EventParticipation(BaseModel):
    event_id: str
    title: str
    response_rate: int
    tally: AvailabilityTally


class TeamSummary(BaseModel):
    roster_size: int
    games: int
    practices: int
    other_events: int
    upcoming_events: int
    messages: int


class ShareLink(BaseModel):
    share_id: str
    share_url: str


# ---------------------------------------------------------------------------
# Merges: which fields an update may touch, per entity
# ---------------------------------------------------------------------------
PLAYER_MERGE_FIELDS = frozenset(UpdatePlayerRequest.model_fields)
# availability is only changed through record_availability
EVENT_MERGE_FIELDS = frozenset(UpdateEventRequest.model_fields)
FILE_MERGE_FIELDS = frozenset(UpdateFileRequest.model_fields)
STATS_KEY_FIELDS = frozenset({"player_id", "game_id"})


def _changes(patch: BaseModel, allowed: frozenset, target: type) -> dict:
    changes = {}
    for key, value in patch.model_dump(exclude_unset=True).items():
        if key not in allowed:
            continue
        # An explicit null only clears fields that are nullable on the entity.
        if value is None and target.model_fields[key].default is not None:
            continue
        changes[key] = value
    return changes


def merge_player(existing: Player, patch: UpdatePlayerRequest) -> Player:
    return existing.model_copy(update=_changes(patch, PLAYER_MERGE_FIELDS, Player))


def merge_event(existing: Event, patch: UpdateEventRequest) -> Event:
    return existing.model_copy(update=_changes(patch, EVENT_MERGE_FIELDS, Event))


def merge_file(existing: TeamFile, patch: UpdateFileRequest) -> TeamFile:
    return existing.model_copy(update=_changes(patch, FILE_MERGE_FIELDS, TeamFile))


def merge_stats(existing: PlayerStats, patch: UpdateStatsRequest) -> PlayerStats:
    # Extras are mergeable too; only the composite key is fixed.
    changes = {
        k: v for k, v in patch.model_dump(exclude_unset=True).items() if k not in STATS_KEY_FIELDS
    }
    return PlayerStats.model_validate({**existing.model_dump(), **changes})


SCHEMA_MODELS: List[str] = ["Player", "Event", "Message", "TeamFile", "PlayerStats"]
