"""Entity services: CRUD and queries over one record store slot each.

Services hold no state besides the store handle. Every mutation is a single
``store.write`` whose transform replaces the whole slot. Unknown ids are not
errors here: ``update`` returns None and ``delete`` returns False.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

import store as slots
from attendance import (
    aggregate_player_stats,
    past_events,
    record_availability,
    sort_chronological,
    tally_event,
    top_scorers,
    upcoming_events,
)
from logging_config import get_logger
from schemas import (
    AvailabilityStatus,
    AvailabilityTally,
    CreateEventRequest,
    CreateFileRequest,
    CreateMessageRequest,
    CreatePlayerRequest,
    CreateStatsRequest,
    Event,
    EventFilters,
    FileCategory,
    FileFilters,
    Message,
    MessageFilters,
    Player,
    PlayerStats,
    PlayerStatsAggregation,
    Recipients,
    ScorerTotal,
    ShareLink,
    StatsFilters,
    TeamFile,
    UpdateEventRequest,
    UpdateFileRequest,
    UpdatePlayerRequest,
    UpdateStatsRequest,
    merge_event,
    merge_file,
    merge_player,
    merge_stats,
)
from store import RecordStore, new_id

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _SlotService(Generic[M]):
    slot: str
    model: Type[M]

    def __init__(self, store: RecordStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    def _load(self) -> List[M]:
        return [self.model.model_validate(r) for r in self.store.read(self.slot)]

    def _append(self, item: M) -> M:
        record = item.model_dump(mode="json")
        self.store.write(self.slot, lambda current: current + [record])
        return item

    def _replace_where(self, matches: Callable[[M], bool], change: Callable[[M], M]) -> Optional[M]:
        """Apply ``change`` to every matching item; return the last changed one."""
        changed: Optional[M] = None

        def transform(current):
            nonlocal changed
            out = []
            for record in current:
                item = self.model.model_validate(record)
                if matches(item):
                    changed = change(item)
                    out.append(changed.model_dump(mode="json"))
                else:
                    out.append(record)
            return out

        self.store.write(self.slot, transform)
        return changed

    def _remove_where(self, matches: Callable[[M], bool]) -> bool:
        removed = False

        def transform(current):
            nonlocal removed
            kept = [r for r in current if not matches(self.model.model_validate(r))]
            removed = len(kept) != len(current)
            return kept

        self.store.write(self.slot, transform)
        return removed


class _IdentifiedService(_SlotService[M]):
    kind: str

    def get_by_id(self, item_id: str) -> Optional[M]:
        return next((i for i in self._load() if i.id == item_id), None)

    def delete(self, item_id: str) -> bool:
        deleted = self._remove_where(lambda i: i.id == item_id)
        if deleted:
            logger.info(f"{self.kind}.deleted", id=item_id)
        else:
            logger.debug(f"{self.kind}.not_found", id=item_id, op="delete")
        return deleted

    def _update(self, item_id: str, change: Callable[[M], M]) -> Optional[M]:
        updated = self._replace_where(lambda i: i.id == item_id, change)
        if updated is None:
            logger.debug(f"{self.kind}.not_found", id=item_id, op="update")
        else:
            logger.info(f"{self.kind}.updated", id=item_id)
        return updated


# ---------------------------------------------------------------------------
# Players
# ---------------------------------------------------------------------------
class PlayerService(_IdentifiedService[Player]):
    slot = slots.ROSTER
    model = Player
    kind = "player"

    def get_all(self) -> List[Player]:
        return self._load()

    def create(self, payload: CreatePlayerRequest) -> Player:
        player = Player(id=new_id(), **payload.model_dump())
        self._append(player)
        logger.info("player.created", id=player.id, name=player.name)
        return player

    def update(self, player_id: str, payload: UpdatePlayerRequest) -> Optional[Player]:
        return self._update(player_id, lambda p: merge_player(p, payload))

    def search(self, query: str) -> List[Player]:
        q = query.lower()
        return [
            p
            for p in self._load()
            if q in p.name.lower()
            or q in p.jersey_number.lower()
            or q in p.position.lower()
            or q in p.email.lower()
        ]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
class EventService(_IdentifiedService[Event]):
    slot = slots.EVENTS
    model = Event
    kind = "event"

    def get_all(self, filters: Optional[EventFilters] = None) -> List[Event]:
        events = self._load()
        if filters is not None:
            if filters.type:
                events = [e for e in events if e.type == filters.type]
            if filters.start_date:
                events = [e for e in events if e.date >= filters.start_date]
            if filters.end_date:
                events = [e for e in events if e.date <= filters.end_date]
        return sort_chronological(events)

    def get_upcoming(self, limit: int = 10, now: Optional[datetime] = None) -> List[Event]:
        # Event dates and times are wall-clock values, compared with local time.
        return upcoming_events(self._load(), now or datetime.now(), limit)

    def get_past(self, limit: int = 10, now: Optional[datetime] = None) -> List[Event]:
        return past_events(self._load(), now or datetime.now(), limit)

    def create(self, payload: CreateEventRequest) -> Event:
        event = Event(id=new_id(), availability={}, **payload.model_dump())
        self._append(event)
        logger.info("event.created", id=event.id, type=event.type, date=str(event.date))
        return event

    def update(self, event_id: str, payload: UpdateEventRequest) -> Optional[Event]:
        return self._update(event_id, lambda e: merge_event(e, payload))

    def update_availability(
        self, event_id: str, player_id: str, status: AvailabilityStatus
    ) -> Optional[Event]:
        updated = self._replace_where(
            lambda e: e.id == event_id,
            lambda e: record_availability(e, player_id, status),
        )
        if updated is None:
            logger.debug("event.not_found", id=event_id, op="update_availability")
        else:
            logger.info(
                "event.availability_recorded", id=event_id, player_id=player_id, status=status
            )
        return updated

    def get_availability_stats(
        self, event_id: str, roster_size: Optional[int] = None
    ) -> AvailabilityTally:
        event = self.get_by_id(event_id)
        if event is None:
            return AvailabilityTally(no_response=0)
        return tally_event(event, roster_size)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------
def _newest_first(items, key):
    return sorted(items, key=key, reverse=True)


class MessageService(_IdentifiedService[Message]):
    slot = slots.MESSAGES
    model = Message
    kind = "message"

    def get_all(
        self, filters: Optional[MessageFilters] = None, limit: Optional[int] = None
    ) -> List[Message]:
        messages = self._load()
        if filters is not None:
            if filters.recipients:
                messages = [m for m in messages if m.recipients == filters.recipients]
            if filters.sender:
                messages = [m for m in messages if m.sender == filters.sender]
            if filters.start:
                messages = [m for m in messages if m.timestamp >= filters.start]
            if filters.end:
                messages = [m for m in messages if m.timestamp <= filters.end]
        messages = _newest_first(messages, key=lambda m: m.timestamp)
        return messages[: max(limit, 0)] if limit is not None else messages

    def get_recent(self, limit: int = 10) -> List[Message]:
        return _newest_first(self._load(), key=lambda m: m.timestamp)[: max(limit, 0)]

    def get_by_recipients(self, recipients: Recipients) -> List[Message]:
        return self.get_all(MessageFilters(recipients=recipients))

    def create(self, payload: CreateMessageRequest) -> Message:
        message = Message(id=new_id(), timestamp=self.clock(), **payload.model_dump())
        self._append(message)
        logger.info("message.created", id=message.id, recipients=message.recipients)
        return message


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------
class FileService(_IdentifiedService[TeamFile]):
    slot = slots.TEAM_FILES
    model = TeamFile
    kind = "file"

    def __init__(self, store: RecordStore, public_base_url: str, clock: Clock = utc_now):
        super().__init__(store, clock)
        self.public_base_url = public_base_url

    def share_url(self, share_id: str) -> str:
        return f"{self.public_base_url}?share={share_id}"

    def get_all(self, filters: Optional[FileFilters] = None) -> List[TeamFile]:
        files = self._load()
        if filters is not None:
            if filters.category:
                files = [f for f in files if f.category == filters.category]
            if filters.uploaded_by:
                files = [f for f in files if f.uploaded_by == filters.uploaded_by]
            if filters.start:
                files = [f for f in files if f.uploaded_at >= filters.start]
            if filters.end:
                files = [f for f in files if f.uploaded_at <= filters.end]
        return _newest_first(files, key=lambda f: f.uploaded_at)

    def get_by_category(self, category: FileCategory) -> List[TeamFile]:
        return self.get_all(FileFilters(category=category))

    def get_by_share_id(self, share_id: str) -> Optional[TeamFile]:
        # Disabled and unknown share ids are indistinguishable to callers.
        return next(
            (f for f in self._load() if f.share_id == share_id and f.share_enabled), None
        )

    def create(self, payload: CreateFileRequest) -> TeamFile:
        team_file = TeamFile(
            id=new_id(), uploaded_at=self.clock(), share_enabled=False, **payload.model_dump()
        )
        self._append(team_file)
        logger.info("file.created", id=team_file.id, category=team_file.category)
        return team_file

    def update(self, file_id: str, payload: UpdateFileRequest) -> Optional[TeamFile]:
        return self._update(file_id, lambda f: merge_file(f, payload))

    def enable_sharing(self, file_id: str) -> Optional[ShareLink]:
        def share(f: TeamFile) -> TeamFile:
            return f.model_copy(
                update={
                    "share_id": f.share_id or new_id(),
                    "share_enabled": True,
                    "share_created_at": self.clock(),
                }
            )

        shared = self._replace_where(lambda f: f.id == file_id, share)
        if shared is None:
            logger.debug("file.not_found", id=file_id, op="enable_sharing")
            return None
        logger.info("file.share_enabled", id=file_id, share_id=shared.share_id)
        return ShareLink(share_id=shared.share_id, share_url=self.share_url(shared.share_id))

    def disable_sharing(self, file_id: str) -> bool:
        unshared = self._replace_where(
            lambda f: f.id == file_id,
            lambda f: f.model_copy(update={"share_enabled": False}),
        )
        if unshared is None:
            logger.debug("file.not_found", id=file_id, op="disable_sharing")
            return False
        logger.info("file.share_disabled", id=file_id)
        return True

    def is_share_enabled(self, file_id: str) -> bool:
        team_file = self.get_by_id(file_id)
        return bool(team_file and team_file.share_enabled)


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
class StatsService(_SlotService[PlayerStats]):
    """Per game stat lines keyed by ``(player_id, game_id)``.

    Creating the same pair twice stores two lines; update and delete act on
    every line with the pair.
    """

    slot = slots.PLAYER_STATS
    model = PlayerStats

    def get_all(self, filters: Optional[StatsFilters] = None) -> List[PlayerStats]:
        lines = self._load()
        if filters is not None:
            if filters.player_id:
                lines = [s for s in lines if s.player_id == filters.player_id]
            if filters.game_id:
                lines = [s for s in lines if s.game_id == filters.game_id]
        return lines

    def get_by_player_id(self, player_id: str) -> List[PlayerStats]:
        return self.get_all(StatsFilters(player_id=player_id))

    def get_by_game_id(self, game_id: str) -> List[PlayerStats]:
        return self.get_all(StatsFilters(game_id=game_id))

    def create(self, payload: CreateStatsRequest) -> PlayerStats:
        line = PlayerStats.model_validate(payload.model_dump())
        self._append(line)
        logger.info("stats.created", player_id=line.player_id, game_id=line.game_id)
        return line

    def update(
        self, player_id: str, game_id: str, payload: UpdateStatsRequest
    ) -> Optional[PlayerStats]:
        updated = self._replace_where(
            lambda s: s.player_id == player_id and s.game_id == game_id,
            lambda s: merge_stats(s, payload),
        )
        if updated is None:
            logger.debug("stats.not_found", player_id=player_id, game_id=game_id, op="update")
        else:
            logger.info("stats.updated", player_id=player_id, game_id=game_id)
        return updated

    def delete(self, player_id: str, game_id: str) -> bool:
        deleted = self._remove_where(lambda s: s.player_id == player_id and s.game_id == game_id)
        if deleted:
            logger.info("stats.deleted", player_id=player_id, game_id=game_id)
        else:
            logger.debug("stats.not_found", player_id=player_id, game_id=game_id, op="delete")
        return deleted

    def get_player_aggregated_stats(self, player_id: str) -> PlayerStatsAggregation:
        return aggregate_player_stats(player_id, self._load())

    def get_team_top_scorers(self, limit: int = 10) -> List[ScorerTotal]:
        return top_scorers(self._load(), limit)


@dataclass
class TeamServices:
    players: PlayerService
    events: EventService
    messages: MessageService
    files: FileService
    stats: StatsService


def build_services(
    store: RecordStore, public_base_url: str, clock: Clock = utc_now
) -> TeamServices:
    return TeamServices(
        players=PlayerService(store, clock),
        events=EventService(store, clock),
        messages=MessageService(store, clock),
        files=FileService(store, public_base_url, clock),
        stats=StatsService(store, clock),
    )
