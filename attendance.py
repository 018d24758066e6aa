"""Availability and attendance computations over events, players and stats.

Everything here is a pure function of its arguments: inputs are never
mutated, and a zero denominator always yields 0.
"""

import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from schemas import (
    AvailabilityStatus,
    AvailabilityTally,
    Event,
    EventParticipation,
    Player,
    PlayerAttendance,
    PlayerStats,
    PlayerStatsAggregation,
    ScorerTotal,
    TeamSummary,
)

STAT_FIELDS = ("points", "assists", "rebounds", "goals")


def _percent(part: float, whole: float) -> int:
    if whole <= 0:
        return 0
    # half up, not banker's rounding
    return int(math.floor(100 * part / whole + 0.5))


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------
def record_availability(event: Event, player_id: str, status: AvailabilityStatus) -> Event:
    """Upsert one player's response and return the updated event.

    The player id does not have to belong to the roster. Other players'
    responses are left untouched and repeating a call changes nothing.
    """
    availability = dict(event.availability)
    availability[player_id] = status
    return event.model_copy(update={"availability": availability})


def tally_event(event: Event, roster_size: Optional[int] = None) -> AvailabilityTally:
    """Count responses per status.

    ``no_response`` needs the roster size and is left as None without it.
    Responses from ids outside the roster still count towards the statuses,
    so the four numbers always add up to ``roster_size``.
    """
    tally = AvailabilityTally()
    for status in event.availability.values():
        if status == "available":
            tally.available += 1
        elif status == "maybe":
            tally.maybe += 1
        elif status == "unavailable":
            tally.unavailable += 1

    if roster_size is not None:
        tally.no_response = roster_size - tally.available - tally.maybe - tally.unavailable
    return tally


def response_rate(event: Event, roster_size: int) -> int:
    return _percent(len(event.availability), roster_size)


def attendance_rate(player_id: str, events: Iterable[Event]) -> int:
    """Percentage of the player's answered events answered "available"."""
    responded = 0
    available = 0
    for event in events:
        status = event.availability.get(player_id)
        if status is None:
            continue
        responded += 1
        if status == "available":
            available += 1
    return _percent(available, responded)


def player_attendance(
    player_id: str, events: Sequence[Event], name: Optional[str] = None
) -> PlayerAttendance:
    return PlayerAttendance(
        player_id=player_id,
        name=name,
        attendance_rate=attendance_rate(player_id, events),
        responded_events=sum(1 for e in events if player_id in e.availability),
        total_events=len(events),
    )


def attendance_report(players: Sequence[Player], events: Sequence[Event]) -> List[PlayerAttendance]:
    """One attendance row per roster player, in roster order."""
    return [player_attendance(p.id, events, p.name) for p in players]


def event_participation(events: Iterable[Event], roster_size: int) -> List[EventParticipation]:
    return [
        EventParticipation(
            event_id=e.id,
            title=e.title,
            response_rate=response_rate(e, roster_size),
            tally=tally_event(e, roster_size),
        )
        for e in events
    ]


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------
def event_start(event: Event) -> datetime:
    return datetime.combine(event.date, event.time)


def sort_chronological(events: Iterable[Event], newest_first: bool = False) -> List[Event]:
    return sorted(events, key=event_start, reverse=newest_first)


def split_events(events: Iterable[Event], now: datetime) -> Tuple[List[Event], List[Event]]:
    """Partition into (upcoming, past).

    Upcoming starts at or after ``now`` and is sorted soonest first; past is
    sorted most recent first.
    """
    upcoming: List[Event] = []
    past: List[Event] = []
    for event in events:
        (upcoming if event_start(event) >= now else past).append(event)
    return sort_chronological(upcoming), sort_chronological(past, newest_first=True)


def upcoming_events(events: Iterable[Event], now: datetime, limit: int = 10) -> List[Event]:
    return split_events(events, now)[0][: max(limit, 0)]


def past_events(events: Iterable[Event], now: datetime, limit: int = 10) -> List[Event]:
    return split_events(events, now)[1][: max(limit, 0)]


def team_summary(
    players: Sequence[Player],
    events: Sequence[Event],
    messages_count: int,
    now: datetime,
) -> TeamSummary:
    games = sum(1 for e in events if e.type == "game")
    practices = sum(1 for e in events if e.type == "practice")
    return TeamSummary(
        roster_size=len(players),
        games=games,
        practices=practices,
        other_events=len(events) - games - practices,
        upcoming_events=len(split_events(events, now)[0]),
        messages=messages_count,
    )


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------
def top_scorers(stats: Iterable[PlayerStats], limit: int = 10) -> List[ScorerTotal]:
    """Players by total points, highest first.

    Ties keep the order in which players first appear in ``stats``.
    """
    if limit <= 0:
        return []

    totals: Dict[str, float] = {}
    for line in stats:
        totals[line.player_id] = totals.get(line.player_id, 0) + (line.points or 0)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [ScorerTotal(player_id=pid, total_points=total) for pid, total in ranked[:limit]]


def aggregate_player_stats(player_id: str, stats: Iterable[PlayerStats]) -> PlayerStatsAggregation:
    lines = [s for s in stats if s.player_id == player_id]
    # counts stat lines, so a duplicated (player, game) pair counts twice
    total_games = len(lines)

    totals = {field: sum((getattr(s, field) or 0) for s in lines) for field in STAT_FIELDS}
    averages = {
        field: (totals[field] / total_games if total_games > 0 else 0) for field in STAT_FIELDS
    }

    return PlayerStatsAggregation(
        player_id=player_id,
        total_games=total_games,
        **{f"total_{field}": value for field, value in totals.items()},
        **{f"average_{field}": value for field, value in averages.items()},
    )
