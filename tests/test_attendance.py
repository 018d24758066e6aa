"""Tests for the availability/attendance computations."""

from __future__ import annotations

from datetime import datetime, time

import pytest

from attendance import (
    aggregate_player_stats,
    attendance_rate,
    attendance_report,
    event_participation,
    past_events,
    player_attendance,
    record_availability,
    response_rate,
    split_events,
    tally_event,
    team_summary,
    top_scorers,
    upcoming_events,
)
from schemas import Event, Player, PlayerStats


def make_event(event_id: str = "e1", day: str = "2024-06-01", at: str = "18:00", **kw) -> Event:
    return Event(
        id=event_id,
        type=kw.pop("type", "game"),
        date=day,
        time=at,
        **kw,
    )


def stats_line(player_id: str, game_id: str, **values) -> PlayerStats:
    return PlayerStats(player_id=player_id, game_id=game_id, **values)


# --- record_availability ---


class TestRecordAvailability:
    def test_new_event_has_no_responses(self) -> None:
        assert make_event().availability == {}

    def test_last_response_wins(self) -> None:
        event = make_event()
        event = record_availability(event, "p1", "available")
        event = record_availability(event, "p1", "maybe")
        assert event.availability == {"p1": "maybe"}

    def test_idempotent(self) -> None:
        once = record_availability(make_event(), "p1", "available")
        twice = record_availability(once, "p1", "available")
        assert twice.availability == once.availability

    def test_other_players_untouched(self) -> None:
        event = make_event(availability={"p2": "unavailable", "p3": "maybe"})
        updated = record_availability(event, "p1", "available")
        assert updated.availability["p2"] == "unavailable"
        assert updated.availability["p3"] == "maybe"
        assert len(updated.availability) == 3

    def test_does_not_mutate_input(self) -> None:
        event = make_event()
        record_availability(event, "p1", "available")
        assert event.availability == {}

    def test_unknown_player_accepted(self) -> None:
        event = record_availability(make_event(), "not-on-roster", "maybe")
        assert event.availability == {"not-on-roster": "maybe"}


# --- tally_event ---


class TestTallyEvent:
    def test_counts_by_status(self) -> None:
        event = make_event(
            availability={"a": "available", "b": "available", "c": "maybe", "d": "unavailable"}
        )
        tally = tally_event(event, roster_size=6)
        assert (tally.available, tally.maybe, tally.unavailable) == (2, 1, 1)
        assert tally.no_response == 2

    def test_no_response_unknown_without_roster(self) -> None:
        tally = tally_event(make_event(availability={"a": "available"}))
        assert tally.available == 1
        assert tally.no_response is None

    @pytest.mark.parametrize("roster_size", [0, 3, 10])
    def test_counts_sum_to_roster_size(self, roster_size: int) -> None:
        event = make_event(availability={"a": "available", "b": "maybe", "c": "unavailable"})
        tally = tally_event(event, roster_size)
        total = tally.available + tally.maybe + tally.unavailable + tally.no_response
        assert total == roster_size

    def test_off_roster_responses_push_no_response_below_zero(self) -> None:
        # the player who answered "c" has since left the roster
        event = make_event(availability={"a": "available", "b": "maybe", "c": "unavailable"})
        tally = tally_event(event, roster_size=2)
        assert tally.no_response == -1
        assert tally.available + tally.maybe + tally.unavailable + tally.no_response == 2

    def test_response_rate(self) -> None:
        event = make_event(availability={"a": "available", "b": "unavailable"})
        assert response_rate(event, 3) == 67
        assert response_rate(event, 0) == 0


# --- attendance_rate ---


class TestAttendanceRate:
    def test_no_events_is_zero(self) -> None:
        assert attendance_rate("p1", []) == 0

    def test_no_responses_is_zero(self) -> None:
        assert attendance_rate("p1", [make_event(availability={"p2": "available"})]) == 0

    def test_only_responded_events_count(self) -> None:
        events = [
            make_event("e1", availability={"p1": "available"}),
            make_event("e2", availability={"p1": "unavailable"}),
            make_event("e3", availability={}),
            make_event("e4", availability={"p2": "available"}),
        ]
        assert attendance_rate("p1", events) == 50

    def test_maybe_is_not_available(self) -> None:
        events = [
            make_event("e1", availability={"p1": "available"}),
            make_event("e2", availability={"p1": "maybe"}),
            make_event("e3", availability={"p1": "maybe"}),
        ]
        assert attendance_rate("p1", events) == 33

    def test_half_rounds_up(self) -> None:
        # 1/8 = 12.5%
        events = [make_event("e0", availability={"p1": "available"})] + [
            make_event(f"e{i}", availability={"p1": "unavailable"}) for i in range(1, 8)
        ]
        assert attendance_rate("p1", events) == 13

    def test_single_player_row(self) -> None:
        events = [
            make_event("e1", availability={"p1": "available"}),
            make_event("e2", availability={}),
        ]
        row = player_attendance("p1", events, "Al")
        assert (row.name, row.attendance_rate, row.responded_events, row.total_events) == (
            "Al",
            100,
            1,
            2,
        )
        assert player_attendance("ghost", events).name is None

    def test_event_participation(self) -> None:
        events = [
            make_event("e1", availability={"p1": "available", "p2": "maybe"}),
            make_event("e2"),
        ]
        rows = event_participation(events, roster_size=4)
        assert [(r.event_id, r.response_rate) for r in rows] == [("e1", 50), ("e2", 0)]
        assert rows[0].tally.no_response == 2
        assert rows[1].tally.no_response == 4

    def test_report_follows_roster_order(self) -> None:
        players = [Player(id="p2", name="Bea"), Player(id="p1", name="Al")]
        events = [
            make_event("e1", availability={"p1": "available", "p2": "unavailable"}),
            make_event("e2", availability={"p1": "available"}),
        ]
        report = attendance_report(players, events)
        assert [r.player_id for r in report] == ["p2", "p1"]
        assert report[0].attendance_rate == 0
        assert report[0].responded_events == 1
        assert report[1].attendance_rate == 100
        assert report[1].responded_events == 2
        assert all(r.total_events == 2 for r in report)


# --- upcoming/past partition ---


class TestPartition:
    NOW = datetime(2024, 6, 1, 18, 0)

    @pytest.fixture
    def events(self) -> list[Event]:
        return [
            make_event("later", "2024-06-03", "09:00"),
            make_event("old", "2024-05-01", "10:00"),
            make_event("now", "2024-06-01", "18:00"),
            make_event("recent", "2024-06-01", "17:59"),
            make_event("soon", "2024-06-02", "08:00"),
        ]

    def test_split(self, events: list[Event]) -> None:
        upcoming, past = split_events(events, self.NOW)
        assert [e.id for e in upcoming] == ["now", "soon", "later"]
        assert [e.id for e in past] == ["recent", "old"]

    def test_limits(self, events: list[Event]) -> None:
        assert [e.id for e in upcoming_events(events, self.NOW, limit=2)] == ["now", "soon"]
        assert [e.id for e in past_events(events, self.NOW, limit=1)] == ["recent"]
        assert upcoming_events(events, self.NOW, limit=0) == []

    def test_team_summary(self, events: list[Event]) -> None:
        events.append(make_event("training", "2024-06-05", "19:00", type="practice"))
        events.append(make_event("bbq", "2024-06-06", "19:00", type="event"))
        summary = team_summary([Player(id="p1", name="Al")], events, 4, self.NOW)
        assert summary.roster_size == 1
        assert summary.games == 5
        assert summary.practices == 1
        assert summary.other_events == 1
        assert summary.upcoming_events == 5
        assert summary.messages == 4


# --- stats ---


class TestTopScorers:
    def test_groups_and_sorts(self) -> None:
        lines = [
            stats_line("p1", "g1", points=10),
            stats_line("p2", "g1", points=30),
            stats_line("p1", "g2", points=5),
        ]
        result = top_scorers(lines, 10)
        assert [(r.player_id, r.total_points) for r in result] == [("p2", 30), ("p1", 15)]

    def test_missing_points_count_as_zero(self) -> None:
        lines = [stats_line("p1", "g1"), stats_line("p2", "g1", points=2)]
        result = top_scorers(lines)
        assert [(r.player_id, r.total_points) for r in result] == [("p2", 2), ("p1", 0)]

    def test_ties_keep_first_seen_order(self) -> None:
        lines = [
            stats_line("p3", "g1", points=7),
            stats_line("p1", "g1", points=7),
            stats_line("p2", "g1", points=7),
        ]
        assert [r.player_id for r in top_scorers(lines)] == ["p3", "p1", "p2"]

    def test_limit(self) -> None:
        lines = [stats_line(f"p{i}", "g1", points=i) for i in range(20)]
        result = top_scorers(lines)
        assert len(result) == 10
        assert result[0].player_id == "p19"
        assert [r.player_id for r in top_scorers(lines, 2)] == ["p19", "p18"]

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit(self, limit: int) -> None:
        assert top_scorers([stats_line("p1", "g1", points=3)], limit) == []


class TestAggregatePlayerStats:
    def test_no_records(self) -> None:
        agg = aggregate_player_stats("p1", [stats_line("p2", "g1", points=9)])
        assert agg.total_games == 0
        assert agg.total_points == agg.total_assists == agg.total_rebounds == agg.total_goals == 0
        assert agg.average_points == agg.average_assists == 0
        assert agg.average_rebounds == agg.average_goals == 0

    def test_totals_and_averages(self) -> None:
        lines = [
            stats_line("p1", "g1", points=10, assists=2, rebounds=4),
            stats_line("p1", "g2", points=20, goals=1),
            stats_line("p2", "g1", points=99),
        ]
        agg = aggregate_player_stats("p1", lines)
        assert agg.total_games == 2
        assert agg.total_points == 30
        assert agg.total_assists == 2
        assert agg.total_rebounds == 4
        assert agg.total_goals == 1
        assert agg.average_points == 15
        assert agg.average_assists == 1
        assert agg.average_rebounds == 2
        assert agg.average_goals == 0.5

    def test_duplicate_game_lines_each_count(self) -> None:
        lines = [stats_line("p1", "g1", points=10), stats_line("p1", "g1", points=10)]
        agg = aggregate_player_stats("p1", lines)
        assert agg.total_games == 2
        assert agg.total_points == 20


class TestWallClockTimes:
    def test_offset_is_dropped(self) -> None:
        event = make_event(at="19:00:00+02:00")
        assert event.time == time(19, 0)
        assert event.time.tzinfo is None

    def test_mixed_inputs_still_sort(self) -> None:
        events = [make_event("z", at="19:00:00Z"), make_event("n", at="18:00")]
        assert [e.id for e in split_events(events, datetime(2024, 6, 1, 12, 0))[0]] == ["n", "z"]
