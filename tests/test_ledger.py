"""Tests for the per-event eligibility ledger."""

import asyncio
import json

import pytest

from relaymeet import ledger
from relaymeet.models import Athlete, EventAssignment, Team, TeamAssignment
from relaymeet.store import EVENT_ASSIGNMENTS_KEY, MemoryStore, StoreError
from relaymeet.utils import NOT_RUNNING


class BrokenStore(MemoryStore):
    """Store whose every operation fails."""

    async def get(self, key):
        raise StoreError("store unavailable")

    async def set(self, key, value):
        raise StoreError("store unavailable")

    async def remove(self, key):
        raise StoreError("store unavailable")


def make_event(index, name, picks, is_relay=False):
    """Builds an EventAssignment from {team_id: [athlete ids]}."""
    return EventAssignment(
        event_index=index,
        event_name=name,
        is_relay=is_relay,
        assignments=[
            TeamAssignment(team_id=team_id, athlete_ids=ids)
            for team_id, ids in picks.items()
        ],
    )


def make_assignments():
    return [
        make_event(0, "100m", {1: ["a1"], 2: ["b1"]}),
        make_event(1, "4x100", {1: ["a2", "a3", "a4", "a5"], 2: [NOT_RUNNING]}, True),
        make_event(3, "800m", {1: ["a6"], 2: ["b2"]}),
    ]


class TestUsageQueries:
    """Tests for the pure used-athlete queries."""

    def test_strictly_before_semantics(self):
        assignments = [make_event(0, "100m", {1: ["a1"]})]

        assert ledger.is_athlete_used(assignments, "a1", 0) is False
        assert ledger.is_athlete_used(assignments, "a1", 1) is True
        assert ledger.is_athlete_used(assignments, "a1") is True
        assert ledger.is_athlete_used(assignments, "zz") is False

    def test_all_used_includes_sentinel(self):
        used = ledger.get_all_used_athlete_ids(make_assignments())

        assert set(used) == {"a1", "b1", "a2", "a3", "a4", "a5", "a6", "b2", NOT_RUNNING}
        assert len(used) == len(set(used))

    def test_excluding_event_drops_event_and_sentinel(self):
        used = ledger.get_used_athlete_ids_excluding_event(make_assignments(), 0)

        assert "a1" not in used
        assert "b1" not in used
        assert NOT_RUNNING not in used
        assert {"a2", "a6", "b2"} <= set(used)

    @pytest.mark.parametrize("event_index", [0, 1, 3, 5])
    def test_athlete_only_in_excluded_event_is_absent(self, event_index):
        assignments = make_assignments()
        others = {
            athlete_id
            for a in assignments
            if a.event_index != event_index
            for ta in a.assignments
            for athlete_id in ta.athlete_ids
        }
        excluded = ledger.get_assignment_for_event(assignments, event_index)
        only_here = set()
        if excluded:
            only_here = {
                i for ta in excluded.assignments for i in ta.athlete_ids
            } - others

        used = set(ledger.get_used_athlete_ids_excluding_event(assignments, event_index))
        assert not only_here & used

    def test_up_to_event_keeps_sentinel(self):
        used = ledger.get_used_athlete_ids_up_to_event(make_assignments(), 3)

        assert set(used) == {"a1", "b1", "a2", "a3", "a4", "a5", NOT_RUNNING}
        assert ledger.get_used_athlete_ids_up_to_event(make_assignments(), 0) == []

    def test_lookups(self):
        assignments = make_assignments()

        assert ledger.get_assignment_for_event(assignments, 3).event_name == "800m"
        assert ledger.get_assignment_for_event(assignments, 2) is None

        team_assignment = ledger.get_team_assignment_for_event(assignments, 1, 2)
        assert team_assignment.not_running
        assert ledger.get_team_assignment_for_event(assignments, 1, 9) is None
        assert ledger.get_team_assignment_for_event(assignments, 2, 1) is None

    def test_is_event_fully_assigned(self):
        assignments = make_assignments() + [make_event(4, "200m", {})]

        assert ledger.is_event_fully_assigned(assignments, 0, []) is True
        assert ledger.is_event_fully_assigned(assignments, 2, []) is False
        assert ledger.is_event_fully_assigned(assignments, 4, []) is False

        # a single team's selection is enough
        partial = [make_event(0, "100m", {2: ["b1"]})]
        assert ledger.is_event_fully_assigned(partial, 0, []) is True

    def test_assignment_stats(self):
        athletes = [
            Athlete(id=f"a{i}", name=f"A{i}", gender="Male", tier="Med")
            for i in range(1, 7)
        ]
        teams = [
            Team(id=1, name="Team 1", color="#FF0000", athletes=athletes),
            Team(id=2, name="Team 2", color="#0000FF"),
        ]
        assignments = make_assignments() + [make_event(4, "200m", {1: ["a1"]})]

        stats = ledger.get_assignment_stats(assignments, teams)

        assert stats["totalEvents"] == 4
        assert stats["fullyAssignedEvents"] == 3
        assert stats["totalAthletes"] == 6
        assert stats["usedAthletes"] == 9
        assert stats["availableAthletes"] == -3


class TestRelayNames:
    """Tests for relay detection from event names."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("4x100", True),
            ("4X400", False),
            ("100-100-200-400", True),
            ("Sprint Medley Relay", True),
            ("100m", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_relay_event(self, name, expected):
        assert ledger.is_relay_event(name) is expected

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("4x100", 4),
            ("100-100-200-400", 4),
            ("200-400-800", 3),
            ("1200-400-800-1600-3200", 5),
            ("Mile-Medley", 4),
            ("Shuttle Relay", 4),
            ("100m", 4),
            (None, 4),
        ],
    )
    def test_get_relay_athlete_count(self, name, expected):
        assert ledger.get_relay_athlete_count(name) == expected

    def test_required_athlete_count(self):
        assert ledger.required_athlete_count("200-400-800") == 3
        assert ledger.required_athlete_count("400m") == 1


class TestPersistence:
    """Tests for the functions that touch the store."""

    def test_set_replaces_sorts_and_persists(self):
        store = MemoryStore()
        assignments = make_assignments()

        updated = asyncio.run(
            ledger.set_assignment_for_event(
                store,
                assignments,
                2,
                "200m",
                False,
                [TeamAssignment(team_id=1, athlete_ids=["a9"])],
            )
        )
        updated = asyncio.run(
            ledger.set_assignment_for_event(
                store,
                updated,
                0,
                "100m",
                False,
                [TeamAssignment(team_id=1, athlete_ids=["a7"])],
            )
        )

        assert [a.event_index for a in updated] == [0, 1, 2, 3]
        assert ledger.get_assignment_for_event(updated, 0).assignments[0].athlete_ids == ["a7"]
        assert updated[2].timestamp is not None
        # input list is never mutated
        assert len(assignments) == 3

        loaded = asyncio.run(ledger.load_event_assignments(store))
        assert loaded == updated

    def test_stored_with_camel_case_fields(self):
        store = MemoryStore()
        asyncio.run(ledger.save_event_assignments(store, make_assignments()))

        stored = json.loads(store.data[EVENT_ASSIGNMENTS_KEY])
        assert stored[1]["eventIndex"] == 1
        assert stored[1]["eventName"] == "4x100"
        assert stored[1]["isRelay"] is True
        assert stored[1]["assignments"][1] == {"teamId": 2, "athleteIds": [NOT_RUNNING]}

    def test_failed_save_returns_same_list(self, caplog):
        assignments = make_assignments()

        result = asyncio.run(
            ledger.set_assignment_for_event(BrokenStore(), assignments, 5, "400m", False, [])
        )

        assert result is assignments
        assert "Error saving event assignments" in caplog.text

    def test_load_degrades_to_empty(self):
        assert asyncio.run(ledger.load_event_assignments(MemoryStore())) == []
        assert asyncio.run(ledger.load_event_assignments(BrokenStore())) == []

        corrupt = MemoryStore({EVENT_ASSIGNMENTS_KEY: "{not json"})
        assert asyncio.run(ledger.load_event_assignments(corrupt)) == []

    def test_load_existing_data(self):
        raw = json.dumps(
            [
                {
                    "eventIndex": 0,
                    "eventName": "100m",
                    "isRelay": False,
                    "assignments": [{"teamId": 1, "athleteIds": ["a1"]}],
                    "timestamp": "2024-05-01T10:00:00.000Z",
                }
            ]
        )
        loaded = asyncio.run(
            ledger.load_event_assignments(MemoryStore({EVENT_ASSIGNMENTS_KEY: raw}))
        )

        assert loaded[0].assignments[0].athlete_ids == ["a1"]
        assert ledger.is_athlete_used(loaded, "a1")

    def test_clear_all_assignments(self):
        store = MemoryStore()
        asyncio.run(ledger.save_event_assignments(store, make_assignments()))

        assert asyncio.run(ledger.clear_all_assignments(store)) is True
        assert EVENT_ASSIGNMENTS_KEY not in store.data
        assert asyncio.run(ledger.clear_all_assignments(BrokenStore())) is False
