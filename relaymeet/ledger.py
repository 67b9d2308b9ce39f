"""
Per-event record of which athletes each team fielded.

Everything here is a pure function over an in-memory list of EventAssignment,
except `load_event_assignments`, `save_event_assignments`,
`set_assignment_for_event` and `clear_all_assignments`, which are the only
functions that touch the store. Store failures are logged and degrade to a safe
default instead of propagating.
"""

import logging
import re
from datetime import datetime, timezone

from pydantic import TypeAdapter

from relaymeet.models import EventAssignment, Team, TeamAssignment
from relaymeet.store import EVENT_ASSIGNMENTS_KEY, KeyValueStore, StoreError
from relaymeet.utils import NOT_RUNNING

logger = logging.getLogger(__name__)

DEFAULT_RELAY_ATHLETES = 4

_assignments_adapter = TypeAdapter(list[EventAssignment])


async def load_event_assignments(store: KeyValueStore) -> list[EventAssignment]:
    """
    Reads the stored assignments.

    Returns:
        list[EventAssignment]: Stored records, or an empty list if nothing is
        stored or the store could not be read.
    """
    try:
        raw = await store.get(EVENT_ASSIGNMENTS_KEY)
        if not raw:
            return []
        return _assignments_adapter.validate_json(raw)
    except (StoreError, ValueError) as e:
        logger.error("Error loading event assignments: %s", e)
        return []


async def save_event_assignments(
    store: KeyValueStore, assignments: list[EventAssignment]
) -> bool:
    """
    Writes `assignments` to the store, replacing whatever was there.

    Returns:
        bool: False if the store rejected the write.
    """
    try:
        payload = _assignments_adapter.dump_json(assignments, by_alias=True)
        await store.set(EVENT_ASSIGNMENTS_KEY, payload.decode("utf-8"))
        return True
    except StoreError as e:
        logger.error("Error saving event assignments: %s", e)
        return False


async def clear_all_assignments(store: KeyValueStore) -> bool:
    """Removes every stored assignment. Returns False if the store failed."""
    try:
        await store.remove(EVENT_ASSIGNMENTS_KEY)
        return True
    except StoreError as e:
        logger.error("Error clearing assignments: %s", e)
        return False


async def set_assignment_for_event(
    store: KeyValueStore,
    assignments: list[EventAssignment],
    event_index: int,
    event_name: str,
    is_relay: bool,
    team_assignments: list[TeamAssignment],
) -> list[EventAssignment]:
    """
    Replaces the record for `event_index` and persists the result.

    Args:
        store: Where the assignments are persisted.
        assignments: Current records; never mutated.
        event_index: Position of the event in the sequence.
        event_name: Name of the event at that position.
        is_relay: Whether the event is a relay.
        team_assignments: Each team's selection for the event.

    Returns:
        list[EventAssignment]: A new list sorted by event index. If saving
        failed, the very same `assignments` object is returned instead, so
        callers detect failure with an identity check.
    """
    record = EventAssignment(
        event_index=event_index,
        event_name=event_name,
        is_relay=is_relay,
        assignments=list(team_assignments),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

    updated = [a for a in assignments if a.event_index != event_index]
    updated.append(record)
    updated.sort(key=lambda a: a.event_index)

    if await save_event_assignments(store, updated):
        return updated
    return assignments


def get_assignment_for_event(
    assignments: list[EventAssignment], event_index: int
) -> EventAssignment | None:

    for assignment in assignments:
        if assignment.event_index == event_index:
            return assignment
    return None


def get_team_assignment_for_event(
    assignments: list[EventAssignment], event_index: int, team_id: int
) -> TeamAssignment | None:

    event_assignment = get_assignment_for_event(assignments, event_index)
    if event_assignment is None:
        return None
    for team_assignment in event_assignment.assignments:
        if team_assignment.team_id == team_id:
            return team_assignment
    return None


def _collect_athlete_ids(assignments, include_sentinel=True) -> list[str]:
    """Union of athlete ids across `assignments`, in first-seen order."""
    used = {}
    for assignment in assignments:
        for team_assignment in assignment.assignments:
            for athlete_id in team_assignment.athlete_ids:
                if athlete_id == NOT_RUNNING and not include_sentinel:
                    continue
                used[athlete_id] = None
    return list(used)


def get_all_used_athlete_ids(assignments: list[EventAssignment]) -> list[str]:
    """
    Every athlete id fielded in any event.

    The NOT_RUNNING marker is included; callers filter it themselves.
    """
    return _collect_athlete_ids(assignments)


def get_used_athlete_ids_excluding_event(
    assignments: list[EventAssignment], event_index: int
) -> list[str]:
    """
    Athlete ids fielded in every event except `event_index`, without NOT_RUNNING.

    This is the set used to lock athletes out while editing an event, so an
    athlete picked only for `event_index` stays selectable there.
    """
    return _collect_athlete_ids(
        (a for a in assignments if a.event_index != event_index),
        include_sentinel=False,
    )


def get_used_athlete_ids_up_to_event(
    assignments: list[EventAssignment], event_index: int
) -> list[str]:
    """
    Athlete ids fielded in events strictly before `event_index`.

    Unlike `get_used_athlete_ids_excluding_event`, the NOT_RUNNING marker is
    kept in the result.
    """
    return _collect_athlete_ids(a for a in assignments if a.event_index < event_index)


def is_athlete_used(
    assignments: list[EventAssignment],
    athlete_id: str,
    before_event_index: int | None = None,
) -> bool:
    """
    Whether `athlete_id` was fielded in any event, or in any event strictly
    before `before_event_index` when one is given.
    """
    if before_event_index is not None:
        assignments = [a for a in assignments if a.event_index < before_event_index]
    return any(
        athlete_id in team_assignment.athlete_ids
        for assignment in assignments
        for team_assignment in assignment.assignments
    )


def is_event_fully_assigned(
    assignments: list[EventAssignment], event_index: int, teams: list[Team]
) -> bool:
    """
    Whether the event has been saved with at least one team's selection.

    A partial save counts: some teams may be running while others opted out or
    were left empty. `teams` is currently unused.
    """
    event_assignment = get_assignment_for_event(assignments, event_index)
    if event_assignment is None:
        return False
    return len(event_assignment.assignments) > 0


def get_assignment_stats(assignments: list[EventAssignment], teams: list[Team]) -> dict:
    """
    Summarizes assignment progress.

    An event counts as fully assigned here only if every team has a non-empty
    selection (athletes or NOT_RUNNING), which is stricter than
    `is_event_fully_assigned`.
    """
    fully_assigned = 0
    for assignment in assignments:
        selected = {
            ta.team_id for ta in assignment.assignments if len(ta.athlete_ids) > 0
        }
        if all(team.id in selected for team in teams):
            fully_assigned += 1

    total_athletes = sum(len(team.athletes) for team in teams)
    used_athletes = len(get_all_used_athlete_ids(assignments))

    return {
        "totalEvents": len(assignments),
        "fullyAssignedEvents": fully_assigned,
        "totalAthletes": total_athletes,
        "usedAthletes": used_athletes,
        "availableAthletes": total_athletes - used_athletes,
    }


def is_relay_event(event_name: str | None) -> bool:
    """
    Guesses whether `event_name` is a relay from its name alone.

    Relays look like "4x100", "100-100-200-400" or "Sprint Medley Relay".
    """
    if not event_name:
        return False
    return "4x" in event_name or "-" in event_name or "relay" in event_name.lower()


def get_relay_athlete_count(event_name: str | None) -> int:
    """
    Number of legs (athletes per team) for a relay, inferred from its name.

    "4x..." relays and named relays have 4 legs. Dashed relays such as
    "100-100-200-400" have one leg per segment that starts with a digit.
    Anything unrecognized defaults to 4.
    """
    if not event_name:
        return DEFAULT_RELAY_ATHLETES

    name = event_name.lower()

    if "4x" in name:
        return DEFAULT_RELAY_ATHLETES

    if "-" in name:
        legs = [s for s in name.split("-") if re.match(r"\d", s.strip())]
        return len(legs) or DEFAULT_RELAY_ATHLETES

    return DEFAULT_RELAY_ATHLETES


def required_athlete_count(event_name: str | None) -> int:
    """Athletes each team must field: relay legs for relays, otherwise one."""
    return get_relay_athlete_count(event_name) if is_relay_event(event_name) else 1
