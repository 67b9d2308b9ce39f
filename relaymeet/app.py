import json
import logging
import random

from pydantic import TypeAdapter

from relaymeet import ledger, store as keys
from relaymeet.algorithms import DEFAULT_ALGORITHM
from relaymeet.bus import EventBus
from relaymeet.config import Config, load_roster
from relaymeet.models import (
    AssignResult,
    Athlete,
    MoveResult,
    RouletteSettings,
    SelectionResult,
    SequenceResult,
    SettingsResult,
    Team,
    TeamAssignment,
)
from relaymeet.sequence import (
    default_event_pool,
    dump_event_pool,
    generate_event_sequence,
    parse_event_pool,
)
from relaymeet.store import JsonFileStore, KeyValueStore, StoreError
from relaymeet.teams import assign_teams, get_team, move_athlete
from relaymeet.utils import NOT_RUNNING, format_positions

logger = logging.getLogger(__name__)

_athletes_adapter = TypeAdapter(list[Athlete])
_teams_adapter = TypeAdapter(list[Team])

GENDER_FILTERS = {"mixed": None, "male": "Male", "female": "Female"}


class Meet:
    """
    A meet in progress: roster, teams, event sequence and per-event selections.

    Pure decisions are delegated to `relaymeet.teams`, `relaymeet.sequence`
    and `relaymeet.ledger`; this class persists their results and announces
    changes on `bus`. Every mutating method must be awaited before the next
    one is issued.

    Bus events:
        teamsUpdated (int): Number of teams after a change.
        sequenceGenerated (list[str]): The new sequence; assignments were cleared.
        eventRevealed (int): Number of events now revealed.
        assignmentsUpdated (int): Index of the event whose selection was saved.
        settings.roulette.updated (RouletteSettings): New sequence defaults.
    """

    def __init__(
        self, store: KeyValueStore, bus: EventBus | None = None, name="relaymeet"
    ):
        self.name = name
        self.store = store
        self.bus = bus if bus is not None else EventBus()
        self.athletes: list[Athlete] = []
        self.teams: list[Team] = []
        self.sequence: list[str] = []
        self.revealed_index = 0
        self.event_pool = default_event_pool()
        self.assignments = []

    def __repr__(self):
        return f"{self.name}"

    # =========================================================================
    # persistence

    async def _load(self, key: str, parse, default):
        try:
            raw = await self.store.get(key)
            return parse(raw) if raw is not None else default
        except (StoreError, ValueError) as e:
            logger.error("Error loading %s: %s", key, e)
            return default

    async def _save(self, key: str, value: str) -> bool:
        try:
            await self.store.set(key, value)
            return True
        except StoreError as e:
            logger.error("Error saving %s: %s", key, e)
            return False

    async def _remove(self, key: str) -> bool:
        try:
            await self.store.remove(key)
            return True
        except StoreError as e:
            logger.error("Error removing %s: %s", key, e)
            return False

    async def load(self) -> None:
        """Restores all meet state from the store, falling back to defaults."""
        self.athletes = await self._load(
            keys.ATHLETES_KEY, _athletes_adapter.validate_json, []
        )
        self.teams = await self._load(keys.TEAMS_KEY, _teams_adapter.validate_json, [])
        self.sequence = await self._load(
            keys.EVENT_SEQUENCE_KEY, TypeAdapter(list[str]).validate_json, []
        )
        self.revealed_index = await self._load(keys.REVEALED_INDEX_KEY, int, 0)
        self.event_pool = await self._load(
            keys.EVENT_POOL_KEY,
            lambda raw: parse_event_pool(json.loads(raw)),
            default_event_pool(),
        )
        self.assignments = await ledger.load_event_assignments(self.store)

    async def set_athletes(self, athletes: list[Athlete]) -> bool:
        self.athletes = list(athletes)
        payload = _athletes_adapter.dump_json(self.athletes, by_alias=True).decode()
        return await self._save(keys.ATHLETES_KEY, payload)

    async def set_event_pool(self, event_pool) -> bool:
        self.event_pool = event_pool
        return await self._save(
            keys.EVENT_POOL_KEY,
            json.dumps(dump_event_pool(event_pool)),
        )

    async def _save_teams(self) -> bool:
        payload = _teams_adapter.dump_json(self.teams, by_alias=True).decode()
        return await self._save(keys.TEAMS_KEY, payload)

    async def _save_state(self) -> bool:
        saved_sequence = await self._save(
            keys.EVENT_SEQUENCE_KEY, json.dumps(self.sequence)
        )
        saved_index = await self._save(
            keys.REVEALED_INDEX_KEY, str(self.revealed_index)
        )
        return saved_sequence and saved_index

    # =========================================================================
    # teams

    async def assign_teams(
        self, number_of_teams: int, algorithm=DEFAULT_ALGORITHM, observer=None
    ) -> AssignResult:
        """
        Balances the roster into new teams and persists them.

        Previous event results are discarded since they refer to old teams.
        """
        if self.athletes and number_of_teams > len(self.athletes):
            return AssignResult.failure(
                f"Cannot create {number_of_teams} teams from "
                f"{len(self.athletes)} athletes"
            )

        result = assign_teams(self.athletes, number_of_teams, algorithm, observer)
        if not result.success:
            return result

        self.teams = result.teams
        await self._save_teams()
        await self._remove(keys.EVENT_RESULTS_KEY)
        self.bus.emit("teamsUpdated", len(self.teams))
        return result

    async def move_athlete(
        self, athlete_id: str, from_team_id: int, to_team_id: int
    ) -> MoveResult:

        result = move_athlete(self.teams, athlete_id, from_team_id, to_team_id)
        if result.success:
            await self._save_teams()
            self.bus.emit("teamsUpdated", len(self.teams))
        return result

    async def rename_team(
        self, team_id: int, name: str | None = None, color: str | None = None
    ) -> bool:
        """Updates a team's display name and/or color. Returns False if not found."""
        team = get_team(self.teams, team_id)
        if team is None:
            return False
        if name:
            team.name = name
        if color:
            team.color = color
        await self._save_teams()
        self.bus.emit("teamsUpdated", len(self.teams))
        return True

    # =========================================================================
    # event sequence

    async def generate_sequence(
        self, total_events: int, number_of_relays: int, relay_positions=()
    ) -> SequenceResult:
        """
        Generates a fresh event order and starts the meet over.

        On success all event results and athlete assignments are cleared and
        no events are revealed.
        """
        result = generate_event_sequence(
            self.event_pool, total_events, number_of_relays, relay_positions
        )
        if not result.success:
            return result

        await self._remove(keys.EVENT_RESULTS_KEY)
        await ledger.clear_all_assignments(self.store)
        self.assignments = []

        self.sequence = result.sequence
        self.revealed_index = 0
        await self._save_state()

        logger.info(
            "Generated sequence %s with relays at %s",
            result.sequence,
            format_positions(result.relay_positions),
        )
        self.bus.emit("sequenceGenerated", list(self.sequence))
        return result

    async def reveal_next_event(self) -> str | None:
        """
        Reveals the next event in the sequence.

        Returns:
            str | None: The revealed event name, or None if all are revealed.
        """
        if self.revealed_index >= len(self.sequence):
            return None

        event_name = self.sequence[self.revealed_index]
        self.revealed_index += 1
        await self._save_state()
        self.assignments = await ledger.load_event_assignments(self.store)
        self.bus.emit("eventRevealed", self.revealed_index)
        return event_name

    async def reset_sequence(self) -> None:
        """Discards the sequence together with all results and assignments."""
        await self._remove(keys.EVENT_RESULTS_KEY)
        await ledger.clear_all_assignments(self.store)
        self.assignments = []
        self.sequence = []
        self.revealed_index = 0
        await self._save_state()
        self.bus.emit("sequenceGenerated", [])

    @property
    def revealed_events(self) -> list[str]:
        return self.sequence[: self.revealed_index]

    async def load_roulette_settings(
        self, default: RouletteSettings | None = None
    ) -> RouletteSettings:
        """Returns the saved sequence defaults, or `default` if none are stored."""
        return await self._load(
            keys.ROULETTE_SETTINGS_KEY,
            RouletteSettings.model_validate_json,
            default if default is not None else RouletteSettings(),
        )

    async def save_roulette_settings(
        self, total_events: int, num_relays: int, relay_positions=()
    ) -> SettingsResult:
        """
        Validates and stores the defaults used to generate a sequence.

        Args:
            total_events: Number of events, at least 1.
            num_relays: Number of relays, between 0 and `total_events`.
            relay_positions: Preferred relay slots, 1-based. Slots outside
                1..total_events are dropped.

        Returns:
            SettingsResult: The settings as saved, or an error message.
        """
        if total_events < 1:
            return SettingsResult.failure("Total events must be at least 1.")
        if not 0 <= num_relays <= total_events:
            return SettingsResult.failure(
                "Number of relays must be between 0 and total events."
            )

        positions = [p for p in relay_positions if 1 <= p <= total_events]
        settings = RouletteSettings(
            total_events=total_events,
            num_relays=num_relays,
            relay_positions=positions[:total_events],
        )
        saved = await self._save(
            keys.ROULETTE_SETTINGS_KEY, settings.model_dump_json(by_alias=True)
        )
        if not saved:
            return SettingsResult.failure("Failed to save settings.")

        self.bus.emit("settings.roulette.updated", settings)
        return SettingsResult(success=True, settings=settings)

    # =========================================================================
    # athlete selection

    def available_athletes(
        self, team_id: int, event_index: int, gender: str = "mixed"
    ) -> list[Athlete]:
        """
        Athletes of `team_id` that may still be picked for `event_index`.

        Athletes fielded in any other event are excluded; athletes already
        picked for this event remain available so the selection can be edited.

        Args:
            team_id: Team to list athletes for.
            event_index: Event being edited.
            gender: "mixed", "male" or "female".

        Returns:
            list[Athlete]: Selectable athletes in team order.
        """
        team = get_team(self.teams, team_id)
        if team is None:
            return []

        if gender not in GENDER_FILTERS:
            raise ValueError(f"Unknown gender filter: {gender!r}")
        wanted = GENDER_FILTERS[gender]

        used = set(
            ledger.get_used_athlete_ids_excluding_event(self.assignments, event_index)
        )
        return [
            a
            for a in team.athletes
            if a.id not in used and (wanted is None or a.gender == wanted)
        ]

    def merge_filtered_selection(
        self, team_id: int, event_index: int, gender: str, picked: list[str]
    ) -> list[str]:
        """
        Completes a selection made from a gender-filtered list.

        Athletes already saved for `event_index` that `gender` kept off the
        list are put back, so filtering never drops an earlier pick. A
        selection containing NOT_RUNNING is returned as given.
        """
        if NOT_RUNNING in picked:
            return list(picked)

        current = ledger.get_team_assignment_for_event(
            self.assignments, event_index, team_id
        )
        if current is None:
            return list(picked)

        shown = {a.id for a in self.available_athletes(team_id, event_index, gender)}
        hidden = [
            athlete_id
            for athlete_id in current.athlete_ids
            if athlete_id != NOT_RUNNING and athlete_id not in shown
        ]
        return hidden + [a for a in picked if a not in hidden]

    async def submit_selection(
        self, event_index: int, selections: dict[int, list[str]]
    ) -> SelectionResult:
        """
        Validates and records each team's athletes for a revealed event.

        A team's selection is either athletes from its own roster, at most the
        event's required count, or `[NOT_RUNNING]`. Since athletes must come
        from the selecting team, no athlete can represent two teams in one
        event. Athletes fielded in any other event are rejected. Teams with
        fewer athletes than required are saved anyway and reported back in
        `incomplete_team_ids`; teams with an empty selection are left out.

        Returns:
            SelectionResult: The updated assignments, or an error message.
        """
        if not self.teams:
            return SelectionResult.failure(
                "No teams found. Create teams before assigning athletes."
            )

        if not 0 <= event_index < min(self.revealed_index, len(self.sequence)):
            return SelectionResult.failure(
                f"Event {event_index + 1} has not been revealed"
            )

        event_name = self.sequence[event_index]
        is_relay = ledger.is_relay_event(event_name)
        required = ledger.required_athlete_count(event_name)
        used_elsewhere = set(
            ledger.get_used_athlete_ids_excluding_event(self.assignments, event_index)
        )

        for team_id in selections:
            if get_team(self.teams, team_id) is None:
                return SelectionResult.failure(f"Invalid team ID: {team_id}")

        team_assignments = []
        incomplete = []
        for team in self.teams:
            athlete_ids = list(selections.get(team.id) or [])

            if NOT_RUNNING in athlete_ids:
                if athlete_ids != [NOT_RUNNING]:
                    return SelectionResult.failure(
                        f"{team} cannot both run and be marked not running"
                    )
                team_assignments.append(
                    TeamAssignment(team_id=team.id, athlete_ids=athlete_ids)
                )
                continue

            if len(set(athlete_ids)) != len(athlete_ids):
                return SelectionResult.failure(f"{team} selected an athlete twice")

            if len(athlete_ids) > required:
                return SelectionResult.failure(
                    f"{team} selected {len(athlete_ids)} athletes, "
                    f"but {event_name} takes {required}"
                )

            for athlete_id in athlete_ids:
                athlete = team.get_athlete(athlete_id)
                if athlete is None:
                    return SelectionResult.failure(
                        f"Athlete {athlete_id} is not on {team}"
                    )
                if athlete_id in used_elsewhere:
                    return SelectionResult.failure(
                        f"{athlete} has already competed in another event"
                    )

            if len(athlete_ids) < required:
                incomplete.append(team.id)
            if athlete_ids:
                team_assignments.append(
                    TeamAssignment(team_id=team.id, athlete_ids=athlete_ids)
                )

        if incomplete:
            logger.warning(
                "Saving %s with incomplete selections for teams %s",
                event_name,
                incomplete,
            )

        updated = await ledger.set_assignment_for_event(
            self.store,
            self.assignments,
            event_index,
            event_name,
            is_relay,
            team_assignments,
        )
        if updated is self.assignments:
            return SelectionResult.failure(
                "Failed to save assignments. Please try again."
            )

        self.assignments = updated
        self.bus.emit("assignmentsUpdated", event_index)
        return SelectionResult(
            success=True, assignments=updated, incomplete_team_ids=incomplete
        )

    def assignment_stats(self) -> dict:
        return ledger.get_assignment_stats(self.assignments, self.teams)


async def open_meet(
    config: Config, store: KeyValueStore | None = None, seed: int | None = None
) -> Meet:
    """Build a Meet from `config`, restoring any saved state.

    The roster from `config` replaces the stored roster. A configured event pool
    replaces the stored pool.

    Args:
        config: Loaded meet configuration.
        store: Store to use; defaults to a JSON file at `config.store_path`.
        seed: Optional RNG seed for deterministic teams and sequences.

    Returns:
        Meet: The loaded meet.
    """

    if seed is not None:
        random.seed(seed)

    meet = Meet(
        store=store if store is not None else JsonFileStore(config.store_path),
        name=config.name,
    )
    await meet.load()
    await meet.set_athletes(load_roster(config.roster))
    if config.event_pool is not None:
        await meet.set_event_pool(config.event_pool)
    return meet


async def main(meet: Meet, config: Config, algorithm=DEFAULT_ALGORITHM, observer=None):
    """Assign teams and generate an event sequence from `config`, then print both.

    Args:
        meet: Meet to mutate.
        config: Team count and sequence settings.
        algorithm: Balancing algorithm name.
        observer: Optional callback for algorithm progress updates.

    Raises:
        ValueError: If teams or the sequence could not be created.
    """
    team_result = await meet.assign_teams(config.number_of_teams, algorithm, observer)
    if not team_result.success:
        raise ValueError(team_result.error)
    print_team_summary(team_result)

    sequence_result = await meet.generate_sequence(
        config.total_events,
        config.num_relays,
        [p - 1 for p in config.relay_positions],
    )
    if not sequence_result.success:
        raise ValueError(sequence_result.error)
    print_sequence(meet.sequence, sequence_result.relay_positions)
    print()


def print_team_summary(result: AssignResult) -> None:

    stats = result.stats
    print(f"\n  Teams")
    print(f"  -----\n")
    print(
        f"  {stats['totalAthletes']} athletes "
        f"({stats['maleAthletes']} male, {stats['femaleAthletes']} female), "
        f"average team size {stats['averageTeamSize']}"
    )
    for team, balance in zip(result.teams, stats["teamBalance"]):
        header = (
            f"{team.name} ({balance['totalAthletes']} total, "
            f"{balance['distribution']}, score {balance['totalTalentScore']})"
        )
        print(f"\n  {header}")
        print(f"  {'-' * len(header)}\n")
        for athlete in team.athletes:
            print(f"    {athlete.name.ljust(24)} {athlete.gender.ljust(6)} {athlete.tier}")


def print_sequence(sequence: list[str], relay_positions=()) -> None:

    print(f"\n  Event sequence")
    print(f"  --------------\n")
    for i, event_name in enumerate(sequence):
        marker = " (relay)" if i in relay_positions else ""
        print(f"  {str(i + 1).rjust(3)}. {event_name}{marker}")
