"""Serializable records shared by the balancer, the sequence generator and the ledger.

Field names are stored in camelCase so existing meet data loads unchanged.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from relaymeet.utils import NOT_RUNNING

Gender = Literal["Male", "Female"]
Tier = Literal["High", "Med", "Low"]


class Record(BaseModel):
    """Base for persisted records: accepts snake_case or camelCase on input."""

    model_config = ConfigDict(populate_by_name=True)


class Athlete(Record):
    """
    A single athlete on the roster.

    Attributes:
        id (str): Unique identifier.
        name (str): Display name.
        gender (str): "Male" or "Female".
        tier (str): Skill tier, "High", "Med" or "Low".
        best_events (str or None): Free-form note on preferred events.
    """

    # rosters often number athletes; keep ids as strings regardless
    model_config = ConfigDict(
        populate_by_name=True, frozen=True, coerce_numbers_to_str=True
    )

    id: str
    name: str
    gender: Gender
    tier: Tier
    best_events: str | None = Field(None, alias="bestEvents")

    def __str__(self):
        return f"{self.name}"


class Team(Record):
    """A team and the ordered list of athletes it owns."""

    id: int
    name: str
    color: str
    athletes: list[Athlete] = Field(default_factory=list)

    def __str__(self):
        return f"{self.name}"

    def get_athlete(self, athlete_id: str) -> Athlete | None:
        for athlete in self.athletes:
            if athlete.id == athlete_id:
                return athlete
        return None

    def get_athletes_by_attribute(self, attribute: str, value) -> list[Athlete]:
        """
        Returns this team's athletes whose `attribute` equals `value`.

        Args:
            attribute (str): Athlete attribute name, e.g. "gender" or "tier".
            value: Value to match.

        Returns:
            list[Athlete]: Matching athletes, in team order.
        """
        return [a for a in self.athletes if getattr(a, attribute) == value]


class EventEntry(Record):
    """One event in the pool, toggled on or off in settings."""

    name: str
    enabled: bool = True


class TeamAssignment(Record):
    """The athletes one team fielded for one event."""

    team_id: int = Field(..., alias="teamId")
    athlete_ids: list[str] = Field(default_factory=list, alias="athleteIds")

    @property
    def not_running(self) -> bool:
        return self.athlete_ids == [NOT_RUNNING]


class EventAssignment(Record):
    """Every team's selection for the event at `event_index` of the sequence."""

    event_index: int = Field(..., alias="eventIndex")
    event_name: str = Field(..., alias="eventName")
    is_relay: bool = Field(False, alias="isRelay")
    assignments: list[TeamAssignment] = Field(default_factory=list)
    timestamp: str | None = None


class RouletteSettings(Record):
    """
    Saved defaults for generating an event sequence.

    Attributes:
        total_events (int): Number of events in the sequence.
        num_relays (int): How many of them are relays.
        relay_positions (list[int]): Preferred relay slots, 1-based.
    """

    total_events: int = Field(5, alias="totalEvents")
    num_relays: int = Field(1, alias="numRelays")
    relay_positions: list[int] = Field(default_factory=list, alias="relayPositions")


class Result(BaseModel):
    """Structured outcome of an operation: failures carry a message, never raise."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    error: str | None = None

    @classmethod
    def failure(cls, error: str):
        return cls(success=False, error=error)


class AssignResult(Result):
    teams: list[Team] | None = None
    stats: dict | None = None


class MoveResult(Result):
    teams: list[Team] | None = None


class SequenceResult(Result):
    sequence: list[str] | None = None
    relay_positions: list[int] | None = Field(None, alias="relayPositions")


class SelectionResult(Result):
    assignments: list[EventAssignment] | None = None
    incomplete_team_ids: list[int] = Field(
        default_factory=list, alias="incompleteTeamIds"
    )


class SettingsResult(Result):
    settings: RouletteSettings | None = None
