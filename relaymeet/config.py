from pathlib import Path

import yaml
from pydantic import BaseModel, Field, TypeAdapter

from relaymeet.models import Athlete, EventEntry


class Config(BaseModel):
    """Configuration data for running a relaymeet meet."""

    name: str = Field("relaymeet", description="Name of the meet.")
    roster: Path = Field(..., description="Path to the athlete roster YAML file.")
    store_path: Path = Field(
        Path("relaymeet-store.json"),
        description="JSON file holding teams, sequence and assignments.",
    )
    number_of_teams: int = Field(
        4, ge=1, description="Number of teams to divide athletes into."
    )
    total_events: int = Field(5, ge=1, description="Number of events in the meet.")
    num_relays: int = Field(
        1, ge=0, description="How many of the events must be relays."
    )
    relay_positions: list[int] = Field(
        default_factory=list,
        description="Preferred 1-based relay positions; the rest are random.",
    )
    event_pool: dict[str, list[EventEntry]] | None = Field(
        None, description="Event pool override; the stock pool is used if unset."
    )

    def validate_paths(self) -> None:
        """Ensure the roster exists and is a file."""
        if not self.roster.exists():
            raise FileNotFoundError(f"roster does not exist: {self.roster}")
        if not self.roster.is_file():
            raise ValueError(f"roster is not a file: {self.roster}")


def resolve_config_paths(config_data: dict, config_path: Path) -> dict:
    """Resolve relative data paths against the configuration file directory.

    Args:
        config_data: Raw configuration dictionary.
        config_path: Path to the configuration file.

    Returns:
        dict: Configuration data with resolved paths.
    """
    if not config_data or not config_path:
        return config_data or {}

    resolved_data = dict(config_data)
    base_dir = config_path.parent
    for key in ["roster", "store_path"]:
        value = resolved_data.get(key)
        if not value:
            continue
        path = Path(value)
        if not path.is_absolute():
            resolved_data[key] = str((base_dir / path).resolve())
    return resolved_data


def load_config(config_path: Path) -> Config:
    """
    Reads a YAML config file into a Config.

    Raises:
        pydantic.ValidationError: If a field is missing or malformed.
        FileNotFoundError: If the config or the roster does not exist.
    """
    config_path = Path(config_path)
    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    config = Config(**resolve_config_paths(data, config_path))
    config.validate_paths()
    return config


_roster_adapter = TypeAdapter(list[Athlete])


def load_roster(roster_path: Path) -> list[Athlete]:
    """
    Loads athletes from a YAML roster.

    The file holds either a list of athletes or a mapping with an `athletes`
    list. Fields use the stored names (`id`, `name`, `gender`, `tier`,
    `bestEvents`).

    Raises:
        pydantic.ValidationError: If an athlete is malformed.
        ValueError: If two athletes share an id.
    """
    with open(roster_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("athletes") or []

    athletes = _roster_adapter.validate_python(data)

    seen = set()
    for athlete in athletes:
        if athlete.id in seen:
            raise ValueError(f"Duplicate athlete id in roster: {athlete.id}")
        seen.add(athlete.id)

    return athletes
