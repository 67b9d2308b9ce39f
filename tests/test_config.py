"""Tests for configuration loading and the command line entry point."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner
from pydantic import ValidationError

from relaymeet.cli import cli
from relaymeet.config import load_config, load_roster

TESTS_DIR = Path(__file__).resolve().parent
SAMPLE_CONFIG = TESTS_DIR / "sample_meet_config.yaml"


class TestConfig:

    def test_sample_config(self):
        config = load_config(SAMPLE_CONFIG)

        assert config.name == "sample-meet"
        assert config.roster == (TESTS_DIR / "sample_roster.yaml").resolve()
        assert config.number_of_teams == 2
        assert config.relay_positions == [3]
        assert config.event_pool is None

    def test_missing_roster(self, tmp_path):
        path = tmp_path / "meet.yaml"
        path.write_text("roster: nowhere.yaml\n", encoding="utf-8")

        with pytest.raises(FileNotFoundError):
            load_config(path)

    def test_invalid_team_count(self, tmp_path):
        path = tmp_path / "meet.yaml"
        path.write_text(
            f"roster: {TESTS_DIR / 'sample_roster.yaml'}\nnumber_of_teams: 0\n",
            encoding="utf-8",
        )

        with pytest.raises(ValidationError):
            load_config(path)

    def test_event_pool_override(self, tmp_path):
        path = tmp_path / "meet.yaml"
        path.write_text(
            f"roster: {TESTS_DIR / 'sample_roster.yaml'}\n"
            "event_pool:\n"
            "  sprints:\n"
            "    - {name: 100m, enabled: true}\n"
            "  relays:\n"
            "    - {name: 4x100, enabled: false}\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.event_pool["relays"][0].enabled is False


class TestRoster:

    def test_sample_roster(self):
        athletes = load_roster(TESTS_DIR / "sample_roster.yaml")

        assert len(athletes) == 12
        assert athletes[0].best_events == "100m, 200m"
        assert athletes[1].best_events is None
        assert sum(1 for a in athletes if a.gender == "Female") == 6

    def test_plain_list_with_numeric_ids(self, tmp_path):
        path = tmp_path / "roster.yaml"
        path.write_text(
            "- {id: 1, name: Ann, gender: Female, tier: Low}\n"
            "- {id: 2, name: Bo, gender: Male, tier: Med}\n",
            encoding="utf-8",
        )

        athletes = load_roster(path)

        assert [a.id for a in athletes] == ["1", "2"]

    def test_duplicate_ids(self, tmp_path):
        path = tmp_path / "roster.yaml"
        path.write_text(
            "- {id: x, name: Ann, gender: Female, tier: Low}\n"
            "- {id: x, name: Bo, gender: Male, tier: Med}\n",
            encoding="utf-8",
        )

        with pytest.raises(ValueError, match="Duplicate athlete id"):
            load_roster(path)

    def test_unknown_tier(self, tmp_path):
        path = tmp_path / "roster.yaml"
        path.write_text(
            "- {id: x, name: Ann, gender: Female, tier: Elite}\n", encoding="utf-8"
        )

        with pytest.raises(ValidationError):
            load_roster(path)


class TestCli:

    def test_non_interactive_run(self, tmp_path):
        store_path = tmp_path / "store.json"
        result = CliRunner().invoke(
            cli,
            [
                "--config",
                str(SAMPLE_CONFIG),
                "--interactive",
                "false",
                "--seed",
                "5",
                "--store",
                str(store_path),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Meet loaded: sample-meet (12 athletes" in result.output
        assert "Event sequence" in result.output

        stored = json.loads(store_path.read_text(encoding="utf-8"))
        teams = json.loads(stored["teams"])
        sequence = json.loads(stored["eventSequence"])
        assert len(teams) == 2
        assert len(sequence) == 5
        assert sequence[2] in {
            "4x100",
            "4x200",
            "4x400",
            "100-100-200-400",
            "200-200-400-800",
        }

    def test_bad_config(self, tmp_path):
        path = tmp_path / "meet.yaml"
        path.write_text("number_of_teams: 2\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["--config", str(path), "--interactive", "false"])

        assert result.exit_code != 0
        assert "Invalid config" in result.output
