import asyncio
import logging
from pathlib import Path

import click
import questionary
import yaml
from pydantic import ValidationError

from relaymeet import ledger
from relaymeet.algorithms import DEFAULT_ALGORITHM, get_algorithms
from relaymeet.app import Meet, main, open_meet, print_sequence, print_team_summary
from relaymeet.config import load_config as read_config
from relaymeet.models import RouletteSettings
from relaymeet.store import JsonFileStore
from relaymeet.teams import build_stats, color_name, get_team
from relaymeet.utils import NOT_RUNNING, format_positions, parse_relay_positions


def load_config(ctx, param, value: Path):
    if value is None:
        return None
    try:
        return read_config(value)
    except (ValidationError, FileNotFoundError, ValueError) as e:
        raise click.BadParameter(f"Invalid config: {e}")
    except yaml.YAMLError as e:
        raise click.BadParameter(f"Failed to load config: {e}")


@click.command(context_settings={"max_content_width": 120})
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, readable=True, path_type=Path),
    callback=load_config,
    required=True,
    help="Path to meet configuration file.",
)
@click.option(
    "--algorithm",
    type=click.Choice(list(get_algorithms().keys())),
    default=DEFAULT_ALGORITHM,
    help="Which team balancing algorithm to use.",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Optional RNG seed for deterministic teams and sequences.",
)
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Override the JSON store path from the config.",
)
@click.option(
    "--interactive",
    type=click.BOOL,
    default=True,
    help="Run the interactive menu instead of a single pass.",
)
@click.option("--verbose", is_flag=True, help="Show diagnostic log messages.")
def cli(config, algorithm: str, seed: int | None, store_path, interactive, verbose):

    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="  %(levelname)s %(name)s: %(message)s",
    )

    store = JsonFileStore(store_path or config.store_path)
    meet = asyncio.run(open_meet(config, store=store, seed=seed))
    print(f"\nMeet loaded: {meet.name} ({len(meet.athletes)} athletes, store: {store})")

    if not interactive:
        try:
            asyncio.run(main(meet, config, algorithm))
        except ValueError as e:
            raise click.ClickException(str(e))
        return

    choices = [
        "Assign teams",
        "Move an Athlete to a different Team",
        "Show teams",
        "Generate event sequence",
        "Reveal next event",
        "Assign athletes to an event",
        "Show assignment progress",
        "Reset event sequence",
        "Quit",
    ]

    while True:

        print(f"\n---")

        choice = questionary.select(
            "\nAction:",
            choices=choices,
            qmark="",
            instruction=" ",
        ).ask()

        if choice is None or choice == "Quit":
            print(f"\nProgram terminated.\n")
            return

        if choice == "Assign teams":

            number_of_teams = questionary.text(
                "\nNumber of teams:",
                default=str(config.number_of_teams),
                qmark="",
                validate=lambda val: val.isdigit() and int(val) >= 1,
            ).ask()

            result = asyncio.run(meet.assign_teams(int(number_of_teams), algorithm))
            if not result.success:
                print(f"\n  Error: {result.error}")
                continue
            print_team_summary(result)

        if choice == "Move an Athlete to a different Team":
            _move_athlete(meet)

        if choice == "Show teams":
            if not meet.teams:
                print("\n  No teams yet.")
                continue
            for team in meet.teams:
                print(f"\n  {team.name} [{color_name(team.color)}]")
                for athlete in team.athletes:
                    print(f"    {athlete.name} ({athlete.gender}, {athlete.tier})")
            stats = build_stats(meet.athletes, meet.teams)
            print()
            for balance in stats["teamBalance"]:
                print(
                    f"  {balance['teamName'].ljust(12)} {balance['distribution']}"
                    f"  M:{balance['maleTalentScore']} F:{balance['femaleTalentScore']}"
                )

        if choice == "Generate event sequence":

            defaults = asyncio.run(
                meet.load_roulette_settings(
                    RouletteSettings(
                        total_events=config.total_events,
                        num_relays=config.num_relays,
                        relay_positions=config.relay_positions,
                    )
                )
            )
            total_events = questionary.text(
                "\nTotal events:",
                default=str(defaults.total_events),
                qmark="",
                validate=lambda val: val.isdigit() and int(val) >= 1,
            ).ask()
            number_of_relays = questionary.text(
                "\nNumber of relays:",
                default=str(defaults.num_relays),
                qmark="",
                validate=lambda val: val.isdigit(),
            ).ask()
            positions = questionary.text(
                "\nRelay positions (e.g. 1, 5; blank for random):",
                default=", ".join(str(p) for p in defaults.relay_positions),
                qmark="",
            ).ask()

            try:
                relay_positions = parse_relay_positions(positions)
            except ValueError:
                print(f"\n  Error: relay positions must be numbers")
                continue

            saved = asyncio.run(
                meet.save_roulette_settings(
                    int(total_events),
                    int(number_of_relays),
                    [p + 1 for p in relay_positions],
                )
            )
            if not saved.success:
                print(f"\n  Error: {saved.error}")
                continue

            settings = saved.settings
            result = asyncio.run(
                meet.generate_sequence(
                    settings.total_events,
                    settings.num_relays,
                    [p - 1 for p in settings.relay_positions],
                )
            )
            if not result.success:
                print(f"\n  Error: {result.error}")
                continue
            print_sequence(meet.sequence, result.relay_positions)
            print(f"\n  Relay positions: {format_positions(result.relay_positions)}")
            print(f"  All previous assignments cleared.")

        if choice == "Reveal next event":

            event_name = asyncio.run(meet.reveal_next_event())
            if event_name is None:
                print("\n  All events have been revealed!")
            else:
                print(f"\n  Event {meet.revealed_index}: {event_name}")

        if choice == "Assign athletes to an event":
            _assign_athletes(meet)

        if choice == "Show assignment progress":

            for i, event_name in enumerate(meet.revealed_events):
                status = (
                    "assigned"
                    if ledger.is_event_fully_assigned(meet.assignments, i, meet.teams)
                    else "pending"
                )
                print(f"  {str(i + 1).rjust(3)}. {event_name.ljust(20)} {status}")
            stats = meet.assignment_stats()
            print(
                f"\n  {stats['usedAthletes']} of {stats['totalAthletes']} athletes used, "
                f"{stats['fullyAssignedEvents']} of {stats['totalEvents']} events complete"
            )

        if choice == "Reset event sequence":

            if questionary.confirm(
                "\nClear the sequence and all assignments?", default=False, qmark=""
            ).ask():
                asyncio.run(meet.reset_sequence())
                print("\n  Sequence reset.")


def _move_athlete(meet: Meet) -> None:

    if not meet.teams:
        print("\n  No teams yet.")
        return

    athletes = {
        f"{athlete.name} ({team.name})": (athlete, team)
        for team in meet.teams
        for athlete in team.athletes
    }
    label = questionary.autocomplete(
        "\nAthlete:",
        choices=list(athletes),
        qmark="",
        ignore_case=True,
    ).ask()
    if label not in athletes:
        print(f"\n  Unknown athlete: {label}")
        return
    athlete, from_team = athletes[label]

    to_team = questionary.select(
        "\nMove to team:",
        choices=[
            questionary.Choice(team.name, value=team.id)
            for team in meet.teams
            if team.id != from_team.id
        ],
        qmark="",
        instruction=" ",
    ).ask()
    if to_team is None:
        return

    result = asyncio.run(meet.move_athlete(athlete.id, from_team.id, to_team))
    if not result.success:
        print(f"\n  Error: {result.error}")
        return
    print(f"\n  {athlete} moved from {from_team} to {get_team(meet.teams, to_team)}")


def _assign_athletes(meet: Meet) -> None:

    if not meet.teams:
        print("\n  No teams found. Assign teams first.")
        return
    if not meet.revealed_events:
        print("\n  No events revealed yet.")
        return

    event_index = questionary.select(
        "\nEvent:",
        choices=[
            questionary.Choice(f"{i + 1}. {name}", value=i)
            for i, name in enumerate(meet.revealed_events)
        ],
        qmark="",
        instruction=" ",
    ).ask()
    if event_index is None:
        return

    event_name = meet.sequence[event_index]
    required = ledger.required_athlete_count(event_name)
    gender = questionary.select(
        "\nGender filter:",
        choices=["mixed", "male", "female"],
        qmark="",
        instruction=" ",
    ).ask()
    if gender is None:
        return

    selections = {}
    for team in meet.teams:
        current = ledger.get_team_assignment_for_event(
            meet.assignments, event_index, team.id
        )
        current_ids = current.athlete_ids if current else []
        choices = [
            questionary.Choice(
                "Not running", value=NOT_RUNNING, checked=NOT_RUNNING in current_ids
            )
        ]
        choices += [
            questionary.Choice(
                f"{a.name} ({a.tier})", value=a.id, checked=a.id in current_ids
            )
            for a in meet.available_athletes(team.id, event_index, gender)
        ]
        picked = questionary.checkbox(
            f"\n{team.name}: select {required} for {event_name}",
            choices=choices,
            qmark="",
        ).ask()
        if picked is None:
            return
        selections[team.id] = meet.merge_filtered_selection(
            team.id, event_index, gender, picked
        )

    result = asyncio.run(meet.submit_selection(event_index, selections))
    if not result.success:
        print(f"\n  Error: {result.error}")
        return
    if result.incomplete_team_ids:
        print(f"\n  Saved with incomplete teams: {result.incomplete_team_ids}")
    else:
        print(f"\n  Assignments for {event_name} saved.")


if __name__ == "__main__":
    cli()
