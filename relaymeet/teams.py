"""Team creation, balancing and manual moves."""

from relaymeet import utils
from relaymeet.algorithms import DEFAULT_ALGORITHM, get_balancer
from relaymeet.models import AssignResult, Athlete, MoveResult, Team

# standard track and field team colors, cycled by team index
COLOR_NAMES = {
    "#FF0000": "Red",
    "#0000FF": "Blue",
    "#008000": "Green",
    "#FFFF00": "Yellow",
    "#FFA500": "Orange",
    "#800080": "Purple",
    "#FFC0CB": "Pink",
    "#A52A2A": "Brown",
    "#000000": "Black",
    "#FFFFFF": "White",
    "#808080": "Gray",
    "#000080": "Navy",
    "#008080": "Teal",
    "#800000": "Maroon",
    "#00FFFF": "Cyan",
    "#C0C0C0": "Silver",
}
TEAM_COLORS = list(COLOR_NAMES)


def team_colors() -> list[str]:
    """Returns a copy of the team color palette, in assignment order."""
    return list(TEAM_COLORS)


def color_name(color: str) -> str:
    """Returns the palette name for a hex color, or "Custom" if it isn't one."""
    return COLOR_NAMES.get(color.upper(), "Custom") if color else "Custom"


def create_teams(number_of_teams: int) -> list[Team]:
    """
    Creates empty teams numbered from 1, each with its palette color.

    Returns:
        list[Team]: Team objects with no athletes.
    """
    return [
        Team(
            id=i + 1,
            name=f"Team {i + 1}",
            color=TEAM_COLORS[i % len(TEAM_COLORS)],
        )
        for i in range(number_of_teams)
    ]


def assign_teams(
    athletes: list[Athlete],
    number_of_teams: int,
    algorithm: str = DEFAULT_ALGORITHM,
    observer=None,
) -> AssignResult:
    """
    Partitions `athletes` into `number_of_teams` balanced teams.

    Invalid input is reported on the result rather than raised, so callers can
    show `result.error` as-is. Callers should also reject more teams than
    athletes before calling; doing so here is allowed and simply leaves some
    teams short.

    Args:
        athletes: Roster to distribute.
        number_of_teams: How many teams to create.
        algorithm: Registered balancing algorithm name.
        observer: Optional callback for algorithm progress updates.

    Returns:
        AssignResult: Teams and balance statistics, or an error message.
    """
    if not athletes:
        return AssignResult.failure("No athletes provided")

    if number_of_teams < 1:
        return AssignResult.failure("Number of teams must be at least 1")

    balancer = get_balancer(algorithm)()
    if observer:
        balancer.add_observer(observer)

    teams = create_teams(number_of_teams)
    balancer.balance(list(athletes), teams)

    return AssignResult(
        success=True,
        teams=teams,
        stats=build_stats(athletes, teams),
    )


def build_stats(athletes: list[Athlete], teams: list[Team]) -> dict:
    """
    Summarizes roster composition and per-team balance. Informational only.

    Returns:
        dict: Roster counts plus a `teamBalance` entry per team.
    """
    team_balance = []
    for team in teams:
        males = team.get_athletes_by_attribute("gender", "Male")
        females = team.get_athletes_by_attribute("gender", "Female")
        male_score = utils.talent_score(males)
        female_score = utils.talent_score(females)
        team_balance.append(
            {
                "teamName": team.name,
                "totalAthletes": len(team.athletes),
                "males": len(males),
                "females": len(females),
                "maleTalentScore": male_score,
                "femaleTalentScore": female_score,
                "totalTalentScore": male_score + female_score,
                "distribution": utils.tier_distribution(team.athletes),
            }
        )

    def count(attribute, value):
        return sum(1 for a in athletes if getattr(a, attribute) == value)

    return {
        "totalAthletes": len(athletes),
        "maleAthletes": count("gender", "Male"),
        "femaleAthletes": count("gender", "Female"),
        "highTier": count("tier", "High"),
        "medTier": count("tier", "Med"),
        "lowTier": count("tier", "Low"),
        "averageTeamSize": round(len(athletes) / len(teams), 1) if teams else 0,
        "teamBalance": team_balance,
    }


def get_team(teams: list[Team], team_id: int) -> Team | None:

    for team in teams:
        if team.id == team_id:
            return team
    return None


def move_athlete(
    teams: list[Team], athlete_id: str, from_team_id: int, to_team_id: int
) -> MoveResult:
    """
    Moves one athlete between teams, in place.

    The athlete is removed from the source team (remaining order preserved)
    and appended to the destination, so it is never on two teams at once.

    Returns:
        MoveResult: The same `teams` list on success, or an error message.
    """
    from_team = get_team(teams, from_team_id)
    to_team = get_team(teams, to_team_id)

    if from_team is None or to_team is None:
        return MoveResult.failure("Invalid team ID")

    athlete = from_team.get_athlete(athlete_id)
    if athlete is None:
        return MoveResult.failure("Athlete not found in source team")

    from_team.athletes.remove(athlete)
    to_team.athletes.append(athlete)

    return MoveResult(success=True, teams=teams)
