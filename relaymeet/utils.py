import random

# marks a team as intentionally not fielding anyone for an event
NOT_RUNNING = "NOT_RUNNING"

GENDERS = ("Male", "Female")

# processing order matters: strongest athletes are placed first
TIER_WEIGHTS = {"High": 3, "Med": 2, "Low": 1}


def shuffled(items) -> list:
    """
    Returns a shuffled copy of `items`, leaving the input untouched.

    `random.shuffle` is an in-place Fisher-Yates shuffle, so every permutation
    is equally likely.

    Args:
        items (Iterable): Items to shuffle.

    Returns:
        list: New list with the same items in random order.
    """
    result = list(items)
    random.shuffle(result)
    return result


def talent_score(athletes) -> int:
    """
    Sums the tier weights of `athletes`.

    Args:
        athletes (Iterable[Athlete]): Athletes to score.

    Returns:
        int: Combined talent score.
    """
    return sum(TIER_WEIGHTS[a.tier] for a in athletes)


def tier_distribution(athletes) -> str:
    """
    Summarizes tier counts as "{high}H/{med}M/{low}L", e.g. "2H/1M/3L".
    """
    counts = {tier: 0 for tier in TIER_WEIGHTS}
    for a in athletes:
        counts[a.tier] += 1
    return f"{counts['High']}H/{counts['Med']}M/{counts['Low']}L"


def parse_relay_positions(value) -> list[int]:
    """
    Converts user-facing, 1-based relay positions into 0-based sequence indices.

    Accepts either a list of integers or a comma/space separated string such as
    "1, 5". Blank entries are ignored; range checking is left to the sequence
    generator.

    Args:
        value (str | Iterable[int] | None): Positions as typed in settings.

    Returns:
        list[int]: 0-based positions, in the order given.

    Raises:
        ValueError: If an entry is not an integer.
    """
    if value is None:
        return []
    if isinstance(value, str):
        tokens = value.replace(",", " ").split()
    else:
        tokens = list(value)
    return [int(token) - 1 for token in tokens]


def format_positions(positions) -> str:
    """Formats 0-based positions as a 1-based, comma separated string."""
    return ", ".join(str(p + 1) for p in positions)
