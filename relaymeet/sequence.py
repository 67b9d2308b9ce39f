"""Randomized, non-repeating event order with relays at fixed positions."""

import random

from pydantic import TypeAdapter

from relaymeet import utils
from relaymeet.models import EventEntry, SequenceResult

RELAY_CATEGORY = "relays"

EventPool = dict[str, list[EventEntry]]

_event_pool_adapter = TypeAdapter(EventPool)


def default_event_pool() -> EventPool:
    """
    Returns the stock event pool, grouped by category.

    Returns:
        dict[str, list[EventEntry]]: Category name to events.
    """
    return parse_event_pool(
        {
            "shortSprints": [
                {"name": "50m", "enabled": True},
                {"name": "60m", "enabled": False},
                {"name": "100m", "enabled": True},
                {"name": "150m", "enabled": False},
                {"name": "200m", "enabled": True},
                {"name": "300m", "enabled": True},
            ],
            "middleDistances": [
                {"name": "400m", "enabled": True},
                {"name": "500m", "enabled": True},
                {"name": "600m", "enabled": True},
                {"name": "700m", "enabled": False},
                {"name": "800m", "enabled": True},
                {"name": "1km", "enabled": False},
            ],
            "longDistances": [
                {"name": "1.2km", "enabled": True},
                {"name": "1 Mile", "enabled": True},
                {"name": "2km", "enabled": True},
                {"name": "2.4km", "enabled": True},
                {"name": "2.8km", "enabled": False},
                {"name": "2 Mile", "enabled": False},
            ],
            RELAY_CATEGORY: [
                {"name": "4x100", "enabled": True},
                {"name": "4x200", "enabled": True},
                {"name": "4x400", "enabled": True},
                {"name": "4x800", "enabled": False},
                {"name": "100-100-200-400", "enabled": True},
                {"name": "200-200-400-800", "enabled": True},
                {"name": "1200-400-800-1600", "enabled": False},
            ],
            "technicalEvents": [
                {"name": "60mH", "enabled": False},
                {"name": "110mH", "enabled": False},
                {"name": "400mH", "enabled": False},
                {"name": "Long Jump", "enabled": False},
                {"name": "Triple Jump", "enabled": False},
                {"name": "High Jump", "enabled": False},
                {"name": "Pole Vault", "enabled": False},
                {"name": "Shot Put", "enabled": False},
                {"name": "Discus", "enabled": False},
            ],
        }
    )


def parse_event_pool(data) -> EventPool:
    """
    Validates raw pool data (e.g. loaded from JSON or YAML) into EventEntry lists.

    Raises:
        pydantic.ValidationError: If the data is not a category -> events mapping.
    """
    return _event_pool_adapter.validate_python(data)


def dump_event_pool(pool: EventPool) -> dict:
    return _event_pool_adapter.dump_python(pool, by_alias=True, mode="json")


def split_event_pool(pool: EventPool) -> tuple[list[str], list[str]]:
    """
    Collects the names of enabled events, split by relay category membership.

    Returns:
        tuple[list[str], list[str]]: Enabled relay names, enabled non-relay names.
    """
    relay_events = []
    non_relay_events = []
    for category, events in pool.items():
        for event in events:
            if not event.enabled:
                continue
            if category == RELAY_CATEGORY:
                relay_events.append(event.name)
            else:
                non_relay_events.append(event.name)
    return relay_events, non_relay_events


def sanitize_relay_positions(
    positions, total_events: int, number_of_relays: int
) -> list[int]:
    """
    Drops out-of-range and repeated positions, keeping the given order.

    Returns:
        list[int]: At most `number_of_relays` valid 0-based positions.
    """
    valid = []
    for position in positions or []:
        if 0 <= position < total_events and position not in valid:
            valid.append(position)
    return valid[:number_of_relays]


def generate_event_sequence(
    event_pool: EventPool,
    total_events: int,
    number_of_relays: int,
    relay_positions=(),
) -> SequenceResult:
    """
    Builds a random event order from the enabled events in `event_pool`.

    Relay events fill exactly `number_of_relays` positions: the preferred
    `relay_positions` that are valid, topped up with random free positions.
    Every other position gets a non-relay event. Each name is drawn once from
    its own shuffled list, so no event repeats.

    Args:
        event_pool: Category name to events.
        total_events: Length of the sequence.
        number_of_relays: How many positions must hold relay events.
        relay_positions: Preferred 0-based relay positions.

    Returns:
        SequenceResult: The sequence and final relay positions, or an error.
    """
    if total_events < 1:
        return SequenceResult.failure("Total events must be at least 1")

    if not 0 <= number_of_relays <= total_events:
        return SequenceResult.failure(
            f"Number of relays must be between 0 and {total_events}"
        )

    relay_events, non_relay_events = split_event_pool(event_pool)

    needed = total_events - number_of_relays
    if len(non_relay_events) < needed:
        return SequenceResult.failure(
            f"Not enough non-relay events. Need {needed}, "
            f"but only have {len(non_relay_events)}"
        )

    if len(relay_events) < number_of_relays:
        return SequenceResult.failure(
            f"Not enough relay events. Need {number_of_relays}, "
            f"but only have {len(relay_events)}"
        )

    positions = sanitize_relay_positions(
        relay_positions, total_events, number_of_relays
    )
    free = [i for i in range(total_events) if i not in positions]
    positions.extend(random.sample(free, number_of_relays - len(positions)))
    positions.sort()

    shuffled_relays = iter(utils.shuffled(relay_events))
    shuffled_non_relays = iter(utils.shuffled(non_relay_events))

    relay_slots = set(positions)
    sequence = [
        next(shuffled_relays) if i in relay_slots else next(shuffled_non_relays)
        for i in range(total_events)
    ]

    return SequenceResult(success=True, sequence=sequence, relay_positions=positions)
