"""
One simulation step for a single bus.

Movement is exponential approach: each step covers a fixed fraction of the
remaining straight-line vector to the target stop. ``speed`` is reported
only and plays no part here.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from .catalog import Route
from .registry import LiveBus

MOVE_FACTOR = 0.1
ARRIVAL_TOLERANCE = 0.0001  # degrees, roughly 10 m


def has_arrived(location, target, tolerance: float = ARRIVAL_TOLERANCE) -> bool:
    return (
        abs(target[0] - location[0]) <= tolerance
        and abs(target[1] - location[1]) <= tolerance
    )


def advance_bus(
    bus: LiveBus,
    route: Route,
    move_factor: float = MOVE_FACTOR,
    tolerance: float = ARRIVAL_TOLERANCE,
) -> LiveBus:
    now = datetime.now(timezone.utc)
    stop_count = len(route.stops)

    if not 0 <= bus.next_stop_index < stop_count:
        return replace(bus, next_stop_index=0, last_updated=now)

    target = route.stops[bus.next_stop_index].location
    lng, lat = bus.location

    if has_arrived(bus.location, target, tolerance):
        return replace(
            bus,
            next_stop_index=(bus.next_stop_index + 1) % stop_count,
            last_updated=now,
        )

    return replace(
        bus,
        location=(
            lng + (target[0] - lng) * move_factor,
            lat + (target[1] - lat) * move_factor,
        ),
        last_updated=now,
    )
