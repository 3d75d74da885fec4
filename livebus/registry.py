"""
Authoritative in-memory store of live bus state.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from .catalog import Coordinate, RouteCatalog
from .exceptions import InvalidCrowdLevel

logger = logging.getLogger(__name__)

DEFAULT_SPEED_KMH = 25.0


class CrowdLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, level: Union["CrowdLevel", str]) -> "CrowdLevel":
        try:
            return cls(level)
        except ValueError:
            raise InvalidCrowdLevel(level) from None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class LiveBus:
    id: str
    route_id: str
    location: Coordinate
    speed: float
    next_stop_index: int
    crowd_level: CrowdLevel = CrowdLevel.LOW
    last_updated: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "routeId": self.route_id,
            "location": [round(self.location[0], 7), round(self.location[1], 7)],
            "speed": self.speed,
            "nextStopIndex": self.next_stop_index,
            "crowdLevel": self.crowd_level.value,
            "lastUpdated": self.last_updated.isoformat(),
        }


class BusRegistry:
    """
    Maps bus/driver ids to LiveBus entries.

    Entries are immutable values; every mutation swaps in a new value under
    the registry lock, so readers never see a half-applied update.
    """

    def __init__(self, catalog: RouteCatalog, default_speed: float = DEFAULT_SPEED_KMH):
        self.catalog = catalog
        self.default_speed = max(float(default_speed), 0.0)
        self._buses: Dict[str, LiveBus] = {}
        self._lock = threading.RLock()

    def start_simulating_bus(self, bus_id: str, route_id: str) -> LiveBus:
        route = self.catalog.get(route_id)
        bus = LiveBus(
            id=bus_id,
            route_id=route.id,
            location=route.stops[0].location,
            speed=self.default_speed,
            next_stop_index=1 % len(route.stops),
        )
        with self._lock:
            replaced = bus_id in self._buses
            self._buses[bus_id] = bus
        logger.info(
            "%s simulation for bus %s on route %s",
            "Restarted" if replaced else "Started",
            bus_id,
            route_id,
        )
        return bus

    def stop_simulating_bus(self, bus_id: str) -> None:
        with self._lock:
            removed = self._buses.pop(bus_id, None)
        if removed is not None:
            logger.info("Stopped simulation for bus %s", bus_id)

    def set_crowd_level(self, bus_id: str, level: Union[CrowdLevel, str]) -> None:
        crowd_level = CrowdLevel.parse(level)
        with self._lock:
            bus = self._buses.get(bus_id)
            if bus is None:
                return
            self._buses[bus_id] = replace(
                bus, crowd_level=crowd_level, last_updated=_utcnow()
            )

    def get(self, bus_id: str) -> Optional[LiveBus]:
        with self._lock:
            return self._buses.get(bus_id)

    def snapshot(self) -> List[LiveBus]:
        with self._lock:
            return list(self._buses.values())

    def update_all(self, step: Callable[[LiveBus], LiveBus]) -> Tuple[str, ...]:
        """
        Replace every entry with ``step(entry)`` in a single critical section.

        A bus whose step raises is evicted; the ids of evicted buses are
        returned.
        """
        evicted: List[str] = []
        with self._lock:
            for bus_id, bus in list(self._buses.items()):
                try:
                    updated = step(bus)
                except Exception:
                    logger.exception("Advancing bus %s failed; evicting it", bus_id)
                    del self._buses[bus_id]
                    evicted.append(bus_id)
                    continue
                self._buses[bus_id] = updated
        return tuple(evicted)

    def __contains__(self, bus_id: object) -> bool:
        with self._lock:
            return bus_id in self._buses

    def __len__(self) -> int:
        with self._lock:
            return len(self._buses)
