"""
Control surface for the live bus simulator.

``BusSimulationService`` wires the route catalog, bus registry and
simulation clock together. Views and other callers go through the
process-wide instance returned by ``get_simulation_service()``.
"""
from __future__ import annotations

import atexit
import logging
import threading
from typing import Dict, List, Mapping, Optional, Sequence

from django.conf import settings

from .advancer import ARRIVAL_TOLERANCE, MOVE_FACTOR
from .catalog import Route, RouteCatalog
from .clock import DEFAULT_TICK_SECONDS, SimulationClock
from .registry import DEFAULT_SPEED_KMH, BusRegistry, CrowdLevel, LiveBus

logger = logging.getLogger(__name__)

DEFAULT_BUSES: Sequence[Dict[str, str]] = [
    {"id": "BUS_001", "route_id": "route_1", "crowd_level": "medium"},
    {"id": "BUS_002", "route_id": "route_1", "crowd_level": "high"},
    {"id": "BUS_003", "route_id": "route_2", "crowd_level": "low"},
]


class BusSimulationService:
    def __init__(
        self,
        catalog: Optional[RouteCatalog] = None,
        tick_seconds: float = DEFAULT_TICK_SECONDS,
        move_factor: float = MOVE_FACTOR,
        arrival_tolerance: float = ARRIVAL_TOLERANCE,
        default_speed: float = DEFAULT_SPEED_KMH,
    ):
        self.catalog = catalog if catalog is not None else RouteCatalog.from_definitions()
        self.registry = BusRegistry(self.catalog, default_speed=default_speed)
        self.clock = SimulationClock(
            self.registry,
            interval=tick_seconds,
            move_factor=move_factor,
            tolerance=arrival_tolerance,
        )

    @classmethod
    def from_settings(cls, config: Optional[Mapping] = None) -> "BusSimulationService":
        if config is None:
            config = getattr(settings, "LIVEBUS", {})
        service = cls(
            tick_seconds=float(config.get("tick_seconds", DEFAULT_TICK_SECONDS)),
            move_factor=float(config.get("move_factor", MOVE_FACTOR)),
            arrival_tolerance=float(config.get("arrival_tolerance", ARRIVAL_TOLERANCE)),
            default_speed=float(config.get("default_speed_kmh", DEFAULT_SPEED_KMH)),
        )
        if config.get("seed_default_buses", True):
            service.seed_default_buses()
        return service

    def seed_default_buses(self, profiles: Sequence[Mapping] = DEFAULT_BUSES) -> None:
        for profile in profiles:
            self.registry.start_simulating_bus(profile["id"], profile["route_id"])
            self.registry.set_crowd_level(
                profile["id"], profile.get("crowd_level", CrowdLevel.LOW)
            )

    def start(self) -> None:
        self.clock.start()

    def stop(self) -> None:
        self.clock.stop()

    def get_available_routes(self) -> List[Route]:
        return self.catalog.get_available_routes()

    def start_bus_simulation(self, driver_id: str, route_id: str) -> None:
        self.registry.start_simulating_bus(driver_id, route_id)

    def stop_bus_simulation(self, driver_id: str) -> None:
        self.registry.stop_simulating_bus(driver_id)

    def update_crowd_level(self, driver_id: str, level) -> None:
        self.registry.set_crowd_level(driver_id, level)

    def get_live_buses(self) -> List[LiveBus]:
        return self.registry.snapshot()


_service: Optional[BusSimulationService] = None
_service_lock = threading.Lock()


def get_simulation_service() -> BusSimulationService:
    global _service
    with _service_lock:
        if _service is None:
            _service = BusSimulationService.from_settings()
            atexit.register(_service.stop)
        return _service


def get_available_routes() -> List[Route]:
    return get_simulation_service().get_available_routes()


def start_bus_simulation(driver_id: str, route_id: str) -> None:
    get_simulation_service().start_bus_simulation(driver_id, route_id)


def stop_bus_simulation(driver_id: str) -> None:
    get_simulation_service().stop_bus_simulation(driver_id)


def update_crowd_level(driver_id: str, level) -> None:
    get_simulation_service().update_crowd_level(driver_id, level)


def get_live_buses() -> List[LiveBus]:
    return get_simulation_service().get_live_buses()
