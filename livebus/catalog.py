"""
Static route catalog for the bus simulator.

Routes are closed loops built by picking stops by id from a flat stop list.
Coordinates are (lon, lat) pairs throughout.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .exceptions import CatalogError, RouteNotFound

Coordinate = Tuple[float, float]

EARTH_RADIUS_KM = 6371.0088


@dataclass(frozen=True)
class Stop:
    id: str
    name: str
    location: Coordinate

    def to_dict(self) -> Dict:
        return {"id": self.id, "name": self.name, "location": list(self.location)}


@dataclass(frozen=True)
class Route:
    id: str
    name: str
    stops: Tuple[Stop, ...]
    path: Tuple[Coordinate, ...]

    @property
    def length_km(self) -> float:
        """Great-circle length of the closed loop through every stop."""
        if len(self.path) < 2:
            return 0.0
        legs = zip(self.path, self.path[1:] + self.path[:1])
        return sum(haversine_km(start, end) for start, end in legs)

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "stops": [stop.to_dict() for stop in self.stops],
            "path": [list(point) for point in self.path],
            "lengthKm": round(self.length_km, 3),
        }


# Bhopal demo network.
STOPS: Sequence[Dict] = [
    {"id": "stop_1", "name": "New Market Bus Stand", "location": (77.4126, 23.2599)},
    {"id": "stop_2", "name": "Bhopal Junction", "location": (77.4014, 23.2470)},
    {"id": "stop_3", "name": "MP Nagar Bus Stop", "location": (77.4285, 23.2728)},
    {"id": "stop_4", "name": "Habibganj Railway Station", "location": (77.3910, 23.2156)},
    {"id": "stop_5", "name": "ISBT Bhopal", "location": (77.4367, 23.2156)},
]

ROUTE_DEFINITIONS: Sequence[Dict] = [
    {
        "id": "route_1",
        "name": "New Market - MP Nagar",
        "stop_ids": ["stop_1", "stop_2", "stop_3"],
    },
    {
        "id": "route_2",
        "name": "Habibganj - ISBT",
        "stop_ids": ["stop_4", "stop_5"],
    },
]


def haversine_km(start: Coordinate, end: Coordinate) -> float:
    """
    Compute the great-circle distance between two (lon, lat) points in kilometres.
    """
    lng1, lat1 = map(math.radians, start)
    lng2, lat2 = map(math.radians, end)
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def build_routes(
    stops: Iterable[Mapping], definitions: Iterable[Mapping]
) -> List[Route]:
    stop_index: Dict[str, Stop] = {}
    for record in stops:
        lng, lat = record["location"]
        stop_index[record["id"]] = Stop(
            id=record["id"], name=record["name"], location=(float(lng), float(lat))
        )

    routes: List[Route] = []
    seen = set()
    for definition in definitions:
        route_id = definition["id"]
        if route_id in seen:
            raise CatalogError(f"Duplicate route id: {route_id}")
        seen.add(route_id)

        stop_ids = list(definition.get("stop_ids", []))
        if not stop_ids:
            raise CatalogError(f"Route {route_id} has no stops")
        missing = [stop_id for stop_id in stop_ids if stop_id not in stop_index]
        if missing:
            raise CatalogError(
                f"Route {route_id} references unknown stops: {', '.join(missing)}"
            )

        route_stops = tuple(stop_index[stop_id] for stop_id in stop_ids)
        routes.append(
            Route(
                id=route_id,
                name=definition.get("name", route_id),
                stops=route_stops,
                path=tuple(stop.location for stop in route_stops),
            )
        )
    return routes


class RouteCatalog:
    """Read-only set of routes available for simulation."""

    def __init__(self, routes: Iterable[Route]):
        self._routes: Tuple[Route, ...] = tuple(routes)
        self._by_id: Dict[str, Route] = {route.id: route for route in self._routes}

    @classmethod
    def from_definitions(
        cls,
        stops: Iterable[Mapping] = STOPS,
        definitions: Iterable[Mapping] = ROUTE_DEFINITIONS,
    ) -> "RouteCatalog":
        return cls(build_routes(stops, definitions))

    def get_available_routes(self) -> List[Route]:
        return list(self._routes)

    def get(self, route_id: str) -> Route:
        try:
            return self._by_id[route_id]
        except KeyError:
            raise RouteNotFound(route_id) from None

    def __contains__(self, route_id: object) -> bool:
        return route_id in self._by_id

    def __len__(self) -> int:
        return len(self._routes)
