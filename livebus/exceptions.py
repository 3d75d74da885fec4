class LiveBusError(Exception):
    """Base class for errors raised by the bus simulator."""


class RouteNotFound(LiveBusError, LookupError):
    def __init__(self, route_id: str):
        super().__init__(f"Route not found: {route_id}")
        self.route_id = route_id


class InvalidCrowdLevel(LiveBusError, ValueError):
    def __init__(self, level):
        super().__init__(f"Invalid crowd level: {level!r}")
        self.level = level


class CatalogError(LiveBusError, ValueError):
    """Raised when static route data is inconsistent."""
