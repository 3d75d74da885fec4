"""
Helpers for loading the rider-facing bus stop directory.
Falls back to bundled sample stops when no stop API is configured or the
remote feed is unusable.
"""
from __future__ import annotations

import json
import logging
from typing import Dict, Iterable, List, Optional

import requests
from django.conf import settings
from shapely import wkt
from shapely.errors import ShapelyError
from shapely.geometry import Point, shape

LOGGER = logging.getLogger(__name__)

STOPS_ENDPOINT = "/api/all-highways/"
DEFAULT_LOCATION = (77.4126, 23.2599)  # New Market, Bhopal


def get_bus_stops(
    search: Optional[str] = None,
    highway: Optional[str] = None,
    city: Optional[str] = None,
) -> Dict:
    features = _remote_stop_features(search=search, highway=highway, city=city)
    if features is None:
        features = _fallback_features()
        source = "fallback-sample"
    else:
        source = "remote"

    if search:
        needle = search.lower()
        features = [
            feature for feature in features
            if needle in feature["properties"]["name"].lower()
        ]
    if highway:
        features = [
            feature for feature in features
            if feature["properties"].get("highway") == highway
        ]

    return {
        "type": "FeatureCollection",
        "source": source,
        "features": features,
    }


def _remote_stop_features(search=None, highway=None, city=None) -> Optional[List[Dict]]:
    config = getattr(settings, "BUS_STOP_API", {})
    base_url = (config.get("base_url") or "").rstrip("/")
    if not base_url:
        return None

    params = {}
    if search:
        params["search"] = search
    if highway:
        params["highway"] = highway
    if city:
        params["city"] = city.lower()

    url = f"{base_url}{STOPS_ENDPOINT}"
    LOGGER.info("Fetching bus stops from %s", url)
    try:
        response = requests.get(
            url, params=params, timeout=config.get("timeout_seconds", 5)
        )
        response.raise_for_status()
        payload = response.json()
    except (requests.exceptions.RequestException, json.JSONDecodeError) as error:
        LOGGER.warning("Bus stop request failed: %s", error)
        return None

    if isinstance(payload, dict) and payload.get("type") == "FeatureCollection":
        records = payload.get("features")
    elif isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict) and isinstance(payload.get("data"), list):
        records = payload["data"]
    else:
        LOGGER.warning("Unrecognised bus stop payload: %.200r", payload)
        return None

    if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
        LOGGER.warning("Malformed bus stop records: %.200r", records)
        return None

    return to_features(records)


def to_features(records: Iterable[Dict]) -> List[Dict]:
    """Normalise stop records from the stop API into GeoJSON point features."""
    features: List[Dict] = []
    for index, record in enumerate(records):
        properties = record.get("properties")
        if not isinstance(properties, dict):
            properties = {}
        stop_id = record.get("id", properties.get("osm_id", index))
        point = _parse_point(record.get("geometry"))
        if point is None:
            LOGGER.debug("Stop %s has no usable geometry, using default location", stop_id)
            lng, lat = DEFAULT_LOCATION
        else:
            lng, lat = point.x, point.y

        name = properties.get("name")
        features.append(
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lng, lat]},
                "properties": {
                    "name": str(name) if name not in (None, "") else f"Bus Stop {stop_id}",
                    "osm_id": str(properties.get("osm_id", stop_id)),
                    "highway": str(properties.get("highway") or "primary"),
                },
            }
        )
    return features


def _parse_point(geometry) -> Optional[Point]:
    if not geometry:
        return None
    try:
        if isinstance(geometry, str):
            # EWKT, e.g. "SRID=4326;POINT (77.41 23.25)"
            parsed = wkt.loads(geometry.split(";")[-1])
        else:
            parsed = shape(geometry)
    except (ShapelyError, ValueError, KeyError, AttributeError, TypeError) as error:
        LOGGER.debug("Could not parse stop geometry %r: %s", geometry, error)
        return None
    if parsed.is_empty:
        return None
    return parsed if isinstance(parsed, Point) else parsed.centroid


def _fallback_features() -> List[Dict]:
    return to_features(
        [
            {
                "id": 1,
                "geometry": "SRID=4326;POINT (77.4126 23.2599)",
                "properties": {"name": "New Market Bus Stand", "highway": "bus_stop"},
            },
            {
                "id": 2,
                "geometry": "SRID=4326;POINT (77.4014 23.247)",
                "properties": {"name": "Bhopal Junction", "highway": "bus_stop"},
            },
            {
                "id": 3,
                "geometry": "SRID=4326;POINT (77.4285 23.2728)",
                "properties": {"name": "MP Nagar Bus Stop", "highway": "bus_stop"},
            },
            {
                "id": 4,
                "geometry": "SRID=4326;POINT (77.391 23.2156)",
                "properties": {"name": "Habibganj Railway Station", "highway": "primary"},
            },
            {
                "id": 5,
                "geometry": "SRID=4326;POINT (77.4367 23.2156)",
                "properties": {"name": "ISBT Bhopal", "highway": "primary"},
            },
        ]
    )
