from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import requests
from django.conf import settings
from django.http import JsonResponse
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt
from django.views.generic import View

from .exceptions import InvalidCrowdLevel, RouteNotFound
from .services import get_simulation_service
from .stops import get_bus_stops

logger = logging.getLogger(__name__)

DEFAULT_OSRM_URL = "http://router.project-osrm.org"


def _json_body(request) -> dict:
    data = json.loads(request.body or b"{}")
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


class RouteCatalogAPIView(View):
    def get(self, request, *args, **kwargs):
        routes = get_simulation_service().get_available_routes()
        return JsonResponse({"routes": [route.to_dict() for route in routes]})


class LiveBusDataAPIView(View):
    def get(self, request, *args, **kwargs):
        buses = get_simulation_service().get_live_buses()
        return JsonResponse(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "buses": [bus.to_dict() for bus in buses],
            }
        )


@method_decorator(csrf_exempt, name="dispatch")
class StartBusSimulationView(View):
    def post(self, request, *args, **kwargs):
        try:
            data = _json_body(request)
        except ValueError:
            return JsonResponse({"error": "Invalid JSON"}, status=400)

        driver_id = data.get("driverId")
        route_id = data.get("routeId")
        if not all([driver_id, route_id]):
            return JsonResponse({"error": "Missing data"}, status=400)

        service = get_simulation_service()
        try:
            service.start_bus_simulation(str(driver_id), str(route_id))
        except RouteNotFound as error:
            return JsonResponse({"error": str(error)}, status=404)

        bus = service.registry.get(str(driver_id))
        return JsonResponse({"success": True, "bus": bus.to_dict() if bus else None})


@method_decorator(csrf_exempt, name="dispatch")
class StopBusSimulationView(View):
    def post(self, request, *args, **kwargs):
        try:
            data = _json_body(request)
        except ValueError:
            return JsonResponse({"error": "Invalid JSON"}, status=400)

        driver_id = data.get("driverId")
        if not driver_id:
            return JsonResponse({"error": "Missing data"}, status=400)

        get_simulation_service().stop_bus_simulation(str(driver_id))
        return JsonResponse({"success": True})


@method_decorator(csrf_exempt, name="dispatch")
class CrowdLevelUpdateView(View):
    def post(self, request, *args, **kwargs):
        try:
            data = _json_body(request)
        except ValueError:
            return JsonResponse({"error": "Invalid JSON"}, status=400)

        driver_id = data.get("driverId")
        level = data.get("level")
        if not all([driver_id, level]):
            return JsonResponse({"error": "Missing data"}, status=400)

        try:
            get_simulation_service().update_crowd_level(str(driver_id), level)
        except InvalidCrowdLevel as error:
            return JsonResponse({"error": str(error)}, status=400)
        return JsonResponse({"success": True})


class BusStopsAPIView(View):
    def get(self, request, *args, **kwargs):
        return JsonResponse(
            get_bus_stops(
                search=request.GET.get("search") or None,
                highway=request.GET.get("highway") or None,
                city=request.GET.get("city") or None,
            )
        )


class FindRouteView(View):
    def get(self, request, *args, **kwargs):
        try:
            start_lat = float(request.GET["start_lat"])
            start_lng = float(request.GET["start_lng"])
            end_lat = float(request.GET["end_lat"])
            end_lng = float(request.GET["end_lng"])
        except (KeyError, ValueError):
            return JsonResponse({"path": [], "error": "Invalid coordinates"}, status=400)

        config = getattr(settings, "ROUTING_CONFIG", {})
        base_url = (config.get("osrm_url") or DEFAULT_OSRM_URL).rstrip("/")

        logger.info(f"Finding route from ({start_lat}, {start_lng}) to ({end_lat}, {end_lng}) using OSRM")

        osrm_url = f"{base_url}/route/v1/driving/{start_lng},{start_lat};{end_lng},{end_lat}"

        try:
            response = requests.get(
                osrm_url,
                params={"overview": "full", "geometries": "geojson"},
                timeout=config.get("timeout_seconds", 10),
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.RequestException, json.JSONDecodeError) as e:
            logger.error(f"Error calling OSRM API: {e}")
            return JsonResponse({'path': [], 'error': 'Error contacting routing service'}, status=502)

        data = payload if isinstance(payload, dict) else {}
        routes = data.get('routes')
        if data.get('code') == 'Ok' and isinstance(routes, list) and routes and isinstance(routes[0], dict):
            route = routes[0]
            geometry = route.get('geometry')
            # OSRM already returns [lon, lat] pairs, matching the bus payloads
            path = geometry.get('coordinates') if isinstance(geometry, dict) else None
            distance = route.get('distance')
            if isinstance(path, list) and isinstance(distance, (int, float)):
                distance_km = round(distance / 1000, 2)

                logger.info(f"Successfully found route with {len(path)} points and distance {distance_km} km.")
                return JsonResponse({'path': path, 'distance': distance_km})

        logger.error(f"OSRM API could not find a route. Response: {payload}")
        return JsonResponse({'path': [], 'error': 'Route not found'}, status=404)
