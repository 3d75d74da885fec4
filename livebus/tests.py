import json
import math
import os
import threading
from unittest import mock, skipIf

import requests
from django.apps import apps
from django.conf import settings
from django.test import Client, SimpleTestCase, override_settings

from . import services, stops
from .advancer import ARRIVAL_TOLERANCE, advance_bus, has_arrived
from .catalog import RouteCatalog, build_routes, haversine_km
from .clock import SimulationClock
from .exceptions import CatalogError, InvalidCrowdLevel, RouteNotFound
from .registry import BusRegistry, CrowdLevel, LiveBus


def _line_catalog():
    return RouteCatalog.from_definitions(
        stops=[
            {"id": "a", "name": "A", "location": (0.0, 0.0)},
            {"id": "b", "name": "B", "location": (0.0, 10.0)},
            {"id": "c", "name": "C", "location": (5.0, 5.0)},
            {"id": "solo", "name": "Solo", "location": (1.0, 1.0)},
        ],
        definitions=[
            {"id": "R1", "name": "Line", "stop_ids": ["a", "b"]},
            {"id": "R3", "name": "Triangle", "stop_ids": ["a", "b", "c"]},
            {"id": "single", "name": "Single", "stop_ids": ["solo"]},
        ],
    )


def _distance(first, second):
    return math.hypot(first[0] - second[0], first[1] - second[1])


class RouteCatalogTests(SimpleTestCase):
    def test_default_catalog_builds_paths_from_stops(self):
        catalog = RouteCatalog.from_definitions()
        routes = catalog.get_available_routes()

        self.assertEqual([route.id for route in routes], ["route_1", "route_2"])
        for route in routes:
            self.assertGreater(len(route.stops), 0)
            self.assertEqual(route.path, tuple(stop.location for stop in route.stops))

    def test_unknown_stop_id_fails_fast(self):
        with self.assertRaises(CatalogError):
            build_routes(
                [{"id": "a", "name": "A", "location": (0, 0)}],
                [{"id": "R", "name": "R", "stop_ids": ["a", "missing"]}],
            )

    def test_empty_and_duplicate_routes_rejected(self):
        stop_list = [{"id": "a", "name": "A", "location": (0, 0)}]
        with self.assertRaises(CatalogError):
            build_routes(stop_list, [{"id": "R", "stop_ids": []}])
        with self.assertRaises(CatalogError):
            build_routes(
                stop_list,
                [{"id": "R", "stop_ids": ["a"]}, {"id": "R", "stop_ids": ["a"]}],
            )

    def test_get_unknown_route_raises(self):
        with self.assertRaises(RouteNotFound):
            _line_catalog().get("nope")

    def test_route_payload_uses_lon_lat(self):
        payload = _line_catalog().get("R1").to_dict()
        self.assertEqual(payload["path"], [[0.0, 0.0], [0.0, 10.0]])
        self.assertEqual(payload["stops"][1]["location"], [0.0, 10.0])
        # closed loop: out and back
        self.assertAlmostEqual(
            payload["lengthKm"], 2 * haversine_km((0.0, 0.0), (0.0, 10.0)), places=2
        )


class BusRegistryTests(SimpleTestCase):
    def setUp(self):
        self.registry = BusRegistry(_line_catalog(), default_speed=30)

    def test_start_places_bus_at_first_stop(self):
        self.registry.start_simulating_bus("b1", "R1")
        bus = self.registry.get("b1")

        self.assertEqual(bus.location, (0.0, 0.0))
        self.assertEqual(bus.next_stop_index, 1)
        self.assertEqual(bus.speed, 30)
        self.assertEqual(bus.crowd_level, CrowdLevel.LOW)

    def test_single_stop_route_targets_index_zero(self):
        self.registry.start_simulating_bus("b1", "single")
        self.assertEqual(self.registry.get("b1").next_stop_index, 0)

    def test_missing_route_leaves_registry_unchanged(self):
        self.registry.start_simulating_bus("b1", "R1")
        with self.assertRaises(RouteNotFound):
            self.registry.start_simulating_bus("b2", "missing-route")
        self.assertEqual(len(self.registry), 1)
        self.assertNotIn("b2", self.registry)

    def test_restart_replaces_entry(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.start_simulating_bus("b1", "R3")

        buses = self.registry.snapshot()
        self.assertEqual(len(buses), 1)
        self.assertEqual(buses[0].route_id, "R3")

    def test_stop_unknown_bus_is_noop(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.stop_simulating_bus("ghost")
        self.assertEqual(len(self.registry), 1)

    def test_crowd_level_update_keeps_position(self):
        self.registry.start_simulating_bus("b1", "R1")
        before = self.registry.get("b1")
        self.registry.set_crowd_level("b1", "high")
        after = self.registry.get("b1")

        self.assertEqual(after.crowd_level, CrowdLevel.HIGH)
        self.assertEqual(after.location, before.location)
        self.assertEqual(after.next_stop_index, before.next_stop_index)

    def test_crowd_level_for_unknown_bus_is_noop(self):
        self.registry.set_crowd_level("ghost", "medium")
        self.assertEqual(len(self.registry), 0)

    def test_invalid_crowd_level_rejected(self):
        self.registry.start_simulating_bus("b1", "R1")
        with self.assertRaises(InvalidCrowdLevel):
            self.registry.set_crowd_level("b1", "packed")
        self.assertEqual(self.registry.get("b1").crowd_level, CrowdLevel.LOW)

    def test_snapshot_is_a_stable_copy(self):
        for bus_id in ("x", "y", "z"):
            self.registry.start_simulating_bus(bus_id, "R1")
        first = self.registry.snapshot()
        second = self.registry.snapshot()
        self.assertEqual([b.id for b in first], [b.id for b in second])

        first.clear()
        self.assertEqual(len(self.registry), 3)

    def test_update_all_evicts_failing_bus_only(self):
        self.registry.start_simulating_bus("good", "R1")
        self.registry.start_simulating_bus("bad", "R1")

        def step(bus):
            if bus.id == "bad":
                raise RuntimeError("boom")
            return bus

        with self.assertLogs("livebus.registry", level="ERROR"):
            evicted = self.registry.update_all(step)

        self.assertEqual(evicted, ("bad",))
        self.assertEqual([bus.id for bus in self.registry.snapshot()], ["good"])


class PositionAdvancerTests(SimpleTestCase):
    def setUp(self):
        self.catalog = _line_catalog()
        self.registry = BusRegistry(self.catalog)

    def _bus(self, route_id="R1"):
        return self.registry.start_simulating_bus("b1", route_id)

    def test_single_tick_moves_ten_percent(self):
        bus = advance_bus(self._bus(), self.catalog.get("R1"))
        self.assertAlmostEqual(bus.location[0], 0.0)
        self.assertAlmostEqual(bus.location[1], 1.0)
        self.assertEqual(bus.next_stop_index, 1)

    def test_converges_then_advances_once(self):
        route = self.catalog.get("R1")
        bus = self._bus()
        target = route.stops[1].location
        distance = _distance(bus.location, target)

        ticks = 0
        while not has_arrived(bus.location, target):
            bus = advance_bus(bus, route)
            new_distance = _distance(bus.location, target)
            self.assertLess(new_distance, distance)
            distance = new_distance
            self.assertEqual(bus.next_stop_index, 1)
            ticks += 1
            self.assertLess(ticks, 500)

        location = bus.location
        bus = advance_bus(bus, route)
        self.assertEqual(bus.next_stop_index, 0)
        self.assertEqual(bus.location, location)

    def test_loops_back_after_n_arrivals(self):
        route = self.catalog.get("R3")
        bus = self._bus("R3")
        start_index = bus.next_stop_index

        arrivals = 0
        for _ in range(5000):
            previous = bus.next_stop_index
            bus = advance_bus(bus, route)
            self.assertTrue(0 <= bus.next_stop_index < len(route.stops))
            if bus.next_stop_index != previous:
                arrivals += 1
                if arrivals == len(route.stops):
                    break

        self.assertEqual(arrivals, len(route.stops))
        self.assertEqual(bus.next_stop_index, start_index)

    def test_out_of_range_index_resets(self):
        route = self.catalog.get("R1")
        bus = self._bus()
        broken = LiveBus(
            id=bus.id,
            route_id=bus.route_id,
            location=(3.0, 3.0),
            speed=bus.speed,
            next_stop_index=7,
        )
        healed = advance_bus(broken, route)
        self.assertEqual(healed.next_stop_index, 0)
        self.assertEqual(healed.location, (3.0, 3.0))

    def test_single_stop_route_wraps_to_itself(self):
        route = self.catalog.get("single")
        bus = advance_bus(self._bus("single"), route)
        self.assertEqual(bus.next_stop_index, 0)
        self.assertEqual(bus.location, route.stops[0].location)

    def test_speed_does_not_affect_movement(self):
        route = self.catalog.get("R1")
        slow = BusRegistry(self.catalog, default_speed=1).start_simulating_bus("s", "R1")
        fast = BusRegistry(self.catalog, default_speed=100).start_simulating_bus("f", "R1")
        self.assertEqual(
            advance_bus(slow, route).location, advance_bus(fast, route).location
        )

    def test_tolerance_is_per_axis(self):
        self.assertTrue(has_arrived((0.0, 0.0), (ARRIVAL_TOLERANCE, -ARRIVAL_TOLERANCE)))
        self.assertFalse(has_arrived((0.0, 0.0), (0.0, ARRIVAL_TOLERANCE * 2)))


class SimulationClockTests(SimpleTestCase):
    def setUp(self):
        self.registry = BusRegistry(_line_catalog())
        self.clock = SimulationClock(self.registry, interval=60)

    def tearDown(self):
        self.clock.stop()

    def test_tick_advances_all_buses(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.start_simulating_bus("b2", "R3")

        self.assertTrue(self.clock.tick())

        self.assertAlmostEqual(self.registry.get("b1").location[1], 1.0)
        self.assertAlmostEqual(self.registry.get("b2").location[1], 1.0)
        self.assertEqual(self.clock.tick_count, 1)

    def test_index_invariant_holds_across_ticks(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.start_simulating_bus("b2", "R3")
        for _ in range(300):
            self.clock.tick()
            for bus in self.registry.snapshot():
                route = self.registry.catalog.get(bus.route_id)
                self.assertTrue(0 <= bus.next_stop_index < len(route.stops))

    def test_stopped_bus_is_not_ticked(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.stop_simulating_bus("b1")
        self.clock.tick()
        self.assertEqual(self.registry.snapshot(), [])

    def test_failing_bus_is_evicted_others_continue(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.registry.start_simulating_bus("b2", "R1")

        def flaky(bus, route, *args):
            if bus.id == "b2":
                raise ZeroDivisionError
            return advance_bus(bus, route, *args)

        with mock.patch("livebus.clock.advance_bus", side_effect=flaky):
            with self.assertLogs("livebus", level="WARNING"):
                self.clock.tick()

        self.assertNotIn("b2", self.registry)
        self.assertAlmostEqual(self.registry.get("b1").location[1], 1.0)

    def test_listeners_receive_snapshots(self):
        self.registry.start_simulating_bus("b1", "R1")
        received = []
        unsubscribe = self.clock.subscribe(received.append)

        self.clock.tick()
        unsubscribe()
        self.clock.tick()

        self.assertEqual(len(received), 1)
        self.assertAlmostEqual(received[0][0].location[1], 1.0)

    def test_failing_listener_does_not_break_tick(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.clock.subscribe(mock.Mock(side_effect=RuntimeError("listener")))
        with self.assertLogs("livebus.clock", level="ERROR"):
            self.assertTrue(self.clock.tick())

    def test_overlapping_tick_is_skipped(self):
        self.clock._tick_lock.acquire()
        try:
            self.assertFalse(self.clock.tick())
        finally:
            self.clock._tick_lock.release()
        self.assertEqual(self.clock.tick_count, 0)

    def test_start_and_stop_lifecycle(self):
        self.clock.start()
        self.clock.start()
        self.assertTrue(self.clock.running)
        self.clock.stop()
        self.assertFalse(self.clock.running)

    def test_worker_ticks_on_its_own(self):
        self.registry.start_simulating_bus("b1", "R1")
        self.clock = SimulationClock(self.registry, interval=0.05)
        ticked = threading.Event()
        self.clock.subscribe(lambda buses: ticked.set())

        self.clock.start()
        self.assertTrue(ticked.wait(timeout=5))
        self.clock.stop()

        self.assertGreaterEqual(self.clock.tick_count, 1)
        self.assertGreater(self.registry.get("b1").location[1], 0.0)

    def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            SimulationClock(self.registry, interval=0)


class AppStartupTests(SimpleTestCase):
    def _ready_with(self, config):
        app_config = apps.get_app_config("livebus")
        with override_settings(LIVEBUS=config):
            with mock.patch("livebus.services.get_simulation_service") as get_service:
                app_config.ready()
        return get_service

    def test_ready_starts_clock_when_autostart_enabled(self):
        get_service = self._ready_with({"autostart": True})
        get_service.return_value.start.assert_called_once_with()

    def test_ready_leaves_clock_idle_by_default(self):
        get_service = self._ready_with({})
        get_service.assert_not_called()

    @skipIf("LIVEBUS_AUTOSTART" in os.environ, "autostart set explicitly")
    def test_settings_do_not_autostart_outside_serving(self):
        self.assertFalse(settings.LIVEBUS["autostart"])


class BusSimulationServiceTests(SimpleTestCase):
    def setUp(self):
        self.service = services.BusSimulationService(catalog=_line_catalog())

    def test_scenarios(self):
        self.service.start_bus_simulation("b1", "R1")
        bus = self.service.get_live_buses()[0]
        self.assertEqual((bus.location, bus.next_stop_index), ((0.0, 0.0), 1))

        with self.assertRaises(RouteNotFound):
            self.service.start_bus_simulation("b2", "missing-route")
        self.assertEqual(len(self.service.get_live_buses()), 1)

        self.service.update_crowd_level("b1", "high")
        updated = self.service.get_live_buses()[0]
        self.assertEqual(updated.crowd_level, CrowdLevel.HIGH)
        self.assertEqual(updated.location, bus.location)
        self.assertEqual(updated.next_stop_index, bus.next_stop_index)

        self.service.stop_bus_simulation("b1")
        self.assertNotIn("b1", [b.id for b in self.service.get_live_buses()])

    def test_from_settings_seeds_default_fleet(self):
        service = services.BusSimulationService.from_settings(
            {"tick_seconds": 5, "seed_default_buses": True, "default_speed_kmh": 18}
        )
        buses = {bus.id: bus for bus in service.get_live_buses()}

        self.assertEqual(set(buses), {"BUS_001", "BUS_002", "BUS_003"})
        self.assertEqual(buses["BUS_002"].crowd_level, CrowdLevel.HIGH)
        self.assertEqual(buses["BUS_003"].route_id, "route_2")
        self.assertEqual(buses["BUS_001"].speed, 18)
        self.assertEqual(service.clock.interval, 5)

    def test_from_settings_without_seed(self):
        service = services.BusSimulationService.from_settings({"seed_default_buses": False})
        self.assertEqual(service.get_live_buses(), [])

    def test_module_functions_forward_to_process_service(self):
        with mock.patch.object(services, "get_simulation_service", return_value=self.service):
            services.start_bus_simulation("d1", "R3")
            services.update_crowd_level("d1", "medium")
            self.assertEqual(services.get_live_buses()[0].crowd_level, CrowdLevel.MEDIUM)
            self.assertEqual(len(services.get_available_routes()), 3)
            services.stop_bus_simulation("d1")
            self.assertEqual(services.get_live_buses(), [])


class StopDirectoryTests(SimpleTestCase):
    @override_settings(BUS_STOP_API={"base_url": ""})
    def test_fallback_without_configured_api(self):
        payload = stops.get_bus_stops()
        self.assertEqual(payload["source"], "fallback-sample")
        self.assertEqual(payload["type"], "FeatureCollection")
        self.assertGreater(len(payload["features"]), 0)
        self.assertEqual(
            payload["features"][0]["geometry"]["coordinates"], [77.4126, 23.2599]
        )

    @override_settings(BUS_STOP_API={"base_url": ""})
    def test_search_and_highway_filters(self):
        payload = stops.get_bus_stops(search="bhopal")
        names = [feature["properties"]["name"] for feature in payload["features"]]
        self.assertEqual(names, ["Bhopal Junction", "ISBT Bhopal"])

        payload = stops.get_bus_stops(highway="primary")
        self.assertTrue(
            all(f["properties"]["highway"] == "primary" for f in payload["features"])
        )

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example", "timeout_seconds": 1})
    @mock.patch("livebus.stops.requests.get")
    def test_remote_records_are_normalised(self, mock_get):
        mock_get.return_value.json.return_value = [
            {
                "id": 42,
                "geometry": "SRID=4326;POINT (77.5 23.3)",
                "properties": {"name": "Lake View", "highway": "bus_stop"},
            },
            {"id": 43, "geometry": None, "properties": {}},
        ]

        payload = stops.get_bus_stops()

        self.assertEqual(payload["source"], "remote")
        first, second = payload["features"]
        self.assertEqual(first["geometry"]["coordinates"], [77.5, 23.3])
        self.assertEqual(first["properties"]["osm_id"], "42")
        self.assertEqual(second["properties"]["name"], "Bus Stop 43")
        self.assertEqual(second["geometry"]["coordinates"], list(stops.DEFAULT_LOCATION))
        mock_get.assert_called_once_with(
            "http://stops.example/api/all-highways/", params={}, timeout=1
        )

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example"})
    @mock.patch("livebus.stops.requests.get")
    def test_remote_feature_collection_accepted(self, mock_get):
        mock_get.return_value.json.return_value = {
            "type": "FeatureCollection",
            "features": [
                {
                    "id": "n1",
                    "geometry": {"type": "Point", "coordinates": [77.1, 23.1]},
                    "properties": {"name": "Kolar Road", "osm_id": "n1"},
                }
            ],
        }
        payload = stops.get_bus_stops()
        self.assertEqual(payload["features"][0]["geometry"]["coordinates"], [77.1, 23.1])

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example"})
    @mock.patch("livebus.stops.requests.get")
    def test_request_error_falls_back(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("down")
        with self.assertLogs("livebus.stops", level="WARNING"):
            payload = stops.get_bus_stops()
        self.assertEqual(payload["source"], "fallback-sample")

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example"})
    @mock.patch("livebus.stops.requests.get")
    def test_non_object_records_fall_back(self, mock_get):
        mock_get.return_value.json.return_value = ["stop-a", "stop-b"]
        with self.assertLogs("livebus.stops", level="WARNING"):
            payload = stops.get_bus_stops()
        self.assertEqual(payload["source"], "fallback-sample")
        self.assertGreater(len(payload["features"]), 0)

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example"})
    @mock.patch("livebus.stops.requests.get")
    def test_null_features_fall_back(self, mock_get):
        mock_get.return_value.json.return_value = {"type": "FeatureCollection", "features": None}
        with self.assertLogs("livebus.stops", level="WARNING"):
            payload = stops.get_bus_stops()
        self.assertEqual(payload["source"], "fallback-sample")

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example"})
    @mock.patch("livebus.stops.requests.get")
    def test_non_string_names_are_searchable(self, mock_get):
        mock_get.return_value.json.return_value = [
            {"id": 7, "geometry": "SRID=4326;POINT (77.5 23.3)", "properties": {"name": 42}},
            {"id": 8, "geometry": "SRID=4326;POINT (77.6 23.4)", "properties": "junk"},
        ]
        response = Client().get("/api/stops/", {"search": "4"})

        self.assertEqual(response.status_code, 200)
        names = [f["properties"]["name"] for f in response.json()["features"]]
        self.assertEqual(names, ["42"])

    @override_settings(BUS_STOP_API={"base_url": "http://stops.example", "timeout_seconds": 2})
    @mock.patch("livebus.stops.requests.get")
    def test_city_is_forwarded(self, mock_get):
        mock_get.return_value.json.return_value = []
        response = Client().get("/api/stops/", {"city": "Bhopal"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["source"], "remote")
        mock_get.assert_called_once_with(
            "http://stops.example/api/all-highways/", params={"city": "bhopal"}, timeout=2
        )


class LiveBusAPITests(SimpleTestCase):
    def setUp(self):
        self.client = Client()
        self.service = services.BusSimulationService(catalog=_line_catalog())
        patcher = mock.patch("livebus.views.get_simulation_service", return_value=self.service)
        patcher.start()
        self.addCleanup(patcher.stop)

    def _post(self, url, data):
        return self.client.post(url, data=json.dumps(data), content_type="application/json")

    def test_route_catalog_endpoint(self):
        response = self.client.get("/api/routes/")
        self.assertEqual(response.status_code, 200)
        routes = response.json()["routes"]
        self.assertEqual([route["id"] for route in routes], ["R1", "R3", "single"])
        self.assertIn("path", routes[0])

    def test_start_then_poll_buses(self):
        response = self._post("/api/buses/start/", {"driverId": "driver-1", "routeId": "R1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["bus"]["nextStopIndex"], 1)

        payload = self.client.get("/api/buses/").json()
        self.assertIn("timestamp", payload)
        bus = payload["buses"][0]
        for key in ("id", "routeId", "location", "speed", "nextStopIndex", "crowdLevel"):
            self.assertIn(key, bus)
        self.assertEqual(bus["location"], [0.0, 0.0])
        self.assertEqual(bus["crowdLevel"], "low")

    def test_start_unknown_route_returns_404(self):
        response = self._post("/api/buses/start/", {"driverId": "d", "routeId": "missing-route"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.service.get_live_buses(), [])

    def test_start_requires_fields_and_json(self):
        self.assertEqual(self._post("/api/buses/start/", {"driverId": "d"}).status_code, 400)
        response = self.client.post(
            "/api/buses/start/", data="not json", content_type="application/json"
        )
        self.assertEqual(response.status_code, 400)

    def test_crowd_update_and_stop(self):
        self.service.start_bus_simulation("driver-1", "R1")

        response = self._post("/api/buses/crowd/", {"driverId": "driver-1", "level": "high"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/buses/").json()["buses"][0]["crowdLevel"], "high")

        response = self._post("/api/buses/crowd/", {"driverId": "driver-1", "level": "full"})
        self.assertEqual(response.status_code, 400)

        response = self._post("/api/buses/stop/", {"driverId": "driver-1"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.client.get("/api/buses/").json()["buses"], [])

    def test_stop_unknown_driver_is_ok(self):
        response = self._post("/api/buses/stop/", {"driverId": "nobody"})
        self.assertEqual(response.status_code, 200)

    @override_settings(BUS_STOP_API={"base_url": ""})
    def test_bus_stops_endpoint(self):
        response = self.client.get("/api/stops/", {"search": "isbt"})
        self.assertEqual(response.status_code, 200)
        features = response.json()["features"]
        self.assertEqual([f["properties"]["name"] for f in features], ["ISBT Bhopal"])


class FindRouteViewTests(SimpleTestCase):
    params = {"start_lat": "23.25", "start_lng": "77.41", "end_lat": "23.27", "end_lng": "77.42"}

    @mock.patch("livebus.views.requests.get")
    def test_returns_osrm_path(self, mock_get):
        mock_get.return_value.json.return_value = {
            "code": "Ok",
            "routes": [
                {
                    "distance": 2346.0,
                    "geometry": {"coordinates": [[77.41, 23.25], [77.42, 23.27]]},
                }
            ],
        }
        response = Client().get("/find-route/", self.params)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"path": [[77.41, 23.25], [77.42, 23.27]], "distance": 2.35})

    @mock.patch("livebus.views.requests.get")
    def test_no_route_returns_404(self, mock_get):
        mock_get.return_value.json.return_value = {"code": "NoRoute", "routes": []}
        self.assertEqual(Client().get("/find-route/", self.params).status_code, 404)

    @mock.patch("livebus.views.requests.get")
    def test_service_error_returns_502(self, mock_get):
        mock_get.side_effect = requests.exceptions.Timeout("slow")
        self.assertEqual(Client().get("/find-route/", self.params).status_code, 502)

    @mock.patch("livebus.views.requests.get")
    def test_unexpected_payloads_return_404(self, mock_get):
        for payload in (
            [],
            {"code": "Ok", "routes": [{"geometry": {"coordinates": [[77.41, 23.25]]}}]},
            {"code": "Ok", "routes": [{"distance": 10.0}]},
            {"code": "Ok", "routes": ["not-a-route"]},
        ):
            mock_get.return_value.json.return_value = payload
            with self.subTest(payload=payload):
                self.assertEqual(Client().get("/find-route/", self.params).status_code, 404)

    def test_invalid_coordinates_rejected(self):
        self.assertEqual(Client().get("/find-route/", {"start_lat": "x"}).status_code, 400)
