from django.urls import path
from .views import (
    BusStopsAPIView, CrowdLevelUpdateView, FindRouteView, LiveBusDataAPIView,
    RouteCatalogAPIView, StartBusSimulationView, StopBusSimulationView,
)

app_name = "livebus"

urlpatterns = [
    path("api/routes/", RouteCatalogAPIView.as_view(), name="route-catalog"),
    path("api/buses/", LiveBusDataAPIView.as_view(), name="live-buses"),
    path("api/buses/start/", StartBusSimulationView.as_view(), name="start-bus"),
    path("api/buses/stop/", StopBusSimulationView.as_view(), name="stop-bus"),
    path("api/buses/crowd/", CrowdLevelUpdateView.as_view(), name="crowd-level"),
    path("api/stops/", BusStopsAPIView.as_view(), name="bus-stops"),
    path("find-route/", FindRouteView.as_view(), name="find-route"),
]
