from django.apps import AppConfig
from django.conf import settings


class LiveBusConfig(AppConfig):
    name = "livebus"
    verbose_name = "Live bus simulator"

    def ready(self):
        if getattr(settings, "LIVEBUS", {}).get("autostart", False):
            from .services import get_simulation_service

            get_simulation_service().start()
