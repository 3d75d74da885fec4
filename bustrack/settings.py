"""
Django settings for the bustrack project.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_flag(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_flag("DJANGO_DEBUG", "0")
ALLOWED_HOSTS = [
    host.strip()
    for host in os.environ.get("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
    if host.strip()
]

INSTALLED_APPS = [
    "livebus.apps.LiveBusConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
]

ROOT_URLCONF = "bustrack.urls"
WSGI_APPLICATION = "bustrack.wsgi.application"

# No persistence: all live state is held in memory by the simulator.
DATABASES = {}

USE_TZ = True
TIME_ZONE = "UTC"

LIVEBUS = {
    "tick_seconds": float(os.environ.get("LIVEBUS_TICK_SECONDS", "2.0")),
    "move_factor": float(os.environ.get("LIVEBUS_MOVE_FACTOR", "0.1")),
    "arrival_tolerance": float(os.environ.get("LIVEBUS_ARRIVAL_TOLERANCE", "0.0001")),
    "default_speed_kmh": float(os.environ.get("LIVEBUS_DEFAULT_SPEED_KMH", "25")),
    "autostart": _env_flag("LIVEBUS_AUTOSTART", "0"),
    "seed_default_buses": _env_flag("LIVEBUS_SEED_DEFAULT_BUSES", "1"),
}

BUS_STOP_API = {
    "base_url": os.environ.get("BUS_STOP_API_URL", ""),
    "timeout_seconds": float(os.environ.get("BUS_STOP_API_TIMEOUT", "5")),
}

ROUTING_CONFIG = {
    "osrm_url": os.environ.get("OSRM_URL", "http://router.project-osrm.org"),
    "timeout_seconds": float(os.environ.get("OSRM_TIMEOUT", "10")),
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "simple"},
    },
    "loggers": {
        "livebus": {
            "handlers": ["console"],
            "level": os.environ.get("LIVEBUS_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
