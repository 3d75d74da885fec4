import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "bustrack.settings")
# Serving processes drive the simulator; management commands and tests do not.
os.environ.setdefault("LIVEBUS_AUTOSTART", "1")

application = get_wsgi_application()
