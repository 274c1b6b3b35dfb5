"""WSGI entry point for the RoomNest listings service.

Gunicorn and Django's runserver load `application` from here. Deployments
choose the settings module through DJANGO_SETTINGS_MODULE; development
settings are the fallback.
"""

import os
from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.dev')

application = get_wsgi_application()
