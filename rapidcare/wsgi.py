"""
WSGI config for the rapidcare project.

It exposes the WSGI callable as a module-level variable named ``application``.
Plain WSGI serves the REST API only; the WebSocket layer needs the ASGI
entrypoint in ``rapidcare.asgi``.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rapidcare.settings')

application = get_wsgi_application()
