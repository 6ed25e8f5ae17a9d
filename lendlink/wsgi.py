"""WSGI entry point for LendLink."""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "lendlink.settings")

application = get_wsgi_application()
