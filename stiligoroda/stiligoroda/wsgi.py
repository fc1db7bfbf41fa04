"""
WSGI config for the Stiligoroda project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'stiligoroda.settings')

application = get_wsgi_application()
