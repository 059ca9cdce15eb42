"""
ASGI config for the storefront backend.

Served by Uvicorn/Daphne, or wrapped by Mangum in lambda_handlers.api_handler.
The application is built at import time so Lambda pays the setup cost once
per container.
"""
import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_asgi_application()
