"""
Development settings for the draw data collector.

Uses local SQLite and relaxed collector settings for development.
"""

import os
from .base import *

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

# Development database - SQLite for simplicity
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# Uncomment below to collect straight into a shared PostgreSQL store
# DATABASES = {
#     "default": {
#         "ENGINE": "django.db.backends.postgresql",
#         "NAME": os.getenv("DB_NAME", "drawdata"),
#         "USER": os.getenv("DB_USER", "postgres"),
#         "PASSWORD": os.getenv("DB_PASSWORD", ""),
#         "HOST": os.getenv("DB_HOST", "localhost"),
#         "PORT": os.getenv("DB_PORT", "5432"),
#     }
# }

# Development logging - verbose output
LOGGING["loggers"]["django"]["level"] = "INFO"
LOGGING["loggers"]["drawdata"]["level"] = "DEBUG"

# Relaxed collector settings for development
DRAWDATA_REQUEST_TIMEOUT = 60  # More time for debugging
DRAWDATA_MAX_ATTEMPTS = 2  # Fail fast in development
DRAWDATA_INTER_SOURCE_DELAY = 0.5
