"""
Draw data collector application configuration.
"""

from django.apps import AppConfig


class DrawDataConfig(AppConfig):
    """Configuration for the drawdata Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "drawdata"
    verbose_name = "Draw Data Collector"
