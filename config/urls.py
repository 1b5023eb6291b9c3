"""
URL configuration for the draw data collector.

Only the Django admin is exposed; it is used by operators to inspect
collected rows, fingerprints and run audit records.
"""

from django.contrib import admin
from django.urls import path

urlpatterns = [
    path("admin/", admin.site.urls),
]
