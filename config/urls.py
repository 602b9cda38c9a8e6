"""URL configuration for the car rental booking backend.

The `urlpatterns` list routes URLs to the application-level views.
"""
from django.urls import path, include  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('api/v1/payments/', include('apps.payments.urls')),
]
