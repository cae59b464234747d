"""
API URL routing for clickrank_backend.
All API endpoints are prefixed with /api/v1/
"""
from django.urls import path, include

from .views import health_check

urlpatterns = [
    # Health check (no auth) - GET /api/v1/health/
    path('health/', health_check, name='health'),
    # ClickRank platform webhook - POST /api/v1/clickrank/update-post
    path('clickrank/', include('integrations.urls')),
]
