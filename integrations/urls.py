"""
URL routing for the ClickRank integration.
Note: These URLs are included at /api/v1/clickrank/, so paths here are relative to that.
"""
from django.urls import path

from . import views

urlpatterns = [
    path('update-post', views.update_post, name='clickrank-update-post'),
]
