"""
URL configuration for the Store Rating API.

API routes are mounted at the site root (``/login``, ``/stores``,
``/admin/users`` ...); the Django admin site lives under ``/django-admin/``.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView


# Simple health check view - no database required
def health_check(request):
    """Health check endpoint for container orchestration.
    Returns 200 OK without database queries for fast response.
    """
    return JsonResponse({
        'status': 'healthy',
        'service': 'store-rating-api'
    })


urlpatterns = [
    # Health check endpoint (no auth required, no DB queries)
    path('api/health/', health_check, name='health-check'),

    path('django-admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # API endpoints
    path('', include('users.urls')),
    path('', include('stores.urls')),
    path('', include('ratings.urls')),
    path('', include('dashboard.urls')),
]
