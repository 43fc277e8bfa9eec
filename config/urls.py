"""Root URL configuration.

Routes:
- GET / -> home
- /admin/ -> Django admin
- /metrics -> Prometheus exposition (django-prometheus)
- /api/schema/, /api/docs/, /api/redoc/ -> OpenAPI
- /api/sentinelhub-01, /api/ndvi/stats, /api/map/config -> ndvi.urls
- /api/weather -> weather.urls
- /api/v1/ -> farms.urls, ndvi.urls (owner-scoped)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

from .views import home

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", home, name="home"),
    path("", include("django_prometheus.urls")),
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path(
        "api/docs/",
        SpectacularSwaggerView.as_view(url_name="schema"),
        name="swagger-ui",
    ),
    path(
        "api/redoc/",
        SpectacularRedocView.as_view(url_name="schema"),
        name="redoc",
    ),
    path("api/", include("ndvi.urls")),
    path("api/", include("weather.urls")),
    path("api/v1/", include("farms.urls")),
    path("api/v1/", include("ndvi.owner_urls")),
]
