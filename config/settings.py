"""Django settings for the farm-monitor project.

All deployment-specific values come from the environment. Feature
credentials (Sentinel Hub, OpenWeatherMap, Mapbox) are optional at import
time; the features that need them report a configuration error when used.
"""

from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-not-for-production")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django_prometheus",
    "rest_framework",
    "drf_spectacular",
    "farms",
    "ndvi",
    "weather",
]

MIDDLEWARE = [
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

DATABASES = {
    "default": dj_database_url.parse(
        os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
        conn_max_age=int(os.getenv("DATABASE_CONN_MAX_AGE", "60")),
    )
}

CACHES = {
    "default": {
        "BACKEND": os.getenv(
            "DJANGO_CACHE_BACKEND",
            "django.core.cache.backends.locmem.LocMemCache",
        ),
        "LOCATION": os.getenv("DJANGO_CACHE_LOCATION", "farm-monitor"),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation."
        "UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {
        "NAME": "django.contrib.auth.password_validation."
        "CommonPasswordValidator"
    },
    {
        "NAME": "django.contrib.auth.password_validation."
        "NumericPasswordValidator"
    },
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "config.api.exceptions.custom_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(
        minutes=int(os.getenv("JWT_ACCESS_MINUTES", "15"))
    ),
    "REFRESH_TOKEN_LIFETIME": timedelta(
        days=int(os.getenv("JWT_REFRESH_DAYS", "7"))
    ),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Farm Monitor API",
    "DESCRIPTION": "NDVI imagery, vegetation statistics and weather.",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# ---- Sentinel Hub (imagery + statistics) ----
SENTINELHUB_CLIENT_ID = os.getenv("SENTINELHUB_CLIENT_ID", "")
SENTINELHUB_CLIENT_SECRET = os.getenv("SENTINELHUB_CLIENT_SECRET", "")
SENTINELHUB_BASE_URL = os.getenv(
    "SENTINELHUB_BASE_URL", "https://services.sentinel-hub.com"
)
NDVI_RASTER_ENGINE_PATH = os.getenv(
    "NDVI_RASTER_ENGINE_PATH",
    "ndvi.raster.sentinelhub_engine.SentinelHubRasterEngine",
)
NDVI_STATS_ENGINE_PATH = os.getenv(
    "NDVI_STATS_ENGINE_PATH",
    "ndvi.engines.sentinelhub.SentinelHubStatisticsEngine",
)
NDVI_RASTER_SIZE = int(os.getenv("NDVI_RASTER_SIZE", "512"))
NDVI_TOKEN_TIMEOUT_SECONDS = float(
    os.getenv("NDVI_TOKEN_TIMEOUT_SECONDS", "10")
)
NDVI_IMAGE_TIMEOUT_SECONDS = float(
    os.getenv("NDVI_IMAGE_TIMEOUT_SECONDS", "30")
)
NDVI_STATS_TIMEOUT_SECONDS = float(
    os.getenv("NDVI_STATS_TIMEOUT_SECONDS", "20")
)
NDVI_DECODE_TIMEOUT_SECONDS = float(
    os.getenv("NDVI_DECODE_TIMEOUT_SECONDS", "10")
)
NDVI_CACHE_TTL_STATS_SECONDS = int(
    os.getenv("NDVI_CACHE_TTL_STATS_SECONDS", "21600")
)
NDVI_MAX_STATS_RANGE_DAYS = int(os.getenv("NDVI_MAX_STATS_RANGE_DAYS", "370"))

# ---- OpenWeatherMap ----
OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")
OPENWEATHER_BASE_URL = os.getenv(
    "OPENWEATHER_BASE_URL",
    "https://api.openweathermap.org/data/2.5/weather",
)
WEATHER_UNITS = os.getenv("WEATHER_UNITS", "metric")
WEATHER_CACHE_TTL_CURRENT_S = int(
    os.getenv("WEATHER_CACHE_TTL_CURRENT_S", "120")
)
WEATHER_REQUEST_TIMEOUT_SECONDS = float(
    os.getenv("WEATHER_REQUEST_TIMEOUT_SECONDS", "10")
)

# ---- Mapbox (map rendering) ----
MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
MAP_STYLE_SATELLITE = os.getenv(
    "MAP_STYLE_SATELLITE", "mapbox://styles/mapbox/satellite-v9"
)
MAP_STYLE_DARK = os.getenv("MAP_STYLE_DARK", "mapbox://styles/mapbox/dark-v11")

LOG_LEVEL = os.getenv("DJANGO_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
        "ndvi": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "weather": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "farms": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}
