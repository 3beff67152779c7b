"""Feed ingestion package bootstrap."""

from .celery_app import create_celery_app, get_celery_app  # noqa: F401
from .errors import ConfigurationError, IngestionError, PersistenceError, RegistryError  # noqa: F401
from .settings import Settings, get_settings, reset_settings_cache  # noqa: F401

__all__ = [
    "ConfigurationError",
    "IngestionError",
    "PersistenceError",
    "RegistryError",
    "Settings",
    "create_celery_app",
    "get_celery_app",
    "get_settings",
    "reset_settings_cache",
]
