"""Error taxonomy shared by the ingestion pipeline."""

from __future__ import annotations


class IngestionError(Exception):
    """Base error for the ingestion service."""


class ConfigurationError(IngestionError, RuntimeError):
    """Missing or invalid configuration; fatal to the whole run."""


class RegistryError(IngestionError):
    """The source registry could not be enumerated; fatal to the whole run."""


class FeedParseError(IngestionError):
    """A fetched document is not well-formed XML."""


class PersistenceError(IngestionError):
    """The article store rejected a write."""
