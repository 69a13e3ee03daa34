"""Utility modules for stagelineage.

- **errors** -- Exception hierarchy rooted at StageLineageError, including
  the fatal CacheRuntimeError raised by the DataStage cache.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from stagelineage.utils.errors import (
    CacheRuntimeError,
    ConfigurationError,
    ErrorCode,
    RepositoryError,
    StageLineageError,
    raise_runtime_error,
)
from stagelineage.utils.logging import configure_logging, get_logger

__all__ = [
    "CacheRuntimeError",
    "ConfigurationError",
    "ErrorCode",
    "RepositoryError",
    "StageLineageError",
    "configure_logging",
    "get_logger",
    "raise_runtime_error",
]
