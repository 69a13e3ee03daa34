"""Custom exception hierarchy for stagelineage.

All application exceptions inherit from :class:`StageLineageError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "igc") caused the failure.

    StageLineageError   (base -- catch-all for any stagelineage error)
    +-- RepositoryError     (a call to the metadata repository failed)
    +-- CacheRuntimeError   (fatal error surfaced by the DataStage cache)
    +-- ConfigurationError  (startup / missing config)

There are only two outcomes the cache distinguishes.  A requested entity
that does not exist is NOT an error: it is logged and returned as ``None``.
Everything else that goes wrong while talking to the repository is fatal,
wrapped in a :class:`CacheRuntimeError` with the originating class and
method name, and the original exception is chained as ``__cause__``.
"""

from __future__ import annotations

from enum import Enum
from typing import NoReturn


class ErrorCode(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Error codes reported alongside fatal cache errors."""

    UNKNOWN_RUNTIME_ERROR = "DATASTAGE-CACHE-500-001"
    NOT_INITIALIZED = "DATASTAGE-CACHE-500-002"
    ALREADY_INITIALIZED = "DATASTAGE-CACHE-500-003"


class StageLineageError(Exception):
    """Base exception for all stagelineage errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for structured log output, e.g. ``[igc] search failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class RepositoryError(StageLineageError):
    """Raised when a metadata repository call fails.

    Covers transport failures, non-2xx responses and payloads that cannot be
    parsed into the expected shape.  No distinction is made between
    transient and permanent failures.
    """

    def __init__(
        self,
        message: str = "Metadata repository call failed",
        provider_name: str | None = "igc",
        status_code: int | None = None,
    ) -> None:
        self._status_code = status_code
        super().__init__(message=message, provider_name=provider_name)

    @property
    def status_code(self) -> int | None:
        return self._status_code


class CacheRuntimeError(StageLineageError):
    """Fatal error raised by the DataStage cache.

    Carries the error code, the class and method in which the failure was
    detected, and (via ``raise ... from``) the underlying cause.
    """

    def __init__(
        self,
        code: ErrorCode,
        class_name: str,
        method_name: str,
        cause: BaseException | None = None,
    ) -> None:
        self._code = code
        self._class_name = class_name
        self._method_name = method_name
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            message=f"{code.value} {class_name}.{method_name} failed{detail}",
            provider_name=None,
        )

    @property
    def code(self) -> ErrorCode:
        return self._code

    @property
    def class_name(self) -> str:
        return self._class_name

    @property
    def method_name(self) -> str:
        return self._method_name


class ConfigurationError(StageLineageError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


def raise_runtime_error(
    code: ErrorCode,
    class_name: str,
    method_name: str,
    cause: BaseException | None = None,
) -> NoReturn:
    """Raise a :class:`CacheRuntimeError`, chaining *cause* when given."""
    error = CacheRuntimeError(code, class_name, method_name, cause)
    if cause is not None:
        raise error from cause
    raise error
