"""
Exception hierarchy for the discovery engine.

Exception Hierarchy:
    DiscoveryError (base)
    ├── AdapterError            raised by a source adapter for one call
    ├── AdapterFailure          a source exhausted its retries
    ├── ConfigurationError
    │   ├── AllProvidersDisabled
    │   └── AllTypesDisabled
    ├── AllSourcesFailed        every attempted source exhausted its retries
    └── UnexpectedFailure       anything outside the adapter retry boundary

Adapter errors are recovered inside the retry executor and never escape a
discovery. Configuration, all-sources and unexpected failures are converted
into a ``DiscoveryErrorInfo`` on the published state.

Usage:
    from discovery.exceptions import AdapterError

    raise AdapterError("wikipedia", "HTTP 503", detail={"status_code": 503})
"""

from typing import Any, Dict, Optional

from discovery.constants import (
    ALL_SOURCES_FAILED_MESSAGE,
    CONFIGURATION_MESSAGE,
    GENERIC_FAILURE_MESSAGE,
)
from discovery.models import DiscoveryErrorInfo, POICategory


class DiscoveryError(Exception):
    """
    Base exception for all discovery errors.

    Attributes:
        message: Human-readable error message
        detail: Optional dict with additional error context
    """

    def __init__(self, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    @property
    def code(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for JSON serialization."""
        result: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        return result

    def to_error_info(self) -> DiscoveryErrorInfo:
        return DiscoveryErrorInfo(code=self.code, message=self.message)


class AdapterError(DiscoveryError):
    """Raised by a source adapter when a single fetch fails."""

    def __init__(self, source: str, message: str, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(f"[{source}] {message}", detail=detail)
        self.source = source


class AdapterFailure(DiscoveryError):
    """A source failed every attempt. Recorded, never raised out of a discovery."""

    def __init__(
        self,
        source: str,
        attempts: int,
        last_error: Optional[BaseException] = None,
    ):
        reason = f"{type(last_error).__name__}: {last_error}" if last_error else "unknown error"
        super().__init__(
            f"{source} failed after {attempts} attempt(s): {reason}",
            detail={"source": source, "attempts": attempts},
        )
        self.source = source
        self.attempts = attempts
        self.last_error = last_error


class ConfigurationError(DiscoveryError):
    """Settings make a discovery impossible. Detected before any network call."""

    def __init__(self, category: POICategory, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(CONFIGURATION_MESSAGE.format(category=category.value), detail=detail)
        self.category = category


class AllProvidersDisabled(ConfigurationError):
    """No enabled source serves the requested category."""


class AllTypesDisabled(ConfigurationError):
    """No POI type of the requested category is enabled."""


class AllSourcesFailed(DiscoveryError):
    def __init__(self, *, detail: Optional[Dict[str, Any]] = None):
        super().__init__(ALL_SOURCES_FAILED_MESSAGE, detail=detail)


class UnexpectedFailure(DiscoveryError):
    """Any fault outside the adapter retry boundary, such as a merge or rank error."""

    def __init__(self, cause: Optional[BaseException] = None):
        detail = {"cause": f"{type(cause).__name__}: {cause}"} if cause else None
        super().__init__(GENERIC_FAILURE_MESSAGE, detail=detail)
        self.cause = cause
