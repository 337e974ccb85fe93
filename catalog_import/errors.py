"""Error taxonomy for the catalog import pipeline.

Every stage raises one of the exceptions below.  The orchestrator catches
them at the per-address boundary and turns them into ``Failed`` outcomes, so
none of them ever aborts a run.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Pipeline stage an address failed in."""

    VALIDATION = "validation"
    FETCH = "fetch"
    PARSE = "parse"
    RELAY = "relay"
    PERSISTENCE = "persistence"


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NETWORK_ERROR = "network_error"


class RelayErrorKind(str, Enum):
    NOT_AN_IMAGE = "not_an_image"
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    NETWORK_OR_TLS_FAILURE = "network_or_tls_failure"


class ImportPipelineError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind

    @property
    def detail(self) -> Optional[str]:
        """Sub-classification carried into ``Failed.detail`` (if any)."""
        return None


class ConfigurationError(ImportPipelineError):
    """A required setting (API key, relay URL, ...) is missing or invalid."""


class ValidationError(ImportPipelineError):
    kind = ErrorKind.VALIDATION


class ParseError(ImportPipelineError):
    """The page did not yield a complete product record."""

    kind = ErrorKind.PARSE


class PersistenceError(ImportPipelineError):
    """Storage upload or catalog insert failed."""

    kind = ErrorKind.PERSISTENCE


class FetchError(ImportPipelineError):
    kind = ErrorKind.FETCH

    def __init__(
        self,
        fetch_kind: FetchErrorKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.fetch_kind = fetch_kind
        self.status_code = status_code

    @property
    def detail(self) -> Optional[str]:
        return self.fetch_kind.value


class RelayError(ImportPipelineError):
    kind = ErrorKind.RELAY

    def __init__(
        self,
        relay_kind: RelayErrorKind,
        message: str,
        *,
        url: str = "",
        status_code: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.relay_kind = relay_kind
        self.url = url
        self.status_code = status_code
        self.content_type = content_type

    @property
    def detail(self) -> Optional[str]:
        return self.relay_kind.value
