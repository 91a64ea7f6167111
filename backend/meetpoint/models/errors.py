"""Error kinds and error payloads.

``LocationServiceError`` is raised by the core services and carries an
``ErrorCode``. ``AppError`` is the response payload the API layer builds
from it; the core never produces user-facing text itself.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Failure kinds shared by the provider, orchestrator and API."""

    INVALID_INPUT = "INVALID_INPUT"
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    GEOCODING_FAILED = "GEOCODING_FAILED"
    PLACES_SEARCH_FAILED = "PLACES_SEARCH_FAILED"
    PLACE_DETAILS_FAILED = "PLACE_DETAILS_FAILED"
    NETWORK_ERROR = "NETWORK_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Transient kinds; retrying can change the outcome.
RETRYABLE_ERROR_CODES = frozenset({ErrorCode.NETWORK_ERROR, ErrorCode.QUOTA_EXCEEDED})


class LocationServiceError(Exception):
    """Raised by provider adapters and core services.

    Attributes:
        code: The failure kind, used for retry classification and for
            mapping to an HTTP response.
        message: Developer-facing description.
        details: Optional structured context (status codes, ids, ...).
    """

    def __init__(
        self, code: ErrorCode, message: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_ERROR_CODES

    def __repr__(self) -> str:
        return f"LocationServiceError({self.code.value}, {self.message!r})"


class RecoveryOption(BaseModel):
    """A suggested next step offered to the client."""

    label: str
    action: str
    params: Optional[dict] = None


class AppError(BaseModel):
    """Error payload returned by the API."""

    code: ErrorCode
    message: str
    user_message: str
    recovery_options: list[RecoveryOption] = Field(default_factory=list)
