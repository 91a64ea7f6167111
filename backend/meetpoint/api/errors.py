"""Mapping from core error kinds to API responses.

The core services only raise ``LocationServiceError``; user-facing wording
and recovery hints live here.
"""

from meetpoint.models import AppError, ErrorCode, LocationServiceError, RecoveryOption

HTTP_STATUS = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.LOCATION_NOT_FOUND: 404,
    ErrorCode.PLACE_DETAILS_FAILED: 404,
    ErrorCode.GEOCODING_FAILED: 502,
    ErrorCode.PLACES_SEARCH_FAILED: 502,
    ErrorCode.NETWORK_ERROR: 503,
    ErrorCode.QUOTA_EXCEEDED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}

USER_MESSAGES = {
    ErrorCode.INVALID_INPUT: "Invalid request. Please check your input and try again.",
    ErrorCode.LOCATION_NOT_FOUND: "We couldn't find that address. Try a more specific one.",
    ErrorCode.GEOCODING_FAILED: "We couldn't look up that address right now.",
    ErrorCode.PLACES_SEARCH_FAILED: "Venue search failed. Try other categories or a larger radius.",
    ErrorCode.PLACE_DETAILS_FAILED: "Place not found.",
    ErrorCode.NETWORK_ERROR: "The map service is unreachable. Check your connection and retry.",
    ErrorCode.QUOTA_EXCEEDED: "The map service is busy. Please try again in a moment.",
    ErrorCode.INTERNAL_ERROR: "Something went wrong. Please try again.",
}

RECOVERY_OPTIONS = {
    ErrorCode.LOCATION_NOT_FOUND: [
        RecoveryOption(label="Edit address", action="edit_location"),
    ],
    ErrorCode.PLACES_SEARCH_FAILED: [
        RecoveryOption(label="Retry", action="retry"),
        RecoveryOption(label="Widen search", action="change_radius", params={"radius_meters": 10000}),
    ],
    ErrorCode.NETWORK_ERROR: [RecoveryOption(label="Retry", action="retry")],
    ErrorCode.QUOTA_EXCEEDED: [RecoveryOption(label="Retry later", action="retry")],
    ErrorCode.INTERNAL_ERROR: [RecoveryOption(label="Retry", action="retry")],
}


def to_app_error(error: LocationServiceError) -> AppError:
    return AppError(
        code=error.code,
        message=error.message,
        user_message=USER_MESSAGES[error.code],
        recovery_options=list(RECOVERY_OPTIONS.get(error.code, [])),
    )


def status_for(error: LocationServiceError) -> int:
    return HTTP_STATUS.get(error.code, 500)
