"""
Error kinds surfaced by the dashboard.

NotFoundError and UpstreamError can reach the API caller (as a friendly
message); ParseError only ever travels inside the forecast path, where it
triggers the local fallback.
"""

NOT_FOUND_MESSAGE = "The requested asset could not be found. Try a different name or symbol."
FETCH_FAILED_MESSAGE = "Failed to fetch data. Please try again later."


class DashboardError(Exception):
    """Base exception for dashboard errors."""
    pass


class NotFoundError(DashboardError):
    """The query resolves to nothing in any provider or catalog."""
    pass


class UpstreamError(DashboardError):
    """A provider call failed (network error, non-2xx, empty payload)."""
    pass


class ParseError(DashboardError):
    """A provider payload could not be interpreted."""
    pass


def user_message(exc: BaseException) -> str:
    """Map an exception to the message shown to the user."""
    if isinstance(exc, NotFoundError):
        return NOT_FOUND_MESSAGE
    return FETCH_FAILED_MESSAGE
