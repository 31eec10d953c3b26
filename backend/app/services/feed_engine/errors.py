class FeedScoringError(Exception):
    """Base exception for feed scoring runs."""
    status_code = 500


class InvalidInput(FeedScoringError):
    """Raised when the user id is missing or malformed. No work is attempted."""
    status_code = 400


class UpstreamUnavailable(FeedScoringError):
    """Raised when a read or write against the collaborator store fails."""
    status_code = 502


class UpstreamDataError(UpstreamUnavailable):
    """Raised when the store returns a row that does not match the expected record shape."""
    pass
