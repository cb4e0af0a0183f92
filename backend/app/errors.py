class AggregationError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(AggregationError):
    status_code = 400


class ResolutionError(AggregationError):
    status_code = 404


class UpstreamError(AggregationError):
    """Transport failure or non-success status from YouTube or a mirror."""


class QuotaExceededError(UpstreamError):
    status_code = 429


class MissingCredentialError(UpstreamError):
    def __init__(self, message: str = "YouTube API key is not configured"):
        super().__init__(message)
