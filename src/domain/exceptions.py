from typing import Optional


class AggregatorException(Exception):
    """Base exception for all aggregator-related errors."""
    pass

class ConfigurationError(AggregatorException):
    """Raised when required settings are missing or invalid."""
    pass

class UpstreamError(AggregatorException):
    """Raised when a GitHub REST call fails at the transport or HTTP level."""
    def __init__(self, path: str, status: Optional[int] = None, message: str = "GitHub API request failed."):
        self.path = path
        self.status = status
        detail = f"status {status}" if status is not None else "no response"
        super().__init__(f"{message} {path} ({detail})")

class RateLimitExceededException(UpstreamError):
    """Raised when the GitHub REST rate limit is hit."""
    def __init__(self, path: str, status: int, reset_at: Optional[str] = None):
        self.reset_at = reset_at
        super().__init__(path, status, message=f"GitHub API rate limit exceeded. Resets at: {reset_at}.")

class ResponseShapeError(AggregatorException):
    """Raised when a successful response lacks the structure a sub-fetch expects."""
    pass
