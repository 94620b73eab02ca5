"""Exceptions raised by the roadmap connector.

Every fatal error of a crawl inherits from ConnectorException so callers
(Temporal activities, the maintenance API) can handle them uniformly.
"""

from typing import Optional


class ConnectorException(Exception):
    """Base exception for connector errors."""

    pass


class StoreUnavailable(ConnectorException):
    """Raised when the watermark persistence medium cannot be reached.

    A missing watermark is NOT an error; it only means a full sync is required.
    """

    pass


class UpstreamUnavailable(ConnectorException):
    """Raised when the roadmap API cannot be fetched (network error or non-2xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize the exception.

        Args:
            message: Description of the failure
            status_code: HTTP status returned by the API, if any
        """
        self.status_code = status_code
        super().__init__(message)


class MalformedResponse(ConnectorException):
    """Raised when the roadmap API payload is not a list of records."""

    pass


class IngestionError(ConnectorException):
    """Raised when a call to the ingestion sink fails after retries."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        """Initialize the exception.

        Args:
            message: Description of the failure
            status_code: HTTP status returned by the sink, if any
        """
        self.status_code = status_code
        super().__init__(message)
