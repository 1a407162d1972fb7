from typing import Optional, Dict, Any


FETCH_FAILED_MESSAGE = (
    "Failed to analyze URL. Please check if the URL is accessible and try again."
)


class PageWeightException(Exception):
    """Base exception for all page analysis errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "GENERAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(PageWeightException):
    """Exception raised for input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.field = field
        validation_details = details or {}
        if field:
            validation_details["field"] = field
        super().__init__(message, "VALIDATION_ERROR", validation_details)


class FetchError(PageWeightException):
    """Exception raised when the target page answers with an unusable response."""

    def __init__(
        self,
        message: str = FETCH_FAILED_MESSAGE,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        reason: Optional[str] = None
    ):
        details = {}
        if url:
            details["url"] = url
        if status_code:
            details["status_code"] = status_code
        if reason:
            details["reason"] = reason
        super().__init__(message, "FETCH_ERROR", details)


class NetworkError(PageWeightException):
    """Exception raised for network-related errors."""

    def __init__(
        self,
        message: str = FETCH_FAILED_MESSAGE,
        url: Optional[str] = None,
        timeout: Optional[bool] = False,
        reason: Optional[str] = None
    ):
        details = {"timeout": timeout}
        if url:
            details["url"] = url
        if reason:
            details["reason"] = reason
        super().__init__(message, "NETWORK_ERROR", details)


class RateLimitError(PageWeightException):
    """Exception raised when rate limits are exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        details = {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, "RATE_LIMIT_ERROR", details)


class ConfigurationError(PageWeightException):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, "CONFIGURATION_ERROR", details)


class ServiceUnavailableError(PageWeightException):
    """Exception raised when a required service is unavailable."""

    def __init__(self, message: str, service: Optional[str] = None):
        details = {}
        if service:
            details["service"] = service
        super().__init__(message, "SERVICE_UNAVAILABLE", details)


# Mapping of exception types to HTTP status codes
EXCEPTION_STATUS_CODES = {
    ValidationError: 400,
    RateLimitError: 429,
    ConfigurationError: 500,
    FetchError: 502,
    NetworkError: 502,
    ServiceUnavailableError: 503,
    PageWeightException: 500,  # Default for base exception
}


def get_http_status_code(exception: PageWeightException) -> int:
    """
    Get the appropriate HTTP status code for an exception.

    Args:
        exception: The exception instance

    Returns:
        HTTP status code
    """
    return EXCEPTION_STATUS_CODES.get(type(exception), 500)
