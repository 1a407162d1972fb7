from fastapi import Depends, Request
from functools import lru_cache
import time
import uuid
import logging

from .config import Settings, settings
from .core.exceptions import RateLimitError
from .services.analysis_service import AnalysisService, analysis_service
from .services.page_fetcher import PageFetcher, page_fetcher
from .utils.logger import get_logger as get_app_logger


# Global application state
class ApplicationState:
    """Global application state management."""

    def __init__(self):
        self.start_time = time.time()
        self.request_count = 0
        self.analyses_completed = 0
        self.analyses_failed = 0

    def get_uptime(self) -> float:
        """Get application uptime in seconds."""
        return time.time() - self.start_time

    def increment_request_count(self):
        """Increment the global request counter."""
        self.request_count += 1

    def record_analysis(self, success: bool):
        """Count a finished analysis."""
        if success:
            self.analyses_completed += 1
        else:
            self.analyses_failed += 1


# Global app state instance
app_state = ApplicationState()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return settings


def get_app_state() -> ApplicationState:
    """Get the global application state."""
    return app_state


def get_page_fetcher() -> PageFetcher:
    """Get the global page fetcher instance."""
    return page_fetcher


def get_analysis_service() -> AnalysisService:
    """Get the global analysis service instance."""
    return analysis_service


def get_logger(name: str = "api") -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return get_app_logger(name)


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return str(uuid.uuid4())


def get_request_id(request: Request) -> str:
    """Dependency returning the ID assigned by the request middleware."""
    return getattr(request.state, "request_id", None) or generate_request_id()


async def add_request_context(request: Request) -> str:
    """
    Add request context to the request state.

    Args:
        request: FastAPI request object

    Returns:
        Request ID
    """
    request_id = request.headers.get("X-Request-ID") or generate_request_id()
    request.state.request_id = request_id
    return request_id


class RateLimiter:
    """Simple in-memory rate limiter."""

    def __init__(self):
        self.requests: dict[str, list[float]] = {}
        self._last_sweep = 0.0

    def is_allowed(self, key: str, max_requests: int, window_seconds: int) -> bool:
        """
        Check if request is allowed based on rate limiting.

        Args:
            key: Unique key for the client (IP, user ID, etc.)
            max_requests: Maximum requests allowed
            window_seconds: Time window in seconds

        Returns:
            True if request is allowed, False otherwise
        """
        now = time.time()
        self._evict_idle(now, window_seconds)

        # Drop requests outside the window
        recent = [
            req_time for req_time in self.requests.get(key, [])
            if now - req_time < window_seconds
        ]

        if len(recent) < max_requests:
            recent.append(now)
            self.requests[key] = recent
            return True

        if recent:
            self.requests[key] = recent
        else:
            self.requests.pop(key, None)
        return False

    def _evict_idle(self, now: float, window_seconds: int) -> None:
        """Forget clients with no request inside the window."""
        # Full sweep at most once per window
        if now - self._last_sweep < window_seconds:
            return
        self._last_sweep = now

        idle = [
            key for key, times in self.requests.items()
            if not times or now - times[-1] >= window_seconds
        ]
        for key in idle:
            del self.requests[key]

    def reset(self):
        self.requests.clear()
        self._last_sweep = 0.0


# Global rate limiter instance
rate_limiter = RateLimiter()


async def check_rate_limit(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """
    Check rate limiting for the current request.

    Raises:
        RateLimitError: If rate limit is exceeded
    """
    request_key = request.client.host if request.client else "global"

    if not rate_limiter.is_allowed(
        request_key,
        settings.rate_limit_requests,
        settings.rate_limit_window
    ):
        get_logger("security").warning(f"Rate limit exceeded for {request_key} on {request.url.path}")
        raise RateLimitError(
            "Rate limit exceeded. Please try again later.",
            retry_after=settings.rate_limit_window
        )


def increment_request_counter():
    """Dependency to increment the global request counter."""
    app_state.increment_request_count()
    return app_state.request_count
