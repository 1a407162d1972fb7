import logging
import os
from unittest.mock import patch

import pytest

from pageweight.config import Settings
from pageweight.core.exceptions import (
    ConfigurationError,
    FetchError,
    NetworkError,
    PageWeightException,
    RateLimitError,
    ServiceUnavailableError,
    ValidationError,
    get_http_status_code,
)
from pageweight.utils.logger import (
    ColoredFormatter,
    LoggerMixin,
    RequestContextFilter,
    get_logger,
    log_performance,
    setup_logging,
)


class TestSettings:
    """Settings are read from the environment."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.app_name == "PageWeight"
        assert settings.api_v1_prefix == "/api/v1"
        assert settings.rate_limit_requests == 10
        assert settings.rate_limit_window == 60
        assert settings.max_html_size == 10 * 1024 * 1024
        assert settings.follow_redirects is True

    def test_environment_overrides(self):
        with patch.dict(os.environ, {
            'REQUEST_TIMEOUT': '5.5',
            'RATE_LIMIT_REQUESTS': '3',
            'DEBUG': 'true',
            'LOG_LEVEL': 'WARNING',
        }):
            settings = Settings(_env_file=None)

        assert settings.request_timeout == 5.5
        assert settings.rate_limit_requests == 3
        assert settings.debug is True
        assert settings.log_level == "WARNING"

    @pytest.mark.parametrize("raw,expected", [
        ("http://a.example,http://b.example", ["http://a.example", "http://b.example"]),
        ("http://a.example , http://b.example", ["http://a.example", "http://b.example"]),
        ("https://only.example", ["https://only.example"]),
        ('["http://json.example"]', ["http://json.example"]),
        ("*", ["*"]),
    ])
    def test_cors_origins_formats(self, raw, expected):
        with patch.dict(os.environ, {'CORS_ORIGINS': raw}):
            settings = Settings(_env_file=None)

        assert settings.cors_origins == expected


class TestExceptions:

    @pytest.mark.parametrize("exception,status_code", [
        (ValidationError("bad"), 400),
        (RateLimitError("slow down", retry_after=60), 429),
        (ConfigurationError("missing", config_key="X"), 500),
        (FetchError(), 502),
        (NetworkError(timeout=True), 502),
        (ServiceUnavailableError("down"), 503),
        (PageWeightException("boom"), 500),
    ])
    def test_status_codes(self, exception, status_code):
        assert get_http_status_code(exception) == status_code

    def test_error_details(self):
        assert ValidationError("bad", field="url").details == {"field": "url"}
        assert RateLimitError("slow", retry_after=5).details == {"retry_after": 5}
        assert NetworkError(url="https://x.example").details == {"timeout": False, "url": "https://x.example"}
        assert FetchError(status_code=500, reason="HTTP 500: Internal Server Error").details == {
            "status_code": 500,
            "reason": "HTTP 500: Internal Server Error",
        }


class TestLogging:

    def test_loggers_live_under_package_namespace(self):
        assert get_logger("api").name == "pageweight.api"
        assert get_logger("pageweight.services.page_fetcher").name == "pageweight.services.page_fetcher"

    def test_setup_logging_without_file_handlers(self, tmp_path):
        logger = setup_logging(app_name="pageweight-test", log_dir=str(tmp_path), enable_file=False)

        assert len(logger.handlers) == 1
        assert logger.propagate is False
        assert not any(tmp_path.iterdir())

    def test_setup_logging_with_file_handlers(self, tmp_path):
        logger = setup_logging(app_name="pageweight-test", log_dir=str(tmp_path), enable_console=False, enable_file=True)

        assert len(logger.handlers) == 2
        assert (tmp_path / "pageweight-test.log").exists()

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_colored_formatter_leaves_record_untouched(self):
        record = logging.makeLogRecord({"levelname": "INFO", "msg": "hello", "name": "pageweight"})
        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[32m" in output
        assert record.levelname == "INFO"

    def test_request_context_filter_defaults(self):
        record = logging.makeLogRecord({"msg": "hello"})
        RequestContextFilter().filter(record)
        assert record.request_id == "N/A"

    def test_logger_mixin(self):
        class Worker(LoggerMixin):
            pass

        assert Worker().logger.name == f"pageweight.{__name__}"

    @pytest.mark.asyncio
    async def test_log_performance_async(self):
        @log_performance
        async def double(value):
            return value * 2

        assert await double(4) == 8

    def test_log_performance_reraises(self):
        @log_performance
        def explode():
            raise ValueError("nope")

        with pytest.raises(ValueError, match="nope"):
            explode()
