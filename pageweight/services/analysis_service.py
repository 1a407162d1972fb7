from datetime import datetime, UTC
from typing import Optional
from urllib.parse import urlparse

from ..core.exceptions import ValidationError
from ..models.responses import AnalysisResult, EstimateResponse, ResourceBreakdownModel
from ..utils.logger import LoggerMixin, log_performance
from .page_fetcher import PageFetcher, page_fetcher
from .page_metadata import extract_page_metadata
from .resource_estimator import ResourceEstimator, resource_estimator

ALLOWED_SCHEMES = ("http", "https")


def validate_url(url: Optional[str]) -> str:
    """
    Normalize and validate a user-supplied page URL.

    Raises:
        ValidationError: If the URL is missing or not an absolute http(s) URL
    """
    if url is None or not url.strip():
        raise ValidationError("URL is required", field="url")

    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError:
        raise ValidationError("Invalid URL format", field="url")

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.netloc:
        raise ValidationError("Invalid URL format", field="url")

    return url


class AnalysisService(LoggerMixin):
    """Fetches a page and turns its markup into performance estimates."""

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        estimator: Optional[ResourceEstimator] = None
    ):
        self.fetcher = fetcher or page_fetcher
        self.estimator = estimator or resource_estimator

    @log_performance
    async def analyze(self, url: Optional[str]) -> AnalysisResult:
        """
        Run the static analysis for ``url``.

        The page size is the HTML byte length plus every estimated
        sub-resource size; the request count includes the document itself.
        """
        url = validate_url(url)
        page = await self.fetcher.fetch(url)

        soup = self.estimator.parse(page.html, url)
        breakdown, total_estimated_size = self.estimator.estimate_document(soup, url)
        metadata = extract_page_metadata(soup)

        html_size = page.html_size
        result = AnalysisResult(
            url=url,
            load_time=page.load_time_ms,
            page_size=html_size + total_estimated_size,
            request_count=breakdown.request_count,
            resource_breakdown=ResourceBreakdownModel.from_breakdown(breakdown),
            html_size=html_size,
            title=metadata.title,
            meta_description=metadata.meta_description,
            timestamp=datetime.now(UTC)
        )

        self.logger.info(
            f"Analyzed {url}: {result.request_count} requests, "
            f"{result.page_size} bytes, {result.load_time}ms"
        )
        return result

    def estimate_html(self, html: str, base_url: str = "") -> EstimateResponse:
        """Estimate resources for markup the caller already has."""
        breakdown, total_estimated_size = self.estimator.estimate(html, base_url)
        return EstimateResponse(
            resource_breakdown=ResourceBreakdownModel.from_breakdown(breakdown),
            request_count=breakdown.request_count,
            total_estimated_size=total_estimated_size
        )


# Singleton instance for global use
analysis_service = AnalysisService()
