from fastapi import APIRouter, Depends
import logging

from ...dependencies import (
    get_app_state,
    get_analysis_service,
    get_logger,
    get_request_id,
    check_rate_limit,
    ApplicationState
)
from ...core.exceptions import PageWeightException
from ...models.requests import AnalyzeRequest, EstimateRequest
from ...models.responses import AnalysisResult, EstimateResponse
from ...services.analysis_service import AnalysisService

router = APIRouter()


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_page(
    request: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
    app_state: ApplicationState = Depends(get_app_state),
    logger: logging.Logger = Depends(get_logger),
    request_id: str = Depends(get_request_id),
    _: None = Depends(check_rate_limit)
):
    """
    Fetch a page and estimate its weight from the markup.

    Returns load time, estimated page size, request count and a
    per-category resource breakdown.
    """
    logger.info(f"Analysis requested for {request.url!r}", extra={"request_id": request_id})

    try:
        result = await service.analyze(request.url)
    except PageWeightException:
        app_state.record_analysis(success=False)
        raise

    app_state.record_analysis(success=True)
    return result


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_markup(
    request: EstimateRequest,
    service: AnalysisService = Depends(get_analysis_service),
    logger: logging.Logger = Depends(get_logger)
):
    """Estimate resource weight for HTML supplied in the request body."""
    logger.debug(f"Estimating {len(request.html)} characters of markup from {request.base_url or 'unknown source'}")
    return service.estimate_html(request.html, request.base_url)
