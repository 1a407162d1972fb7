from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.resource_estimator import ResourceBreakdown, ResourceCategory


class CategoryTallyModel(BaseModel):
    """Request count and estimated bytes for one resource category."""

    count: int = Field(0, description="Number of requests", ge=0)
    size: int = Field(0, description="Estimated size in bytes", ge=0)


class ResourceBreakdownModel(BaseModel):
    """Tallies for every resource category."""

    document: CategoryTallyModel = Field(default_factory=CategoryTallyModel)
    stylesheet: CategoryTallyModel = Field(default_factory=CategoryTallyModel)
    script: CategoryTallyModel = Field(default_factory=CategoryTallyModel)
    image: CategoryTallyModel = Field(default_factory=CategoryTallyModel)
    font: CategoryTallyModel = Field(default_factory=CategoryTallyModel)
    other: CategoryTallyModel = Field(default_factory=CategoryTallyModel)

    @classmethod
    def from_breakdown(cls, breakdown: ResourceBreakdown) -> "ResourceBreakdownModel":
        return cls(**{
            category.value: CategoryTallyModel(
                count=breakdown[category].count,
                size=breakdown[category].size
            )
            for category in ResourceCategory
        })


class CamelModel(BaseModel):
    """Base for responses serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AnalysisResult(CamelModel):
    """Result of a static page analysis."""

    url: str = Field(..., description="Analyzed URL")
    load_time: int = Field(..., description="Time to fetch the HTML (ms)", ge=0)
    page_size: int = Field(..., description="HTML size plus estimated resource sizes (bytes)", ge=0)
    request_count: int = Field(..., description="Estimated number of requests", ge=1)
    resource_breakdown: ResourceBreakdownModel = Field(..., description="Per-category breakdown")
    html_size: int = Field(..., description="UTF-8 size of the HTML document (bytes)", ge=0)
    title: str = Field(..., description="Page title")
    meta_description: str = Field(..., description="Meta description")
    timestamp: datetime = Field(..., description="When the analysis finished")


class EstimateResponse(CamelModel):
    """Resource estimate for supplied markup."""

    resource_breakdown: ResourceBreakdownModel = Field(..., description="Per-category breakdown")
    request_count: int = Field(..., description="Estimated number of requests", ge=1)
    total_estimated_size: int = Field(..., description="Sum of estimated sizes (bytes)", ge=0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="Application version")
    uptime: float = Field(..., description="Uptime in seconds")
    details: Optional[Dict[str, Any]] = Field(None, description="Detailed health information")


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="When the error occurred")
    request_id: Optional[str] = Field(None, description="Request identifier for tracking")
