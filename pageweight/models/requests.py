from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import settings


class AnalyzeRequest(BaseModel):
    """Request model for the page analysis endpoint."""

    # Validated by the analysis service so a missing or malformed URL
    # answers 400 with a specific message instead of a generic 422
    url: Optional[str] = Field(
        default=None,
        description="The URL of the page to analyze",
        examples=["https://example.com"]
    )


class EstimateRequest(BaseModel):
    """Request model for estimating resources from supplied markup."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    html: str = Field(
        ...,
        description="Raw HTML of the page",
        # Counted in characters; fetched pages are capped in bytes by the same setting
        max_length=settings.max_html_size
    )

    base_url: str = Field(
        default="",
        description="Where the markup came from (informational only)"
    )
