# -*- coding: utf-8 -*-
"""
Pydantic data models for the API.
"""
from typing import Any

from pydantic import BaseModel, Field

from .errors import PipelineError
from .linking import LinkCandidate


class LinkCandidateModel(BaseModel):
    """Link candidate supplied by the caller."""

    anchor_text: str = Field(..., min_length=1, description="Phrase to link, or business name")
    url: str = Field(..., min_length=1, description="Link target")
    title: str = ""
    description: str = ""

    def to_candidate(self) -> LinkCandidate:
        return LinkCandidate(
            anchor_text=self.anchor_text,
            url=self.url,
            title=self.title,
            description=self.description,
        )


class NormalizeRequest(BaseModel):
    """Normalization request schema."""

    text: str = Field(..., description="Raw generated text")
    topic: str = Field(default="", description="Topic or keyword, used as title fallback")
    image_urls: list[str] = Field(default_factory=list, description="Hosted image URLs to place")


class PrepareRequest(NormalizeRequest):
    """Publish preparation request schema."""

    include_internal_links: bool | None = None
    include_external_links: bool | None = None
    include_promotional_mentions: bool | None = None
    max_internal_links: int | None = Field(default=None, ge=0, le=20)
    max_external_links: int | None = Field(default=None, ge=0, le=20)
    max_promotional_mentions: int | None = Field(default=None, ge=0, le=5)

    # Caller-supplied candidates replace the configured services
    internal_candidates: list[LinkCandidateModel] | None = None
    external_candidates: list[LinkCandidateModel] | None = None
    business: LinkCandidateModel | None = None

    header_image_url: str | None = Field(default=None, description="Featured image above the body")


class IssueModel(BaseModel):
    """Non-fatal problem noticed while processing a document."""

    code: str
    message: str

    @classmethod
    def from_error(cls, error: PipelineError) -> "IssueModel":
        return cls(**error.to_dict())


class NormalizeResponse(BaseModel):
    """Normalization response schema."""

    title: str
    markdown: str
    classification: dict[str, Any] = Field(default_factory=dict)
    issues: list[IssueModel] = Field(default_factory=list)
    steps_applied: list[str] = Field(default_factory=list)


class PrepareResponse(BaseModel):
    """Publish preparation response schema."""

    title: str
    excerpt: str
    html: str
    markdown: str = ""
    links: dict[str, int] = Field(default_factory=dict)
    issues: list[IssueModel] = Field(default_factory=list)
    steps_applied: list[str] = Field(default_factory=list)
    structure: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    version: str
    internal_links_configured: bool = False
    external_links_configured: bool = False
    business_configured: bool = False
