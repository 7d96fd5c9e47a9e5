# -*- coding: utf-8 -*-
"""
Tests for Pydantic models.
"""
import pytest
from pydantic import ValidationError

from seo_publisher.errors import ContentLossDetected
from seo_publisher.linking import LinkCandidate
from seo_publisher.models import (
    HealthResponse,
    IssueModel,
    LinkCandidateModel,
    NormalizeRequest,
    PrepareRequest,
)


class TestNormalizeRequest:
    """Tests for NormalizeRequest model."""

    def test_defaults(self):
        """Should accept text alone."""
        request = NormalizeRequest(text="Some text.")

        assert request.topic == ""
        assert request.image_urls == []

    def test_text_required(self):
        """Should reject a request without text."""
        with pytest.raises(ValidationError):
            NormalizeRequest()


class TestPrepareRequest:
    """Tests for PrepareRequest model."""

    def test_overrides_default_to_none(self):
        """Should leave configured defaults in charge."""
        request = PrepareRequest(text="Some text.")

        assert request.include_internal_links is None
        assert request.max_external_links is None
        assert request.internal_candidates is None
        assert request.header_image_url is None

    def test_budget_bounds(self):
        """Should reject out-of-range budgets."""
        with pytest.raises(ValidationError):
            PrepareRequest(text="x", max_internal_links=-1)
        with pytest.raises(ValidationError):
            PrepareRequest(text="x", max_external_links=21)
        with pytest.raises(ValidationError):
            PrepareRequest(text="x", max_promotional_mentions=6)

    def test_candidates_parsed(self):
        """Should parse nested link candidates."""
        request = PrepareRequest(
            text="x",
            internal_candidates=[{"anchor_text": "sourdough", "url": "/blog/sourdough/"}],
            business={"anchor_text": "Acme Bakery", "url": "https://acme.test"},
        )

        assert request.internal_candidates[0].url == "/blog/sourdough/"
        assert request.business.anchor_text == "Acme Bakery"


class TestLinkCandidateModel:
    """Tests for LinkCandidateModel."""

    def test_to_candidate(self):
        """Should convert to the pipeline's candidate type."""
        model = LinkCandidateModel(anchor_text="sourdough", url="/blog/sourdough/", title="Sourdough")

        assert model.to_candidate() == LinkCandidate(
            anchor_text="sourdough", url="/blog/sourdough/", title="Sourdough"
        )

    def test_empty_anchor_rejected(self):
        """Should reject an empty anchor text."""
        with pytest.raises(ValidationError):
            LinkCandidateModel(anchor_text="", url="/x")


class TestIssueModel:
    """Tests for IssueModel."""

    def test_from_error(self):
        """Should carry the error code and message."""
        issue = IssueModel.from_error(ContentLossDetected(40, 100, 0.4))

        assert issue.code == "content_loss_detected"
        assert issue.message == "Extracted body keeps 40% of the reference text (40/100 chars)"


class TestHealthResponse:
    """Tests for HealthResponse model."""

    def test_health_response(self):
        """Should create health response."""
        response = HealthResponse(status="healthy", version="1.0.0")

        assert response.status == "healthy"
        assert response.internal_links_configured is False
