# -*- coding: utf-8 -*-
"""
Tests for FastAPI endpoints.
"""
from unittest.mock import patch

from seo_publisher.config import settings
from seo_publisher.errors import RenderFailure


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_health_returns_status(self, client):
        """Should return health status."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "version" in data

    def test_health_reports_services(self, client, monkeypatch):
        """Should report which link services are configured."""
        monkeypatch.setattr(settings, "WORDPRESS_API_URL", "https://wp.test")

        data = client.get("/health").json()

        assert data["internal_links_configured"] is True
        assert data["external_links_configured"] is False


class TestNormalizeEndpoint:
    """Tests for /documents/normalize endpoint."""

    def test_requires_text(self, client):
        """Should reject a request without text."""
        response = client.post("/documents/normalize", json={})

        assert response.status_code == 422

    def test_legacy_document(self, client, legacy_document):
        """Should return the extracted title and markdown."""
        response = client.post("/documents/normalize", json={"text": legacy_document})

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "My Great Post"
        assert data["markdown"].startswith("# My Great Post\n\nSome intro.")
        assert data["classification"]["is_legacy"] is True
        assert data["issues"] == []

    def test_issues_reported(self, client):
        """Should list non-fatal issues with their codes."""
        response = client.post(
            "/documents/normalize",
            json={"text": "## Section\n\nText.", "topic": "bread basics"},
        )

        data = response.json()
        assert data["title"] == "bread basics"
        assert data["issues"][0]["code"] == "extraction_ambiguous"


class TestPrepareEndpoint:
    """Tests for /documents/prepare endpoint."""

    def test_prepare_document(self, client, normalized_document):
        """Should return the publishable document."""
        response = client.post(
            "/documents/prepare",
            json={
                "text": normalized_document,
                "internal_candidates": [{"anchor_text": "flour and water", "url": "/blog/hydration/"}],
                "include_external_links": False,
                "include_promotional_mentions": False,
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "How to Bake Bread"
        assert data["excerpt"].endswith("...")
        assert 'href="/blog/hydration/"' in data["html"]
        assert data["links"]["internal"] == 1
        assert data["structure"]["h2_count"] == 2

    def test_budget_override(self, client, normalized_document):
        """Should honor a zero budget from the request."""
        response = client.post(
            "/documents/prepare",
            json={
                "text": normalized_document,
                "internal_candidates": [{"anchor_text": "flour and water", "url": "/blog/hydration/"}],
                "max_internal_links": 0,
            },
        )

        assert response.json()["links"]["internal"] == 0

    def test_render_failure_is_422(self, client, normalized_document):
        """Should map a render failure to 422."""
        with patch("seo_publisher.pipeline.render_document", side_effect=RenderFailure("broken")):
            response = client.post("/documents/prepare", json={"text": normalized_document})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "render_failure"


class TestApiKey:
    """Tests for API key protection."""

    def test_open_without_configured_key(self, unauthenticated_client):
        """Should allow requests when no key is configured."""
        response = unauthenticated_client.post("/documents/normalize", json={"text": "Some text."})

        assert response.status_code == 200

    def test_missing_key_rejected(self, unauthenticated_client, monkeypatch):
        """Should reject requests without the configured key."""
        monkeypatch.setattr(settings, "API_KEY", "secret")

        response = unauthenticated_client.post("/documents/normalize", json={"text": "Some text."})

        assert response.status_code == 401

    def test_valid_key_accepted(self, unauthenticated_client, monkeypatch):
        """Should accept the configured key."""
        monkeypatch.setattr(settings, "API_KEY", "secret")

        response = unauthenticated_client.post(
            "/documents/normalize",
            json={"text": "Some text."},
            headers={"X-API-Key": "secret"},
        )

        assert response.status_code == 200


class TestMiddleware:
    """Tests for middleware behavior."""

    def test_request_id_header(self, client):
        """Should add a request ID header to responses."""
        response = client.get("/health")

        assert "x-request-id" in response.headers
        assert "x-process-time-ms" in response.headers

    def test_request_id_passthrough(self, client):
        """Should keep the caller's request ID."""
        response = client.get("/health", headers={"X-Request-ID": "custom-id-123"})

        assert response.headers["x-request-id"] == "custom-id-123"

    def test_cors_headers(self, client):
        """Should answer CORS preflight requests."""
        response = client.options(
            "/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )

        assert response.status_code == 200
        assert "access-control-allow-origin" in response.headers
