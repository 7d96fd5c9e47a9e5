# -*- coding: utf-8 -*-
"""
Pytest configuration and fixtures.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from seo_publisher.api import app
from seo_publisher.config import settings
from seo_publisher.linking import LinkCandidate, LinkCandidateProvider


class AuthenticatedTestClient(TestClient):
    """Test client with API key authentication."""

    def __init__(self, *args, api_key: str = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.api_key = api_key or settings.API_KEY

    def request(self, method, url, **kwargs):
        headers = kwargs.get("headers") or {}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        kwargs["headers"] = headers
        return super().request(method, url, **kwargs)


@pytest.fixture
def client():
    """FastAPI test client with API key (for /documents endpoints)."""
    return AuthenticatedTestClient(app, raise_server_exceptions=False)


@pytest.fixture
def unauthenticated_client():
    """FastAPI test client without authentication."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture(autouse=True)
def no_configured_services(monkeypatch):
    """Keep tests away from real WordPress, Tavily and business settings."""
    monkeypatch.setattr(settings, "WORDPRESS_API_URL", "")
    monkeypatch.setattr(settings, "TAVILY_API_KEY", "")
    monkeypatch.setattr(settings, "BUSINESS_NAME", "")
    monkeypatch.setattr(settings, "API_KEY", "")
    monkeypatch.setattr(settings, "ENABLE_TABLE_OF_CONTENTS", False)
    monkeypatch.setattr(settings, "ENABLE_INLINE_STYLES", True)


@pytest.fixture
def legacy_document() -> str:
    """Labeled generator output with metadata sections around the article."""
    return (
        "1. **Title**\n"
        "My Great Post\n"
        "\n"
        "2. **Meta Description**\n"
        "A short description of the post for search engines.\n"
        "\n"
        "3. **Content**\n"
        "# My Great Post\n"
        "\n"
        "Some intro.\n"
        "\n"
        "## Section\n"
        "Body text."
    )


@pytest.fixture
def normalized_document() -> str:
    """Clean markdown that needs no extraction."""
    return (
        "# How to Bake Bread\n"
        "\n"
        "Intro paragraph about baking bread at home.\n"
        "\n"
        "## Step One\n"
        "\n"
        "Mix the flour and water in a large bowl.\n"
        "\n"
        "## Step Two\n"
        "\n"
        "Knead the dough until smooth and elastic."
    )


@pytest.fixture
def article_html() -> str:
    """Rendered article with room for links and mentions."""
    paragraphs = [
        "<p>Baking bread at home is a rewarding skill that takes practice.</p>",
        "<h2>Choosing Flour</h2>",
        "<p>Sourdough starter gives the loaf its flavour and a crisp crust.</p>",
        "<p>Many bakers rely on a digital scale to weigh the flour precisely.</p>",
        "<h2>Kneading</h2>",
        "<p>A stand mixer helps you knead dough without tiring your arms.</p>",
        "<p>Good kneading builds gluten structure, which traps the gas.</p>",
        "<h2>Baking</h2>",
        "<p>Consider using a Dutch oven to trap steam during the first minutes.</p>",
        "<p>Let the loaf cool completely before slicing it.</p>",
    ]
    return "\n".join(paragraphs)


def make_provider(candidates: list[LinkCandidate]) -> MagicMock:
    """Mock provider returning fixed candidates."""
    provider = MagicMock(spec=LinkCandidateProvider)
    provider.fetch_candidates = AsyncMock(return_value=candidates)
    return provider


@pytest.fixture
def internal_provider() -> MagicMock:
    """Provider of the author's own posts."""
    return make_provider(
        [
            LinkCandidate(anchor_text="Sourdough Starter Guide", url="/blog/sourdough-starter/",
                          title="Sourdough Starter Guide"),
            LinkCandidate(anchor_text="Kneading dough by hand", url="/blog/kneading/",
                          title="Kneading dough by hand"),
        ]
    )


@pytest.fixture
def failing_provider() -> MagicMock:
    """Provider whose lookup blows up."""
    provider = MagicMock(spec=LinkCandidateProvider)
    provider.fetch_candidates = AsyncMock(side_effect=RuntimeError("service down"))
    return provider
