# -*- coding: utf-8 -*-
"""
Link candidate providers backed by external services.

- WordPressPostsProvider: the author's published posts (WordPress REST API)
- TavilySourceProvider: authoritative sources found by Tavily search
- BusinessProfileProvider: the configured business, for promotional mentions
- StaticCandidateProvider: a fixed list supplied by the caller

HTTP calls use httpx with tenacity retries on transient errors. Any
failure surfaces as InjectorUnavailable; the injector turns that into
zero insertions.
"""
import html
import logging
import re
from collections import Counter

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import settings
from .errors import InjectorUnavailable
from .linking import LinkCandidate

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 15.0

# Rank threshold below which a post is not considered related
MIN_POST_SIMILARITY = 0.1
BRAND_MATCH_BOOST = 1.5

TAVILY_QUERY_TEMPLATE = "{topic} guide official documentation"
TAVILY_TOPICS_TO_SEARCH = 3


class RetryableError(Exception):
    """Transient HTTP failure (network error, 429 or 5xx)."""


async def fetch_json(
        method: str,
        url: str,
        transport: httpx.AsyncBaseTransport | None = None,
        **kwargs,
):
    """
    Perform an HTTP request and decode the JSON body, retrying transient errors.

    Raises:
        InjectorUnavailable: On any failure once retries are exhausted
    """

    @retry(
        retry=retry_if_exception_type(RetryableError),
        stop=stop_after_attempt(settings.RETRY_MAX_ATTEMPTS),
        wait=wait_exponential(
            min=settings.RETRY_MIN_WAIT, max=settings.RETRY_MAX_WAIT
        ),
        reraise=True,
    )
    async def _inner():
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, transport=transport) as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise RetryableError(f"{type(e).__name__}: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableError(f"HTTP {response.status_code}")
        response.raise_for_status()
        return response.json()

    try:
        return await _inner()
    except (RetryableError, httpx.HTTPError, ValueError) as e:
        raise InjectorUnavailable(f"{method} {url} failed: {e}") from e


# =============================================================================
# Text helpers
# =============================================================================


def _strip_punctuation(word: str) -> str:
    return re.sub(r"['\".,!?;:]", "", word)


def title_keywords(title: str) -> list[str]:
    """Lowercased words longer than 4 characters."""
    words = (_strip_punctuation(w).lower() for w in title.split())
    return [w for w in words if len(w) > 4]


def brand_words(title: str, min_length: int = 3) -> list[str]:
    """Lowercased capitalized words, likely product or brand names."""
    words = (_strip_punctuation(w) for w in title.split())
    return [w.lower() for w in words if len(w) >= min_length and w[:1].isupper()]


def title_similarity(title: str, other: str) -> float:
    """
    Keyword overlap between two titles, boosted when brand names match.

    Returns:
        Similarity in [0, 1]
    """
    own_brands = brand_words(title, min_length=5)
    keywords = list(dict.fromkeys(title_keywords(title) + own_brands))
    other_keywords = title_keywords(other)
    other_brands = brand_words(other)
    if not keywords:
        return 0.0

    shared = [kw for kw in keywords if kw in other_keywords or kw in other_brands]
    similarity = len(shared) / max(len(keywords), len(other_keywords))
    if any(brand in other_brands for brand in own_brands):
        similarity = min(similarity * BRAND_MATCH_BOOST, 1.0)
    return similarity


def extract_key_phrases(content: str, title: str = "", limit: int = 10) -> list[str]:
    """
    Two and three word phrases that recur in the text.

    Words must be longer than 3 characters; a phrase must appear at least
    twice. Most frequent first.
    """
    words = [re.sub(r"[^\w]", "", w) for w in f"{title} {content}".lower().split()]
    phrases: list[str] = []
    for size in (2, 3):
        for i in range(len(words) - size + 1):
            window = words[i:i + size]
            if all(len(w) > 3 for w in window):
                phrases.append(" ".join(window))

    counts = Counter(phrases)
    ranked = sorted(
        (p for p, c in counts.items() if c >= 2),
        key=lambda p: -counts[p],
    )
    return ranked[:limit]


# =============================================================================
# Providers
# =============================================================================


class WordPressPostsProvider:
    """Related posts from the author's WordPress site."""

    def __init__(
            self,
            api_url: str | None = None,
            posts_limit: int | None = None,
            path_prefix: str | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            api_url: Site root. Defaults to settings.WORDPRESS_API_URL.
            posts_limit: Posts fetched per lookup. Defaults to settings.WORDPRESS_POSTS_LIMIT.
            path_prefix: Path of post URLs. Defaults to settings.INTERNAL_LINK_PATH_PREFIX.
            transport: Optional httpx transport (tests)
        """
        self.api_url = (api_url if api_url is not None else settings.WORDPRESS_API_URL).rstrip("/")
        self.posts_limit = posts_limit or settings.WORDPRESS_POSTS_LIMIT
        self.path_prefix = path_prefix if path_prefix is not None else settings.INTERNAL_LINK_PATH_PREFIX
        self._transport = transport

    async def fetch_posts(self) -> list[dict]:
        if not self.api_url:
            raise InjectorUnavailable("WordPress API URL not configured")

        data = await fetch_json(
            "GET",
            f"{self.api_url}/wp-json/wp/v2/posts",
            transport=self._transport,
            params={"per_page": self.posts_limit, "_fields": "id,title,slug,link"},
        )
        posts = []
        for item in data if isinstance(data, list) else []:
            rendered = item.get("title", {})
            if isinstance(rendered, dict):
                rendered = rendered.get("rendered", "")
            title = html.unescape(re.sub(r"<[^>]+>", "", rendered or "")).strip()
            if title and item.get("slug"):
                posts.append({"title": title, "slug": item["slug"], "link": item.get("link", "")})
        logger.debug(f"Fetched {len(posts)} WordPress posts")
        return posts

    async def fetch_candidates(self, title: str, limit: int, context: str = "") -> list[LinkCandidate]:
        posts = await self.fetch_posts()
        scored = [(title_similarity(title, post["title"]), post) for post in posts]
        related = sorted(
            (item for item in scored if item[0] > MIN_POST_SIMILARITY),
            key=lambda item: -item[0],
        )
        return [
            LinkCandidate(
                anchor_text=post["title"],
                url=f"{self.path_prefix}{post['slug']}/",
                title=post["title"],
            )
            for _score, post in related[:limit]
        ]


class TavilySourceProvider:
    """Authoritative sources for the document's recurring topics."""

    def __init__(
            self,
            api_key: str | None = None,
            api_url: str | None = None,
            include_domains: list[str] | None = None,
            transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.TAVILY_API_KEY
        self.api_url = api_url or settings.TAVILY_API_URL
        self.include_domains = (
            include_domains if include_domains is not None else settings.TAVILY_INCLUDE_DOMAINS
        )
        self._transport = transport

    async def search(self, topic: str) -> dict | None:
        """First search result for a topic, or None."""
        data = await fetch_json(
            "POST",
            self.api_url,
            transport=self._transport,
            json={
                "api_key": self.api_key,
                "query": TAVILY_QUERY_TEMPLATE.format(topic=topic),
                "search_depth": "basic",
                "max_results": 2,
                "include_domains": self.include_domains,
            },
        )
        results = data.get("results", []) if isinstance(data, dict) else []
        return results[0] if results else None

    async def fetch_candidates(self, title: str, limit: int, context: str = "") -> list[LinkCandidate]:
        if not self.api_key:
            raise InjectorUnavailable("Tavily API key not configured")

        topics = extract_key_phrases(context, title)
        if not topics:
            logger.debug("No recurring topics to search sources for")
            return []

        candidates: list[LinkCandidate] = []
        for topic in topics[:TAVILY_TOPICS_TO_SEARCH]:
            if len(candidates) >= limit:
                break
            try:
                result = await self.search(topic)
            except InjectorUnavailable as e:
                # One failed topic does not sink the others
                logger.warning(f"Source search failed for {topic!r}: {e}")
                continue
            if result and result.get("url"):
                candidates.append(
                    LinkCandidate(
                        anchor_text=topic,
                        url=result["url"],
                        title=result.get("title", ""),
                    )
                )
        return candidates


class BusinessProfileProvider:
    """The author's business, as configured."""

    def __init__(self, name: str | None = None, url: str | None = None, description: str | None = None):
        self.name = name if name is not None else settings.BUSINESS_NAME
        self.url = url if url is not None else settings.BUSINESS_URL
        self.description = description if description is not None else settings.BUSINESS_DESCRIPTION

    async def fetch_candidates(self, title: str, limit: int, context: str = "") -> list[LinkCandidate]:
        if not self.name.strip():
            raise InjectorUnavailable("Business profile not configured")
        return [LinkCandidate(anchor_text=self.name.strip(), url=self.url.strip(), description=self.description)]


class StaticCandidateProvider:
    """
    Candidates supplied up front by the caller.

    All of them are returned whatever the limit: the injector's budget
    caps insertions, and later candidates stand in for ones whose anchor
    text does not occur in the document.
    """

    def __init__(self, candidates: list[LinkCandidate]):
        self.candidates = list(candidates)

    async def fetch_candidates(self, title: str, limit: int, context: str = "") -> list[LinkCandidate]:
        return list(self.candidates)
