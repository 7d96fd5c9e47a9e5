# -*- coding: utf-8 -*-
"""
Publishing pipeline configuration using Pydantic BaseSettings.
"""
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central service configuration loaded from environment variables.
    Pydantic's BaseSettings provides automatic validation, type casting,
    and reading from .env files for a more robust configuration.
    """

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8002

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # API Documentation (disable in production for security)
    DOCS_ENABLED: bool = True

    # API Key for programmatic access (pipeline endpoints). Empty = open.
    API_KEY: str = ""

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_ALLOW_CREDENTIALS: bool = False

    # Request tracking
    REQUEST_ID_HEADER: str = "X-Request-ID"

    # Compression
    GZIP_MIN_SIZE: int = 1000

    # ==========================================================================
    # Classifier
    # ==========================================================================

    # Above this length an unmarked document counts as already normalized
    SUBSTANTIAL_CONTENT_THRESHOLD: int = 1000

    # ==========================================================================
    # Extraction (title + body)
    # ==========================================================================

    MIN_TITLE_LENGTH: int = 5
    # Number of leading body lines scanned for a duplicated title
    TITLE_SCAN_LINES: int = 10
    DUPLICATE_TITLE_MIN_LENGTH: int = 10
    DUPLICATE_TITLE_MAX_LENGTH: int = 150
    # WARNING: also drops short title-like opening lines that are not exact
    # duplicates of the title. Can remove a legitimate short first sentence.
    STRIP_TITLE_LIKE_LINES: bool = True
    # Extracted body must keep at least this share of the reference text
    CONTENT_FLOOR_RATIO: float = 0.8

    # ==========================================================================
    # Boilerplate stripping
    # ==========================================================================

    # Only the last TAIL_REGION_RATIO of the body may be stripped
    TAIL_REGION_RATIO: float = 0.2
    # A stop keyword followed by more than this is real content, not metadata
    SUBSTANTIAL_TAIL_CHARS: int = 200
    PROMO_WINDOW_CHARS: int = 500
    PROMO_MIN_SENTENCES: int = 2

    # ==========================================================================
    # Output
    # ==========================================================================

    EXCERPT_LENGTH: int = 160
    # Inline styles on p/h2-h6/table so output survives any theme stylesheet
    ENABLE_INLINE_STYLES: bool = True
    ENABLE_TABLE_OF_CONTENTS: bool = False
    TOC_MIN_HEADINGS: int = 3

    # ==========================================================================
    # Link & mention injection
    # ==========================================================================

    ENABLE_INTERNAL_LINKS: bool = True
    ENABLE_EXTERNAL_LINKS: bool = True
    ENABLE_PROMOTIONAL_MENTIONS: bool = True
    MAX_INTERNAL_LINKS: int = 3
    MAX_EXTERNAL_LINKS: int = 2
    MAX_PROMOTIONAL_MENTIONS: int = 1
    # Bounded wait (seconds) for any candidate lookup
    LINK_LOOKUP_TIMEOUT: float = 10.0
    INTERNAL_LINK_PATH_PREFIX: str = "/blog/"

    # WordPress REST API used as the internal link source
    WORDPRESS_API_URL: str = ""
    WORDPRESS_POSTS_LIMIT: int = 50

    # Tavily search used as the external link source
    TAVILY_API_KEY: str = ""
    TAVILY_API_URL: str = "https://api.tavily.com/search"
    TAVILY_INCLUDE_DOMAINS: List[str] = [
        "wikipedia.org",
        "github.com",
        ".edu",
        ".gov",
        "moz.com",
        "searchengineland.com",
        "hubspot.com",
        "semrush.com",
        "ahrefs.com",
        "contentmarketinginstitute.com",
        "backlinko.com",
    ]

    # Business profile used for promotional mentions
    BUSINESS_NAME: str = ""
    BUSINESS_URL: str = ""
    BUSINESS_DESCRIPTION: str = ""

    # Retry (collaborator HTTP calls)
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global configuration instance
settings = Settings()
