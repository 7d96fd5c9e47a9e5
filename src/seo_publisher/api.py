# -*- coding: utf-8 -*-
"""
FastAPI API for the document publishing pipeline.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from . import __version__
from .auth import RequireApiKey
from .config import settings
from .errors import RenderFailure
from .logging_config import setup_logging
from .middleware import RequestIDMiddleware
from .models import (
    HealthResponse,
    IssueModel,
    NormalizeRequest,
    NormalizeResponse,
    PrepareRequest,
    PrepareResponse,
)
from .pipeline import LinkOptions, content_pipeline

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)


# noinspection PyUnusedLocal
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifecycle management."""
    logger.info("Starting SEO Publisher service", extra={"version": __version__})
    yield
    logger.info("Shutting down SEO Publisher service")


app = FastAPI(
    title="SEO Publisher Service",
    description="Turns generated text into a publishable title, excerpt and HTML body",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.DOCS_ENABLED else None,
    redoc_url="/redoc" if settings.DOCS_ENABLED else None,
    openapi_url="/openapi.json" if settings.DOCS_ENABLED else None,
)

# Middleware stack (order matters: last added = first executed)
app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MIN_SIZE)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)


def build_link_options(request: PrepareRequest) -> LinkOptions:
    """Request overrides on top of the configured link defaults."""
    options = LinkOptions()
    if request.include_internal_links is not None:
        options.include_internal = request.include_internal_links
    if request.include_external_links is not None:
        options.include_external = request.include_external_links
    if request.include_promotional_mentions is not None:
        options.include_promotional = request.include_promotional_mentions
    if request.max_internal_links is not None:
        options.max_internal = request.max_internal_links
    if request.max_external_links is not None:
        options.max_external = request.max_external_links
    if request.max_promotional_mentions is not None:
        options.max_promotional = request.max_promotional_mentions

    if request.internal_candidates is not None:
        options.internal_candidates = [c.to_candidate() for c in request.internal_candidates]
    if request.external_candidates is not None:
        options.external_candidates = [c.to_candidate() for c in request.external_candidates]
    if request.business is not None:
        options.business = request.business.to_candidate()
    return options


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Service health endpoint."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        internal_links_configured=bool(settings.WORDPRESS_API_URL),
        external_links_configured=bool(settings.TAVILY_API_KEY),
        business_configured=bool(settings.BUSINESS_NAME),
    )


@app.post("/documents/normalize", response_model=NormalizeResponse)
async def normalize_document(request: NormalizeRequest, _auth: RequireApiKey) -> NormalizeResponse:
    """
    Normalize generated text into a title and clean markdown.

    - **text**: Raw generated text (labeled output or markdown)
    - **topic**: Title fallback when none can be extracted
    - **image_urls**: Hosted image URLs to place in the document
    """
    logger.info("Normalize request received", extra={"text_length": len(request.text)})

    result = content_pipeline.normalize(request.text, request.topic, request.image_urls)

    return NormalizeResponse(
        title=result.title or "",
        markdown=result.markdown,
        classification=result.classification.to_dict() if result.classification else {},
        issues=[IssueModel.from_error(issue) for issue in result.issues],
        steps_applied=result.steps_applied,
    )


@app.post("/documents/prepare", response_model=PrepareResponse)
async def prepare_document(request: PrepareRequest, _auth: RequireApiKey) -> PrepareResponse:
    """
    Run the full pipeline and return the publishable document.

    - **text**: Raw generated text
    - **include_*_links**: Override the configured link switches
    - **max_***: Override the configured link budgets
    - **internal_candidates / external_candidates / business**: Link targets
      to use instead of the configured services
    """
    logger.info("Prepare request received", extra={"text_length": len(request.text)})

    try:
        result = await content_pipeline.process(
            request.text,
            topic=request.topic,
            image_urls=request.image_urls,
            link_options=build_link_options(request),
            header_image_url=request.header_image_url,
        )
    except RenderFailure as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    logger.info(
        "Prepare completed",
        extra={"html_length": len(result.html), "links": result.links},
    )

    return PrepareResponse(
        title=result.title or "",
        excerpt=result.excerpt,
        html=result.html,
        markdown=result.markdown,
        links=result.links,
        issues=[IssueModel.from_error(issue) for issue in result.issues],
        steps_applied=result.steps_applied,
        structure=result.metadata.get("structure", {}),
    )
