# -*- coding: utf-8 -*-
"""
SEO Publisher - Normalizes generated text into publishable HTML documents.
"""
__version__ = "1.0.0"

from .pipeline import (  # noqa: E402
    ContentPipeline,
    LinkOptions,
    PipelineResult,
    PublishDocument,
    content_pipeline,
)

__all__ = [
    "ContentPipeline",
    "LinkOptions",
    "PipelineResult",
    "PublishDocument",
    "content_pipeline",
    "__version__",
]
