# -*- coding: utf-8 -*-
"""
Request and document tracking.

Two context variables travel with every log record:
- request_id: set per HTTP request by RequestIDMiddleware
- document_id: set per pipeline invocation by document_scope()

Documents processed concurrently in the same event loop each see their own
document_id because ContextVar values are copied into every asyncio task.
"""
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .config import settings

# Context variable for request ID (accessible across async calls)
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
document_id_ctx: ContextVar[str | None] = ContextVar("document_id", default=None)


def get_request_id() -> str | None:
    """Get current request ID from context."""
    return request_id_ctx.get()


def get_document_id() -> str | None:
    """Get the ID of the document currently going through the pipeline."""
    return document_id_ctx.get()


@contextmanager
def document_scope(document_id: str | None = None) -> Iterator[str]:
    """Bind a document ID to the current context for the duration of a run."""
    doc_id = document_id or uuid.uuid4().hex[:12]
    token = document_id_ctx.set(doc_id)
    try:
        yield doc_id
    finally:
        document_id_ctx.reset(token)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID and the processing time to each response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(settings.REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[settings.REQUEST_ID_HEADER] = request_id
            response.headers["X-Process-Time-Ms"] = str(
                int((time.perf_counter() - started) * 1000)
            )
            return response
        finally:
            request_id_ctx.reset(token)
