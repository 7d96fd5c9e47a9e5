# -*- coding: utf-8 -*-
"""
Tests for request/document tracking and the log record context.
"""
import asyncio
import logging

import pytest

from seo_publisher.logging_config import ContextFilter
from seo_publisher.middleware import document_scope, get_document_id, request_id_ctx


def make_record() -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, "message", None, None)


class TestDocumentScope:
    """Tests for document_scope()."""

    def test_binds_and_resets(self):
        """Should bind the document ID only inside the scope."""
        with document_scope("doc-1") as doc_id:
            assert doc_id == "doc-1"
            assert get_document_id() == "doc-1"

        assert get_document_id() is None

    def test_generates_id(self):
        """Should generate an ID when none is given."""
        with document_scope() as doc_id:
            assert len(doc_id) == 12

    @pytest.mark.asyncio
    async def test_concurrent_documents_isolated(self):
        """Should keep each task's document ID separate."""

        async def run(doc_id: str) -> str:
            with document_scope(doc_id):
                await asyncio.sleep(0)
                return get_document_id()

        results = await asyncio.gather(run("a"), run("b"), run("c"))

        assert results == ["a", "b", "c"]


class TestContextFilter:
    """Tests for ContextFilter."""

    def test_defaults_outside_requests(self):
        """Should fill missing IDs with a dash."""
        record = make_record()

        assert ContextFilter().filter(record)
        assert record.request_id == "-"
        assert record.document_id == "-"

    def test_current_ids(self):
        """Should copy the current request and document IDs."""
        token = request_id_ctx.set("req-1")
        try:
            with document_scope("doc-1"):
                record = make_record()
                ContextFilter().filter(record)
        finally:
            request_id_ctx.reset(token)

        assert record.request_id == "req-1"
        assert record.document_id == "doc-1"
