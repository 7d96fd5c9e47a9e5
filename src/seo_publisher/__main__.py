# -*- coding: utf-8 -*-
"""
Entry point to run the service via python -m seo_publisher.
"""
import uvicorn

from seo_publisher.config import settings


def main():
    """Start the Uvicorn server."""
    uvicorn.run(
        "seo_publisher.api:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
