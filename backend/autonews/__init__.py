"""AutoNews - turns news topics into narrated summary videos.

This module provides startup validation so missing service credentials are
reported before the first job runs. Call validate_dependencies() during
application startup.
"""

import logging

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


def validate_dependencies(settings) -> list[str]:
    """Check that external service credentials are configured.

    Missing credentials do not stop startup: jobs that reach the affected
    stage fail with UpstreamUnavailable and the status endpoint reports the
    service as down. Each gap is logged once here so operators see it early.

    Returns:
        Human-readable descriptions of every missing credential.
    """
    missing = []
    if not settings.news_source.api_key:
        missing.append(
            "news_source.api_key not set (AUTONEWS_NEWS_SOURCE__API_KEY); "
            "article fetching will fail"
        )
    if not settings.summarizer.api_key:
        missing.append(
            "summarizer.api_key not set (AUTONEWS_SUMMARIZER__API_KEY); "
            "summarization will fail"
        )
    if not (settings.publisher.client_id and settings.publisher.client_secret):
        missing.append("publisher OAuth client not configured; publishing disabled")
    elif not settings.publisher.token_file.exists():
        missing.append(
            f"publisher token file {settings.publisher.token_file} not found; "
            "publishing will fail until authorized"
        )

    for message in missing:
        logger.warning(message)
    if not missing:
        logger.info("All service credentials configured")
    return missing
