"""
Sentry error tracking integration.

Only unexpected discovery failures are reported; adapter failures are
expected and stay in the logs.
"""

import os
import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
import logging

from .logging import current_discovery

logger = logging.getLogger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry error tracking. Returns True when Sentry is active.

    Environment variables:
    - SENTRY_DSN: Sentry Data Source Name (required)
    - SENTRY_ENVIRONMENT: Environment name (development, staging, production)
    - SENTRY_RELEASE: Release version (e.g., git commit SHA)
    - SENTRY_TRACES_SAMPLE_RATE: Percentage of transactions to trace (0.0-1.0)
    - SENTRY_ENABLE: Set to "false" to disable Sentry (useful for local dev)
    """
    sentry_dsn = os.getenv("SENTRY_DSN")
    sentry_enable = os.getenv("SENTRY_ENABLE", "true").lower() == "true"

    if not sentry_dsn or not sentry_enable:
        logger.info("Sentry is disabled (SENTRY_DSN not set or SENTRY_ENABLE=false)")
        return False

    environment = os.getenv("SENTRY_ENVIRONMENT") or os.getenv("ENVIRONMENT", "development")
    release = os.getenv("SENTRY_RELEASE") or "unknown"
    is_production = environment == "production"
    traces_sample_rate = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.2" if is_production else "0.0"))

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=environment,
        release=f"poi-discovery-engine@{release}",
        integrations=[
            AsyncioIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.ERROR,
            ),
        ],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
        before_send=before_send_hook,
    )

    logger.info(
        "Sentry initialized",
        extra={
            "environment": environment,
            "release": release,
            "traces_sample_rate": traces_sample_rate,
        },
    )
    return True


def before_send_hook(event, hint):
    """Tag events with the discovery that was running when they fired."""
    for key, value in _discovery_tags().items():
        event.setdefault("tags", {})[key] = value
        event.setdefault("extra", {})[key] = value

    return event


def capture_exception(exc: BaseException, **kwargs) -> None:
    """
    Capture an exception and send to Sentry with additional context.

    A no-op when Sentry was never initialized.

    Args:
        exc: Exception to capture
        **kwargs: Additional context (tags, extra data)
    """
    with sentry_sdk.new_scope() as scope:
        for key, value in _discovery_tags().items():
            scope.set_tag(key, value)

        for key, value in kwargs.get("tags", {}).items():
            scope.set_tag(key, value)

        for key, value in kwargs.get("extra", {}).items():
            scope.set_extra(key, value)

        sentry_sdk.capture_exception(exc)


def _discovery_tags() -> dict:
    context = current_discovery()
    if context is None:
        return {}
    tags = {"correlation_id": context.correlation_id}
    if context.epoch is not None:
        tags["epoch"] = str(context.epoch)
    if context.origin_id:
        tags["origin_id"] = context.origin_id
    if context.category:
        tags["category"] = context.category
    return tags
