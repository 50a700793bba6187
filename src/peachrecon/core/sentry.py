"""Sentry error tracking for server-side failures."""

import os
import re

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.utils import BadDsn

from peachrecon.core.logging import get_logger

logger = get_logger(__name__)

_sentry_initialized = False

# Keys whose values must never leave the service in an error report
SENSITIVE_KEYS = ("authorization", "token", "secret", "password", "sql")

# Breadcrumb category used by the SQLAlchemy integration for executed statements
QUERY_CATEGORY = "query"

_SQL_STATEMENT = re.compile(r"^\s*(select|insert|update|delete|with)\b", re.IGNORECASE)


def init_sentry() -> None:
    """
    Initialize Sentry once, only when SENTRY_DSN holds a real DSN.

    No DSN (local development, tests) means no error tracking. Performance
    tracing and PII are off; structlog stays the only log pipeline.
    """
    global _sentry_initialized

    if _sentry_initialized:
        return

    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn.startswith(("https://", "http://")):
        logger.info("sentry.disabled", reason="missing or placeholder DSN")
        return

    environment = os.getenv("ENVIRONMENT", "development")
    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            traces_sample_rate=0.0,
            send_default_pii=False,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                LoggingIntegration(level=None, event_level=None),
            ],
            before_send=scrub_event,
        )
    except BadDsn as exc:
        logger.warning("sentry.init_failed", error=str(exc))
        return

    _sentry_initialized = True
    logger.info("sentry.initialized", environment=environment)


def scrub_event(event: dict, hint: dict) -> dict:
    """Drop extra entries and breadcrumbs that could carry credentials or SQL."""
    extra = event.get("extra")
    if isinstance(extra, dict):
        event["extra"] = {
            key: value
            for key, value in extra.items()
            if not any(marker in str(key).lower() for marker in SENSITIVE_KEYS)
        }

    breadcrumbs = event.get("breadcrumbs")
    if isinstance(breadcrumbs, dict):
        breadcrumbs = breadcrumbs.get("values")
    if isinstance(breadcrumbs, list):
        kept = [crumb for crumb in breadcrumbs if not _carries_sql(crumb)]
        if isinstance(event.get("breadcrumbs"), dict):
            event["breadcrumbs"]["values"] = kept
        else:
            event["breadcrumbs"] = kept

    return event


def _carries_sql(crumb) -> bool:
    if isinstance(crumb, dict):
        if crumb.get("category") == QUERY_CATEGORY:
            return True
        message = str(crumb.get("message") or "")
    else:
        message = str(crumb)
    return "sql" in message.lower() or bool(_SQL_STATEMENT.match(message))


def report_exception(exc: BaseException, **context) -> None:
    """Send a handled server-side failure to Sentry (no-op when disabled)."""
    with sentry_sdk.new_scope() as scope:
        for key, value in context.items():
            scope.set_tag(key, value)
        sentry_sdk.capture_exception(exc)
