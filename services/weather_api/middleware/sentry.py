"""
Sentry instrumentation for the FastAPI service.
Server-side only. Strips credentials from events before they leave the process.
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.weather_api.config import Settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie"}
SENSITIVE_QUERY_KEYS = ("key=",)


def _filter_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[FILTERED]"


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: strip auth headers, cookies and the provider API key."""
    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            data = breadcrumb.get("data", {})
            if isinstance(data, dict):
                _filter_headers(data.get("headers", {}))
                # httpx breadcrumbs carry the provider URL, query string included
                query = data.get("http.query")
                if isinstance(query, str) and any(k in query for k in SENSITIVE_QUERY_KEYS):
                    data["http.query"] = "[FILTERED]"
    request = event.get("request", {})
    if isinstance(request, dict):
        _filter_headers(request.get("headers", {}))
    return event


def setup_sentry(settings: Settings) -> bool:
    """Initialise Sentry when a DSN is configured. Returns whether it was enabled."""
    if not settings.sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
    return True
