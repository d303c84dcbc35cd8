"""Upstream fetch of the raw counter payload.

Kept apart from the filtering modules: nothing in the engine imports this.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from core.exceptions import FetchError
from core.settings import DashboardSettings


logger = logging.getLogger(__name__)


def fetch_payload(settings: DashboardSettings, session: Optional[requests.Session] = None) -> Any:
    url = settings.request_url
    http = session or requests
    try:
        resp = http.get(url, timeout=settings.request_timeout, headers={"accept": "application/json"})
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch data: {exc}", url=url) from exc

    if not resp.ok:
        raise FetchError(f"Failed to fetch data: HTTP {resp.status_code}", status_code=resp.status_code, url=url)

    try:
        payload = resp.json()
    except ValueError as exc:
        raise FetchError("Upstream returned invalid JSON", status_code=resp.status_code, url=url) from exc

    logger.debug("Fetched payload from %s (%s)", url, type(payload).__name__)
    return payload
