"""Minimal JSON HTTP client."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

import requests

log = logging.getLogger(__name__)


def make_api_call(
    method: str,
    url: str,
    headers: Mapping[str, str] | None = None,
    body: Any = None,
) -> tuple[int, bytes]:
    """Send ``body`` as JSON and return the status code and raw response body."""
    payload = json.dumps(body).encode()
    try:
        response = requests.request(method, url, data=payload, headers=dict(headers or {}))
    except requests.RequestException:
        log.exception("error making API call to %s", url)
        raise
    return response.status_code, response.content