"""Shared HTTP response helpers for trip service interactions."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Tuple

import requests

from ..errors import TripNotFoundError, TripStoreError

LOGGER = logging.getLogger(__name__)

__all__ = [
    "classify_response_status",
    "extract_error",
]


def classify_response_status(
    response: requests.Response,
    context: str,
    *,
    attempt: int,
    backoff: float,
    can_retry: bool,
) -> Tuple[str, Optional[Exception]]:
    """Return action for a response status: ok, retry, or raise."""

    status = response.status_code
    detail = extract_error(response)

    def with_detail(message: str) -> str:
        return f"{message} | {detail}" if detail else message

    if status == 429 and can_retry:
        LOGGER.warning(
            "%s rate limited (429) attempt=%s; sleeping %.1fs",
            context,
            attempt,
            backoff,
        )
        return "retry", None

    if status == 404:
        message = with_detail(f"{context} not found")
        LOGGER.info(message)
        return "raise", TripNotFoundError(message)

    if 500 <= status < 600 and can_retry:
        message = with_detail(f"{context} server error {status}")
        LOGGER.warning("%s; retrying in %.1fs", message, backoff)
        return "retry", None

    if 400 <= status < 600:
        message = with_detail(f"{context} request failed (status {status})")
        LOGGER.error(message)
        return "raise", TripStoreError(message)

    return "ok", None


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return a compact error string from the service's ``detail`` payload."""

    if resp is None:
        return None
    data = _safe_json(resp)
    if data is None:
        return _extract_error_text(resp)
    if not isinstance(data, dict):
        return None
    parts = _collect_error_parts(data.get("detail", data.get("message")))
    return " | ".join(parts) if parts else None


def _safe_json(resp: requests.Response) -> Optional[Any]:
    """Safely parse JSON; return None if parsing fails."""

    try:
        return resp.json()
    except ValueError as exc:
        LOGGER.debug(
            "Failed to decode JSON from %s: %s", getattr(resp, "url", "?"), exc
        )
        return None


def _extract_error_text(resp: requests.Response) -> Optional[str]:
    """Best-effort plain-text extraction when JSON parsing fails."""

    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed


def _collect_error_parts(detail: Any) -> List[str]:
    """Flatten a string or list-of-validation-errors ``detail`` field."""

    if detail is None:
        return []
    if isinstance(detail, str):
        return [detail] if detail else []
    parts: List[str] = []
    if isinstance(detail, list):
        for err in detail:
            if not isinstance(err, dict):
                parts.append(str(err))
                continue
            loc = err.get("loc")
            msg = err.get("msg")
            where = ".".join(str(p) for p in loc) if isinstance(loc, list) else None
            if where and msg:
                parts.append(f"{where}:{msg}")
            elif msg:
                parts.append(str(msg))
    return parts
