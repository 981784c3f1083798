"""Response error extraction for load test observability.

Every API error has the shape ``{"error": {"field": ["msg", ...]}, "code": "ErrorName"}``;
request validation failures use the same shape with code ``ValidationError``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response


def extract_error_detail(response: Response) -> str:
    """Extract a human-readable error message from an API error response.

    Returns a compact string suitable for Locust failure messages and log lines.
    """
    try:
        body = response.json()
    except ValueError:
        text = getattr(response, "text", "") or ""
        return text[:300] or "(empty response body)"

    if isinstance(body, dict) and "error" in body:
        error = body["error"]
        if isinstance(error, dict):
            detail = " | ".join(
                f"{field}: {', '.join(map(str, messages)) if isinstance(messages, list) else messages}"
                for field, messages in error.items()
            )
        else:
            detail = str(error)
        code = body.get("code")
        return f"{code}: {detail}" if code else detail

    return str(body)[:300]
