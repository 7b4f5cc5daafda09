"""GraphQL-over-HTTP client for the Sway graph API.

Uses httpx for async requests with a bearer token.  Transport failures,
non-JSON bodies, and GraphQL ``errors`` payloads all surface as
SwayAPIError with any bearer token scrubbed from the message.
"""

from __future__ import annotations

import json
import re
from typing import Any

import httpx
from loguru import logger

_BEARER_RE = re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)


def sanitize_error_text(error_text: str) -> str:
    """Redact bearer tokens from an upstream error message."""
    return _BEARER_RE.sub("Bearer [REDACTED]", error_text)


class SwayAPIError(Exception):
    """Raised when a Sway graph API request fails.

    Args:
        message: Human-readable error description (already sanitized).
        status_code: Optional HTTP status code from the API.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _format_graphql_errors(errors: list[dict[str, Any]]) -> str:
    parts = []
    for err in errors:
        message = str(err.get("message", "unknown error"))
        path = err.get("path")
        parts.append(f"{message} (path: {json.dumps(path)})" if path else message)
    return ", ".join(parts)


class SwayGraphClient:
    """Posts GraphQL queries to the Sway API.

    Args:
        url: GraphQL endpoint URL.
        jwt: Optional bearer token.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        url: str,
        jwt: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Content-Type": "application/json"}
        if jwt:
            headers["Authorization"] = f"Bearer {jwt}"
        self._url = url
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run a query and return its ``data`` object.

        Raises:
            SwayAPIError: On transport errors, non-2xx responses, invalid JSON,
                or a non-empty ``errors`` array.
        """
        try:
            response = await self._client.post(self._url, json={"query": query, "variables": variables or {}})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            body = sanitize_error_text(exc.response.text)
            msg = f"Sway API request failed: {exc.response.status_code} {exc.response.reason_phrase} - {body}"
            logger.error(msg)
            raise SwayAPIError(msg, status_code=exc.response.status_code) from exc
        except httpx.RequestError as exc:
            msg = sanitize_error_text(f"Sway API request failed: {exc}")
            logger.error(msg)
            raise SwayAPIError(msg) from exc
        except json.JSONDecodeError as exc:
            msg = "Sway API returned a non-JSON response"
            logger.error(msg)
            raise SwayAPIError(msg) from exc

        if not isinstance(payload, dict):
            msg = "Sway API response is not a JSON object"
            raise SwayAPIError(msg)

        errors = payload.get("errors")
        if errors:
            logger.error("GraphQL errors: {}", json.dumps(errors))
            raise SwayAPIError(sanitize_error_text(f"GraphQL errors: {_format_graphql_errors(errors)}"))

        data = payload.get("data")
        if not isinstance(data, dict):
            msg = "Sway API response has no data object"
            raise SwayAPIError(msg)
        return data

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
