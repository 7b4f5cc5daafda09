"""Sway graph API library — GraphQL client and location helpers.

Public API:
    - SwayGraphClient: Async GraphQL client
    - SwayAPIError: Transport / GraphQL error type
    - sanitize_error_text: Bearer-token redaction
    - extract_state: Location string -> state code
"""

from sway_metrics.lib.sway_graph.client import SwayAPIError, SwayGraphClient, sanitize_error_text
from sway_metrics.lib.sway_graph.locations import STATE_ABBREVIATIONS, extract_state

__all__ = [
    "STATE_ABBREVIATIONS",
    "SwayAPIError",
    "SwayGraphClient",
    "extract_state",
    "sanitize_error_text",
]
