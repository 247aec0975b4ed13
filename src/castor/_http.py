"""Small HTTP-related constants shared across Castor.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

CONTENT_TYPE_JSON = "application/json"

HEADER_CONTENT_TYPE = "content-type"
HEADER_API_KEY = "x-api-key"
HEADER_AUTHORIZATION = "Authorization"
HEADER_VERSION = "anthropic-version"

COMPLETE_PATH = "/complete"
MESSAGES_PATH = "/messages"
