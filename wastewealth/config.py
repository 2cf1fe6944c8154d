# wastewealth/config.py
"""
Configuration parameters for the WasteWealth pickup request store.

This module centralizes all tunable parameters:
- Where and under which keys the store persists its state
- Seed values for the worker statistics that are never recomputed
- Lifecycle strictness for status updates
- Remote API connection settings

Values that differ between deployments can be overridden through
environment variables.
"""

import os
from typing import Final

# =============================================================================
# PERSISTENCE
# =============================================================================

STORAGE_DIR: str = os.getenv("WASTEWEALTH_STORAGE_DIR", ".wastewealth")
"""Directory used by the JSON file storage backend (one file per key)."""

REQUESTS_STORAGE_KEY: Final[str] = "pickup_requests"
"""Key holding the serialized list of pickup requests."""

STATS_STORAGE_KEY: Final[str] = "worker_stats"
"""Key holding the last worker statistics snapshot (advisory only)."""

# =============================================================================
# SEED DATA
# =============================================================================

SAMPLE_REQUEST_COUNT: int = 3
"""Number of sample requests generated when no persisted collection exists."""

DEFAULT_WORKER_RATING: float = 4.8
"""Initial worker rating. The store never recomputes it."""

DEFAULT_WORKER_EFFICIENCY: float = 95.0
"""Initial worker efficiency percentage. The store never recomputes it."""

DEFAULT_WORKER_ID: str = "worker_1"
"""Worker id used when a request is accepted without an explicit worker."""

# =============================================================================
# REQUEST LIFECYCLE
# =============================================================================

STRICT_STATUS_TRANSITIONS: bool = True
"""
Validate status updates against the lifecycle transition table.
Set to False to apply every status write unconditionally (legacy mode,
e.g. allowing completed -> pending).
"""

URGENCY_RANK: Final[dict] = {"high": 3, "medium": 2, "low": 1}
"""Sort rank for urgency levels. Higher rank is listed first."""

ACTIVE_STATUSES: Final[tuple] = ("pending", "accepted", "in-progress")
"""Statuses counted as active requests in the worker statistics."""

# =============================================================================
# RECENT ACTIVITY FEED
# =============================================================================

ACTIVITY_SCAN_LIMIT: int = 10
"""Number of most recently updated requests inspected for the feed."""

ACTIVITY_FEED_LIMIT: int = 6
"""Maximum number of entries returned by the recent activity feed."""

CURRENCY_SYMBOL: str = "₹"
"""Currency symbol used in human-readable earnings strings."""

# =============================================================================
# REMOTE API
# =============================================================================

API_BASE_URL: str = os.getenv("WASTEWEALTH_API_URL", "https://your-api-url.com/api")
"""Base URL of the marketplace REST backend."""

API_TIMEOUT_SECONDS: float = 10.0
"""Timeout for every API request. No retries are attempted."""

AUTH_TOKEN_KEY: Final[str] = "authToken"
"""Credential storage key for the bearer token."""

USER_DATA_KEY: Final[str] = "userData"
"""Credential storage key for the cached user profile."""

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL: str = os.getenv("WASTEWEALTH_LOG_LEVEL", "INFO")
"""Log level applied by the command-line interface."""
