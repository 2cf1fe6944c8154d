# wastewealth/utils.py
"""
Utility functions for the WasteWealth pickup request store.

Provides timestamp handling, id generation and the human-readable
formatting used by the activity feed, the CLI and the dashboard.
"""

from __future__ import annotations

import random
import string
from datetime import datetime, timezone
from typing import Optional


_ID_ALPHABET = string.digits + string.ascii_lowercase

# Approximate items per kg for common materials
ITEMS_PER_KG = {
    "plastic": 20,
    "paper": 10,
    "metal": 5,
    "glass": 2,
    "ewaste": 1,
    "organic": 1,
}

# kg of CO2 saved per kg of recycled material
CO2_FACTORS = {
    "plastic": 1.5,
    "paper": 0.9,
    "metal": 2.0,
    "glass": 0.3,
    "ewaste": 3.0,
    "organic": 0.2,
}


def utc_now() -> datetime:
    """
    Current UTC time truncated to millisecond precision.

    Persisted timestamps carry milliseconds only, so truncating here keeps
    in-memory records equal to their reloaded copies.
    """
    return truncate_to_millis(datetime.now(timezone.utc))


def truncate_to_millis(value: datetime) -> datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def format_timestamp(value: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC string with millisecond precision.

    Example:
        >>> format_timestamp(datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc))
        '2026-10-19T09:30:00.000Z'
    """
    value = truncate_to_millis(value).astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp. Naive values are treated as UTC.

    Raises:
        ValueError: If the string is not a valid timestamp
    """
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_request_id(now: Optional[datetime] = None, rng: Optional[random.Random] = None) -> str:
    """
    Generate a request id of the form req_<epoch millis>_<9 base36 chars>.

    Args:
        now: Creation time (defaults to the current time)
        rng: Random source, injectable for deterministic tests

    Returns:
        A new request id, e.g. 'req_1760866200000_k3j9x0a1b'
    """
    now = now or utc_now()
    rng = rng or random
    millis = int(now.timestamp() * 1000)
    suffix = "".join(rng.choice(_ID_ALPHABET) for _ in range(9))
    return f"req_{millis}_{suffix}"


def time_ago(milliseconds: float) -> str:
    """
    Coarse relative time for a millisecond delta.

    Anything under one minute (including negative deltas from clock skew)
    is reported as 'Just now'.

    Example:
        >>> time_ago(2 * 60 * 60 * 1000)
        '2 hours ago'
    """
    minutes = int(milliseconds // (1000 * 60))
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"


def format_currency(amount: float, symbol: str = "₹") -> str:
    """Format an amount with two decimals and thousands separators."""
    return f"{symbol}{amount:,.2f}"


def format_weight(weight: float, unit: str) -> str:
    if unit == "kg":
        return f"{weight:.2f} kg"
    if unit == "liters":
        return f"{weight:.2f} L"
    return f"{weight:g} items"


def format_distance(distance_km: float) -> str:
    """
    Format a distance, switching to meters below one kilometer.

    Example:
        >>> format_distance(0.45)
        '450 m'
    """
    if distance_km < 1:
        return f"{round(distance_km * 1000)} m"
    return f"{distance_km:.1f} km"


def weight_in_kg(material: str, quantity: float, unit: str) -> float:
    """
    Convert a quantity to kilograms.

    Liters use an average density of 0.5 kg/L; items use the per-material
    items-per-kg table (1 item per kg when the material is unknown).
    """
    if unit == "liters":
        return quantity * 0.5
    if unit == "items":
        return quantity / ITEMS_PER_KG.get(material.lower(), 1)
    return quantity


def calculate_waste_value(material: str, price_per_kg: float, quantity: float, unit: str) -> float:
    """Value of a waste line at the given price per kg."""
    return price_per_kg * weight_in_kg(material, quantity, unit)


def calculate_co2_saved(weight_kg: float, material: str) -> float:
    """Approximate kg of CO2 saved by recycling `weight_kg` of a material."""
    return weight_kg * CO2_FACTORS.get(material.lower(), 1.0)
