"""Rounding and label formatting shared by results and analytics."""

import math
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return math.floor(value + 0.5)


def round1(value: float) -> float:
    """Round to one decimal place, halves up, on the exact binary value."""
    return float(Decimal(value).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_number(value: float) -> str:
    """Render ``value`` with at most one decimal (``3.0`` -> ``"3"``)."""
    rounded = round1(value)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.1f}"


def format_percentage(value: float) -> str:
    return f"{format_number(value)}%"


def format_duration(seconds: int) -> str:
    """Compact duration such as ``"2d 5h"`` or ``"45m"``."""
    if not seconds or seconds <= 0:
        return "<1m"
    days = seconds // 86_400
    hours = (seconds % 86_400) // 3_600
    minutes = (seconds % 3_600) // 60
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if not days and minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts) or "<1m"


def resolve_image_url(url: str) -> str:
    """Rewrite ``ipfs://`` links to a public HTTPS gateway."""
    if not url:
        return ""
    if url.startswith("ipfs://"):
        return "https://ipfs.io/ipfs/" + url[len("ipfs://"):]
    return url
