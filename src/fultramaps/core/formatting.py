"""
Display formatters for distances and durations.

Output strings follow the mobile client's Spanish labels ("m", "km", "seg",
"min", "h"). These are presentation-only: anything that carries a formatted
string must also carry the number it came from (see `domain.models.Distance`).
"""

from __future__ import annotations

import math


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves toward +inf (JS `Math.round`)."""
    return int(math.floor(x + 0.5))


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round_half_up(meters)} m"
    # Tenths of a km, ties up like JS `toFixed(1)`.
    return f"{round_half_up(meters / 100) / 10:.1f} km"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{round_half_up(seconds)} seg"
    if seconds < 3600:
        return f"{round_half_up(seconds / 60)} min"
    hours = int(seconds // 3600)
    mins = round_half_up((seconds % 3600) / 60)
    return f"{hours} h {mins} min"
