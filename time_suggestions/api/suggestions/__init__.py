"""
Suggestions API Domain

Time slot suggestions, conflict checks and pattern insight for the
logged-in user.
"""

from .endpoints import (
    check_conflicts,
    check_conflicts_batch,
    detect_patterns,
    suggest_time_slots,
)

__all__ = [
    "check_conflicts",
    "check_conflicts_batch",
    "detect_patterns",
    "suggest_time_slots",
]
