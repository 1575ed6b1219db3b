"""
Time Suggestions API

Structure:
    api/
    ├── __init__.py              # This file
    ├── suggestions/             # Suggestions domain
    │   ├── __init__.py          # Re-exports endpoints
    │   └── endpoints.py         # Whitelisted endpoints
    └── shared/                  # Shared utilities
        ├── __init__.py          # Re-exports
        ├── security.py          # Rate limiting
        └── validators.py        # Request validators

Usage:
    frappe.call("time_suggestions.api.suggestions.suggest_time_slots", {look_ahead_days: 7})
"""

from . import shared
from . import suggestions

__all__ = [
    "shared",
    "suggestions",
]
