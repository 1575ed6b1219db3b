"""
Site Configuration

Reads suggestion tunables from ``site_config.json``::

	{
		"time_suggestions": {
			"max_suggestions": 10,
			"rate_limit": {"limit": 20, "seconds": 60}
		}
	}
"""

import frappe
from typing import Any, Dict

from time_suggestions.time_suggestions.suggestions.config import SuggestionConfig
from time_suggestions.time_suggestions.suggestions.errors import ValidationError

# Keys consumed by the app layer, not by the engine
APP_KEYS = ("rate_limit", "timezone_cache_ttl")


def get_app_settings() -> Dict[str, Any]:
	return dict(frappe.conf.get("time_suggestions") or {})


def get_suggestion_config() -> SuggestionConfig:
	"""
	Build the engine config for the current site.

	Falls back to defaults (and logs) when the overrides are malformed.
	"""
	overrides = {k: v for k, v in get_app_settings().items() if k not in APP_KEYS}
	try:
		return SuggestionConfig.from_mapping(overrides)
	except (TypeError, ValueError, ValidationError) as e:
		frappe.log_error(
			f"Invalid time_suggestions overrides in site config: {e}",
			"Time Suggestions Config"
		)
		return SuggestionConfig()
