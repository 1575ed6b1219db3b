"""
Suggestion Configuration

One consistent set of tunables for pattern detection, scoring and selection.
Sites may override any field through ``site_config.json``::

	"time_suggestions": {"max_suggestions": 10, "min_pattern_frequency": 4}
"""

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from .models import SessionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionConfig:
	# Pattern detection
	min_pattern_frequency: int = 3
	pattern_rounding_minutes: int = 30
	fuzzy_window_minutes: int = 15
	recency_half_life_days: float = 30.0
	success_rate_dead_band: float = 0.1
	high_success_rate: float = 0.8
	min_pattern_duration_minutes: int = 15
	max_pattern_duration_minutes: int = 480
	non_recurring_types: FrozenSet[SessionType] = frozenset({SessionType.CLIENT_MEETING})
	history_days: int = 365
	max_history_sessions: int = 1000

	# Spacing
	min_session_spacing_hours: float = 2.0
	ideal_spacing_hours: float = 4.0
	ideal_spacing_band_hours: float = 2.0
	min_suggestion_spacing_hours: float = 2.0

	# Daily load
	high_priority_threshold: int = 4
	max_high_priority_per_day: int = 2
	max_sessions_per_day: int = 4
	fatigue_penalty_per_high_priority: int = 15
	too_many_sessions_penalty: int = 30
	skip_day_fatigue_threshold: int = 50

	# Scoring
	min_score: int = 0
	max_score: int = 100
	base_pattern_score: int = 40
	base_default_score: int = 50
	frequency_bonus_multiplier: int = 4
	max_frequency_bonus: int = 25
	success_rate_bonus_multiplier: int = 15
	spacing_penalty_multiplier: int = 25
	ideal_spacing_bonus: int = 5
	high_priority_close_penalty: int = 15
	consecutive_suggestion_penalty: int = 40
	near_term_days: int = 3
	near_term_bonus: int = 5
	high_priority_bonus: int = 3

	# Defaults
	default_duration_minutes: int = 60
	default_priority: int = 3
	default_types: Tuple[SessionType, ...] = (
		SessionType.DEEP_WORK,
		SessionType.WORKOUT,
		SessionType.LANGUAGE,
	)

	# Limits
	default_look_ahead_days: int = 14
	min_look_ahead_days: int = 1
	max_look_ahead_days: int = 30
	max_suggestions: int = 15
	max_suggestions_per_day: int = 2
	max_suggestions_per_type: int = 3
	max_candidate_slots: int = 200
	max_batch_conflict_ranges: int = 100
	busy_session_threshold: int = 10

	@classmethod
	def from_mapping(cls, overrides: Optional[Mapping[str, Any]]) -> "SuggestionConfig":
		"""
		Build a config from site overrides.

		Unknown keys are logged and ignored; enum-typed fields accept
		session type names.
		"""
		config = cls()
		if not overrides:
			return config

		known = {f.name for f in fields(cls)}
		values = {}
		for key, value in overrides.items():
			if key not in known:
				logger.warning("Ignoring unknown suggestion config key %r", key)
				continue
			if key == "non_recurring_types":
				value = frozenset(SessionType(v) for v in value)
			elif key == "default_types":
				value = tuple(SessionType(v) for v in value)
			values[key] = value

		return replace(config, **values)


DEFAULT_CONFIG = SuggestionConfig()
