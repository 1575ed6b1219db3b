"""
Pattern Detection

Infers recurring (type, weekday, time-of-day) habits from a user's session
history. Sessions are grouped into clusters held as immutable accumulators;
``add_session`` returns a new accumulator instead of mutating the old one.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple

import pytz

from .config import DEFAULT_CONFIG, SuggestionConfig
from .errors import ValidationError
from .models import DayOfWeek, Pattern, Session, SessionType
from .time_windows import MINUTES_PER_DAY, get_timezone, round_to_interval, utc_to_local

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterAccumulator:
	"""Running statistics of one (type, weekday, time-of-day) cluster."""

	type: SessionType
	day_of_week: DayOfWeek
	center_minutes: int
	frequency: int = 0
	completed_count: int = 0
	mean_duration: float = 0.0
	mean_priority: float = 0.0
	recency_total: float = 0.0
	# (title, count) in first-seen order
	title_counts: Tuple[Tuple[str, int], ...] = ()

	def matches(self, type: SessionType, day_of_week: DayOfWeek, minutes: int, tolerance: int) -> bool:
		return (
			self.type == type
			and self.day_of_week == day_of_week
			and abs(self.center_minutes - minutes) <= tolerance
		)

	@property
	def success_rate(self) -> float:
		return self.completed_count / self.frequency if self.frequency else 0.0

	@property
	def recency_weight(self) -> float:
		return self.recency_total / self.frequency if self.frequency else 0.0

	@property
	def title(self) -> str:
		"""Most frequent title; on ties the one seen first wins."""
		if not self.title_counts:
			return ""
		return max(self.title_counts, key=lambda item: item[1])[0]


def add_session(acc: ClusterAccumulator, session: Session, weight: float) -> ClusterAccumulator:
	"""Fold one session into a cluster, returning the updated accumulator."""
	frequency = acc.frequency + 1
	duration = (session.end_time - session.start_time).total_seconds() / 60.0

	titles = list(acc.title_counts)
	for i, (title, count) in enumerate(titles):
		if title == session.title:
			titles[i] = (title, count + 1)
			break
	else:
		titles.append((session.title, 1))

	return replace(
		acc,
		frequency=frequency,
		completed_count=acc.completed_count + (1 if session.completed else 0),
		mean_duration=acc.mean_duration + (duration - acc.mean_duration) / frequency,
		mean_priority=acc.mean_priority + (session.priority - acc.mean_priority) / frequency,
		recency_total=acc.recency_total + weight,
		title_counts=tuple(titles),
	)


def recency_weight(start_time: datetime, now: datetime, half_life_days: float) -> float:
	"""``2^(-age/half_life)``; sessions at or after ``now`` weigh 1."""
	age_days = (now - start_time).total_seconds() / 86400.0
	if age_days <= 0:
		return 1.0
	return math.pow(2.0, -age_days / half_life_days)


def normalize_time(day_of_week: DayOfWeek, minutes: int, interval: int) -> Tuple[DayOfWeek, int]:
	"""
	Round a local time to the nearest ``interval`` minutes.

	A time rounding up to midnight moves to 00:00 of the following weekday.
	"""
	rounded = round_to_interval(minutes, interval)
	if rounded >= MINUTES_PER_DAY:
		return DayOfWeek.from_index((day_of_week.index + 1) % 7), rounded - MINUTES_PER_DAY
	return day_of_week, rounded


def round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def to_pattern(acc: ClusterAccumulator, config: SuggestionConfig) -> Pattern:
	duration = min(
		max(round_half_up(acc.mean_duration), config.min_pattern_duration_minutes),
		config.max_pattern_duration_minutes
	)
	priority = min(max(round_half_up(acc.mean_priority), 1), 5)
	return Pattern(
		type=acc.type,
		day_of_week=acc.day_of_week,
		hour=acc.center_minutes // 60,
		minute=acc.center_minutes % 60,
		duration_minutes=duration,
		priority=priority,
		frequency=acc.frequency,
		success_rate=acc.success_rate,
		recency_weight=acc.recency_weight,
		title=acc.title,
	)


def compare_patterns(a: Pattern, b: Pattern, dead_band: float) -> int:
	"""
	Success rate desc (differences within ``dead_band`` tie), then
	frequency desc, then recency weight desc.
	"""
	if abs(a.success_rate - b.success_rate) > dead_band:
		return -1 if a.success_rate > b.success_rate else 1
	if a.frequency != b.frequency:
		return b.frequency - a.frequency
	if a.recency_weight != b.recency_weight:
		return -1 if a.recency_weight > b.recency_weight else 1
	return 0


def detect_patterns(
	sessions: Iterable[Session],
	timezone: str,
	now: Optional[datetime] = None,
	config: Optional[SuggestionConfig] = None
) -> List[Pattern]:
	"""
	Detect recurring patterns in a user's sessions.

	Args:
		sessions: historical sessions (normally completed ones)
		timezone: IANA timezone the wall-clock times are read in
		now: reference instant for recency weighting (defaults to current UTC)
		config: tunables; defaults to DEFAULT_CONFIG

	Returns:
		list[Pattern]: patterns with at least ``min_pattern_frequency`` members,
		best first

	Algorithm:
		1. Skip deleted sessions and non-recurring types
		2. Convert each start to local weekday + minutes, round to the interval
		3. Join the first cluster of the same (type, weekday) within tolerance,
		   or open a new one
		4. Drop clusters under the frequency threshold
		5. Sort by success rate (dead band), frequency, recency
	"""
	config = config or DEFAULT_CONFIG
	tz = get_timezone(timezone)
	now = now or datetime.now(pytz.UTC)

	# Stable input order keeps cluster membership deterministic
	ordered = sorted(sessions, key=lambda s: (s.start_time, s.id))

	clusters: List[ClusterAccumulator] = []
	for session in ordered:
		if session.is_deleted or session.type in config.non_recurring_types:
			continue

		try:
			local = utc_to_local(session.start_time, tz)
		except ValidationError as e:
			logger.warning("Skipping session %s in pattern detection: %s", session.id, e.message)
			continue

		day_of_week, minutes = normalize_time(
			local.day_of_week, local.minutes, config.pattern_rounding_minutes
		)
		weight = recency_weight(session.start_time, now, config.recency_half_life_days)

		for i, acc in enumerate(clusters):
			if acc.matches(session.type, day_of_week, minutes, config.fuzzy_window_minutes):
				clusters[i] = add_session(acc, session, weight)
				break
		else:
			seed = ClusterAccumulator(type=session.type, day_of_week=day_of_week, center_minutes=minutes)
			clusters.append(add_session(seed, session, weight))

	patterns = [
		to_pattern(acc, config)
		for acc in clusters
		if acc.frequency >= config.min_pattern_frequency
	]

	dead_band = config.success_rate_dead_band
	patterns.sort(key=cmp_to_key(lambda a, b: compare_patterns(a, b, dead_band)))
	return patterns
