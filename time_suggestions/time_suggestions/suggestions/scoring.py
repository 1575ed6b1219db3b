"""
Suggestion Scoring

Multi-factor score for a candidate slot, from 0 to 100, together with the
human-readable reasons behind it.

Candidates are scored in generation order against a ``ScheduleContext``
holding the user's active sessions and the candidates accepted so far, so
a slot crowding an earlier candidate is penalized.
"""

import math
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pytz

from .config import SuggestionConfig
from .models import Candidate, Session
from .time_windows import hours_between, intervals_overlap, local_date

PATTERN_FALLBACK_REASON = "Based on your schedule patterns"
DEFAULT_REASON = "Default suggestion to get you started"


def _round_half_up(value: float) -> int:
	return int(math.floor(value + 0.5))


def _format_hours(hours: float) -> str:
	return f"{_round_half_up(hours * 10) / 10:g}h"


class ScheduleContext:
	"""
	Per-request view of the user's day-by-day load.

	Holds the active sessions of the look-ahead window grouped by local date
	and the candidates accepted by generation so far.
	"""

	def __init__(
		self,
		active_sessions: Iterable[Session],
		tz: pytz.BaseTzInfo,
		now: datetime,
		config: SuggestionConfig
	):
		self.tz = tz
		self.now = now
		self.config = config
		self._sessions_by_day: Dict[date, List[Session]] = defaultdict(list)
		self._accepted_by_day: Dict[date, List[Candidate]] = defaultdict(list)
		self.accepted: List[Candidate] = []

		for session in active_sessions:
			if session.is_active:
				self._sessions_by_day[local_date(session.start_time, tz)].append(session)

	def local_date(self, instant: datetime) -> date:
		return local_date(instant, self.tz)

	def sessions_on(self, day: date) -> List[Session]:
		return list(self._sessions_by_day.get(day, ()))

	def accepted_on(self, day: date) -> List[Candidate]:
		return list(self._accepted_by_day.get(day, ()))

	def accept(self, candidate: Candidate) -> None:
		self.accepted.append(candidate)
		self._accepted_by_day[self.local_date(candidate.start_time)].append(candidate)

	def day_fatigue(self, day: date) -> int:
		"""
		Load penalty of a local day.

		15 per high-priority item beyond the daily allowance, plus 30 once the
		day holds ``max_sessions_per_day`` items. Accepted candidates count
		like sessions.
		"""
		config = self.config
		priorities = [s.priority for s in self._sessions_by_day.get(day, ())]
		priorities += [c.priority for c in self._accepted_by_day.get(day, ())]

		high = sum(1 for p in priorities if p >= config.high_priority_threshold)
		penalty = max(0, high - config.max_high_priority_per_day) * config.fatigue_penalty_per_high_priority
		if len(priorities) >= config.max_sessions_per_day:
			penalty += config.too_many_sessions_penalty
		return penalty


def gap_hours(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> Tuple[float, float]:
	"""
	(hours after ``other`` ends, hours before ``other`` starts).

	At most one of the two is non-negative for non-overlapping intervals.
	"""
	return hours_between(other_end, start), hours_between(end, other_start)


def too_close(a_start: datetime, b_start: datetime, min_hours: float) -> bool:
	"""Start times closer than ``min_hours``."""
	return abs(hours_between(a_start, b_start)) < min_hours


def clashes(candidate: Candidate, other: Candidate, min_hours: float) -> bool:
	"""Starts closer than ``min_hours`` or intervals overlapping."""
	return too_close(candidate.start_time, other.start_time, min_hours) or intervals_overlap(
		candidate.start_time, candidate.end_time, other.start_time, other.end_time
	)


def spacing_adjustment(candidate: Candidate, context: ScheduleContext) -> Tuple[int, List[str]]:
	"""
	Spacing term relative to same-day sessions and accepted candidates.

	Returns:
		(delta, reasons): delta is never below -100
	"""
	config = context.config
	min_spacing = config.min_session_spacing_hours
	high = config.high_priority_threshold
	reasons: List[str] = []
	delta = 0

	day = context.local_date(candidate.start_time)
	nearest: Optional[float] = None

	for session in context.sessions_on(day):
		after_previous, before_next = gap_hours(
			candidate.start_time, candidate.end_time, session.start_time, session.end_time
		)
		for gap, label in ((after_previous, "after previous"), (before_next, "before next")):
			if gap < 0:
				continue
			nearest = gap if nearest is None else min(nearest, gap)
			if gap < min_spacing:
				delta -= _round_half_up((1 - gap / min_spacing) * config.spacing_penalty_multiplier)
				reasons.append(f"Only {_format_hours(gap)} {label} session")
				if candidate.priority >= high and session.priority >= high:
					delta -= config.high_priority_close_penalty
					reasons.append("Close to another high-priority session")

	for other in context.accepted:
		if clashes(candidate, other, config.min_suggestion_spacing_hours):
			delta -= config.consecutive_suggestion_penalty
			reasons.append("Too close to another suggestion")

	ideal_low = config.ideal_spacing_hours
	ideal_high = ideal_low + config.ideal_spacing_band_hours
	if nearest is not None and ideal_low <= nearest <= ideal_high:
		delta += config.ideal_spacing_bonus
		reasons.append("Good spacing from other sessions")

	return max(delta, -config.max_score), reasons


def score_candidate(candidate: Candidate, context: ScheduleContext) -> Candidate:
	"""
	Score a candidate in place and return it.

	Algorithm:
		1. Base: 40 for pattern candidates, 50 for defaults
		2. Pattern frequency bonus, min(frequency * 4, 25)
		3. Success-rate bonus, round(success_rate * 15)
		4. Spacing term against same-day sessions and accepted candidates
		5. Fatigue penalty of the local day
		6. Near-term bonus (within 3 days of now)
		7. High-priority pattern bonus
		8. Clamp to [0, 100]
	"""
	config = context.config
	pattern = candidate.pattern
	reasons: List[str] = []

	if pattern is None:
		score = config.base_default_score
		reasons.append(DEFAULT_REASON)
	else:
		score = config.base_pattern_score

		score += min(pattern.frequency * config.frequency_bonus_multiplier, config.max_frequency_bonus)
		plural = "s" if pattern.frequency != 1 else ""
		reasons.append(f"Based on {pattern.frequency} previous {pattern.type.label} session{plural}")

		score += _round_half_up(pattern.success_rate * config.success_rate_bonus_multiplier)
		if pattern.success_rate >= config.high_success_rate:
			reasons.append("High completion rate")

	spacing, spacing_reasons = spacing_adjustment(candidate, context)
	score += spacing
	reasons.extend(spacing_reasons)

	fatigue = context.day_fatigue(context.local_date(candidate.start_time))
	if fatigue:
		score -= fatigue
		reasons.append("Busy day already")

	days_from_now = math.floor((candidate.start_time - context.now).total_seconds() / 86400.0)
	if days_from_now <= config.near_term_days:
		score += config.near_term_bonus
		reasons.append("Available soon")

	if pattern is not None and pattern.priority >= config.high_priority_threshold:
		score += config.high_priority_bonus
		reasons.append("High-priority habit")

	candidate.score = int(min(max(score, config.min_score), config.max_score))
	candidate.reasons = reasons or [PATTERN_FALLBACK_REASON]
	return candidate
