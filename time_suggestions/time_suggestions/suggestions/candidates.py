"""
Candidate Generation

Turns patterns (or, without them, a default set of session types) into
concrete UTC slots inside the look-ahead window. Slots outside
availability or colliding with active sessions never leave this module.
"""

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pytz

from .availability import check_availability
from .conflicts import fetch_conflicts
from .models import Candidate, DayOfWeek, LocalTimeRange, Pattern, SessionType, TimeRange, WeeklyAvailability
from .scoring import ScheduleContext, score_candidate, too_close
from .stores import SessionStore
from .time_windows import local_to_utc, next_date_for_weekday

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationWindow:
	"""Look-ahead window of one request."""

	start: datetime
	end: datetime
	now: datetime
	tz: pytz.BaseTzInfo

	@property
	def earliest_start(self) -> datetime:
		return max(self.start, self.now)

	def admits(self, slot_start: datetime) -> bool:
		"""Slot start is not in the past and falls inside ``[start, end)``."""
		return self.earliest_start <= slot_start < self.end

	def local_dates(self) -> List[date]:
		first = self.start.astimezone(self.tz).date()
		last = self.end.astimezone(self.tz).date()
		return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def pattern_slots(
	patterns: Sequence[Pattern],
	window: GenerationWindow,
	max_slots: int
) -> List[Candidate]:
	"""
	Weekly occurrences of each pattern inside the window.

	Args:
		patterns: patterns, best first
		window: look-ahead window
		max_slots: hard cap on the number of slots examined

	Returns:
		list[Candidate]: unscored candidates in pattern order, then date order
	"""
	candidates: List[Candidate] = []
	dates = window.local_dates()
	if not dates:
		return candidates

	for pattern in patterns:
		day = next_date_for_weekday(dates[0], pattern.day_of_week)
		while day <= dates[-1]:
			start = local_to_utc(day, pattern.hour, pattern.minute, window.tz)
			if window.admits(start):
				candidates.append(Candidate(
					type=pattern.type,
					title=pattern.title or pattern.type.label,
					start_time=start,
					end_time=start + timedelta(minutes=pattern.duration_minutes),
					priority=pattern.priority,
					pattern=pattern,
				))
				if len(candidates) >= max_slots:
					return candidates
			day += timedelta(days=7)

	return candidates


def _conflict_free(
	ranges: Sequence[TimeRange],
	user_id: str,
	session_store: SessionStore,
	executor: Optional[Executor]
) -> List[bool]:
	"""
	Per-range flag, True when the slot is known to be free.

	A range whose conflict read failed counts as not free.
	"""
	conflicts = fetch_conflicts(user_id, ranges, session_store, executor=executor, skip_failures=True)
	return [index in conflicts and not conflicts[index] for index in range(len(ranges))]


def filter_available(
	candidates: Iterable[Candidate],
	weekly: WeeklyAvailability,
	tz: pytz.BaseTzInfo
) -> List[Candidate]:
	kept = []
	for candidate in candidates:
		result = check_availability(candidate.start_time, candidate.end_time, weekly, tz)
		if result.valid:
			kept.append(candidate)
	return kept


def generate_pattern_candidates(
	user_id: str,
	patterns: Sequence[Pattern],
	window: GenerationWindow,
	weekly: WeeklyAvailability,
	session_store: SessionStore,
	context: ScheduleContext,
	executor: Optional[Executor] = None
) -> List[Candidate]:
	"""
	Scored, availability-checked, conflict-free candidates from patterns.

	Algorithm:
		1. Expand each pattern to its weekly slots (hard cap)
		2. Drop slots outside availability
		3. Batch conflict check, dropping conflicting or unreadable slots
		4. Score in generation order, accepting each into the context
	"""
	config = context.config
	slots = pattern_slots(patterns, window, config.max_candidate_slots)
	available = filter_available(slots, weekly, window.tz)
	if not available:
		return []

	ranges = [TimeRange(c.start_time, c.end_time) for c in available]
	free = _conflict_free(ranges, user_id, session_store, executor)

	scored = []
	for candidate, is_free in zip(available, free):
		if not is_free:
			continue
		scored.append(score_candidate(candidate, context))
		context.accept(candidate)

	logger.debug(
		"Pattern generation for user %s: %s slots, %s available, %s kept",
		user_id, len(slots), len(available), len(scored)
	)
	return scored


def _window_order(windows: Sequence[LocalTimeRange]) -> List[LocalTimeRange]:
	"""Largest window first; earlier window on equal length."""
	return sorted(windows, key=lambda w: (-w.duration_minutes, w.start_minutes))


def _midpoint_slot(day: date, window: LocalTimeRange, duration: int, tz: pytz.BaseTzInfo) -> Optional[TimeRange]:
	if window.duration_minutes < duration:
		return None
	start_minutes = max(window.start_minutes, window.midpoint_minutes - duration // 2)
	start_minutes = min(start_minutes, window.end_minutes - duration)
	start = local_to_utc(day, start_minutes // 60, start_minutes % 60, tz)
	return TimeRange(start, start + timedelta(minutes=duration))


def generate_default_candidates(
	user_id: str,
	types: Sequence[SessionType],
	priority: int,
	window: GenerationWindow,
	weekly: WeeklyAvailability,
	session_store: SessionStore,
	context: ScheduleContext,
	executor: Optional[Executor] = None
) -> List[Candidate]:
	"""
	One default candidate per type, each on a different low-fatigue day.

	Args:
		user_id: owner
		types: session types to place, in order
		priority: priority given to every default candidate
		window: look-ahead window
		weekly: parsed weekly availability
		session_store: conflict source
		context: schedule context shared with scoring

	Returns:
		list[Candidate]: scored candidates, at most one per type

	Algorithm:
		1. Eligible days: inside the window, with availability, fatigue <= 50;
		   sorted by fatigue then date
		2. Per day, one midpoint slot per window, largest window first
		3. Batch conflict check over every such slot (hard cap)
		4. Per type, take the first unused day holding a slot that is
		   admitted by the window, available, free and spaced from the
		   defaults already placed
	"""
	config = context.config
	duration = config.default_duration_minutes

	eligible = []
	for day in window.local_dates():
		windows = weekly.get(DayOfWeek.from_index(day.weekday())) or []
		fatigue = context.day_fatigue(day)
		if windows and fatigue <= config.skip_day_fatigue_threshold:
			eligible.append((fatigue, day, windows))
	eligible.sort(key=lambda item: (item[0], item[1]))

	slots_by_day: Dict[date, List[int]] = {}
	slots: List[TimeRange] = []
	for _, day, windows in eligible:
		for local_window in _window_order(windows):
			if len(slots) >= config.max_candidate_slots:
				break
			slot = _midpoint_slot(day, local_window, duration, window.tz)
			if slot is None or not window.admits(slot.start_time):
				continue
			if not check_availability(slot.start_time, slot.end_time, weekly, window.tz).valid:
				continue
			slots_by_day.setdefault(day, []).append(len(slots))
			slots.append(slot)

	if not slots or not types:
		return []

	free = _conflict_free(slots, user_id, session_store, executor)

	placed: List[Candidate] = []
	used_days = set()
	for session_type in types:
		for _, day, _windows in eligible:
			if day in used_days:
				continue
			chosen = None
			for index in slots_by_day.get(day, ()):
				slot = slots[index]
				if not free[index]:
					continue
				if any(too_close(slot.start_time, p.start_time, config.min_suggestion_spacing_hours) for p in placed):
					continue
				chosen = slot
				break
			if chosen is None:
				continue

			candidate = Candidate(
				type=session_type,
				title=session_type.label,
				start_time=chosen.start_time,
				end_time=chosen.end_time,
				priority=priority,
			)
			placed.append(candidate)
			used_days.add(day)
			break

	for candidate in placed:
		score_candidate(candidate, context)
		context.accept(candidate)
	return placed

