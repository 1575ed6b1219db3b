"""
Suggestion Engine

Entry point that turns (history, availability, now) into a ranked list of
suggested slots for one user.

The run is stateless: data is fetched once into a snapshot, then every
stage is a pure computation over it. Independent fetches and per-candidate
conflict reads may run on an injected ``concurrent.futures.Executor``;
the result does not depend on the order they finish in.
"""

import logging
import threading
from concurrent.futures import Executor
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

import pytz

from .availability import has_any_availability
from .candidates import GenerationWindow, generate_default_candidates, generate_pattern_candidates
from .config import DEFAULT_CONFIG, SuggestionConfig
from .errors import RequestCancelled, ValidationError
from .models import Candidate, Session, SessionType, Suggestion, SuggestionOptions, WeeklyAvailability
from .patterns import detect_patterns
from .scoring import ScheduleContext
from .selection import select_candidates
from .stores import AvailabilityStore, SessionStore
from .time_windows import ensure_utc, get_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedOptions:
	"""Validated request options with defaults applied."""

	start: datetime
	end: datetime
	look_ahead_days: int
	preferred_types: Optional[Tuple[SessionType, ...]]
	min_priority: int
	max_priority: int

	def accepts_type(self, session_type: SessionType) -> bool:
		return self.preferred_types is None or session_type in self.preferred_types

	def accepts_priority(self, priority: int) -> bool:
		return self.min_priority <= priority <= self.max_priority


@dataclass(frozen=True)
class Snapshot:
	weekly: WeeklyAvailability
	history: List[Session]
	active: List[Session]


def _validate_priority(value, field_name: str, default: int) -> int:
	if value is None:
		return default
	if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
		raise ValidationError(f"{field_name} must be an integer between 1 and 5", {field_name: value})
	return value


def resolve_options(
	options: Optional[SuggestionOptions],
	now: datetime,
	config: SuggestionConfig
) -> ResolvedOptions:
	"""
	Validate request options.

	Raises:
		ValidationError: look-ahead out of range, naive or too distant
			start date, unknown session type, bad priority bounds
	"""
	options = options or SuggestionOptions()

	look_ahead = options.look_ahead_days
	if look_ahead is None:
		look_ahead = config.default_look_ahead_days
	if (
		isinstance(look_ahead, bool)
		or not isinstance(look_ahead, int)
		or not config.min_look_ahead_days <= look_ahead <= config.max_look_ahead_days
	):
		raise ValidationError(
			f"look_ahead_days must be an integer between "
			f"{config.min_look_ahead_days} and {config.max_look_ahead_days}",
			{"look_ahead_days": look_ahead}
		)

	if options.start_date is None:
		start = now
	else:
		start = ensure_utc(options.start_date, "start_date")
		if start > now + timedelta(days=look_ahead):
			raise ValidationError(
				f"start_date cannot be more than {look_ahead} days in the future",
				{"start_date": start.isoformat()}
			)

	preferred = None
	if options.preferred_types:
		try:
			preferred = tuple(SessionType(t) for t in options.preferred_types)
		except ValueError:
			raise ValidationError("Invalid session type in preferred_types", {"preferred_types": list(options.preferred_types)})

	min_priority = _validate_priority(options.min_priority, "min_priority", 1)
	max_priority = _validate_priority(options.max_priority, "max_priority", 5)
	if min_priority > max_priority:
		raise ValidationError("min_priority cannot be greater than max_priority")

	return ResolvedOptions(
		start=start,
		end=start + timedelta(days=look_ahead),
		look_ahead_days=look_ahead,
		preferred_types=preferred,
		min_priority=min_priority,
		max_priority=max_priority,
	)


def _check_cancelled(cancel_event: Optional[threading.Event], phase: str) -> None:
	if cancel_event is not None and cancel_event.is_set():
		raise RequestCancelled(f"Suggestion request cancelled before {phase}", {"phase": phase})


def fetch_snapshot(
	user_id: str,
	resolved: ResolvedOptions,
	now: datetime,
	session_store: SessionStore,
	availability_store: AvailabilityStore,
	config: SuggestionConfig,
	executor: Optional[Executor] = None
) -> Snapshot:
	"""
	Read availability, completed history and active sessions once.

	Active sessions are read with one day of padding on each side so
	same-local-day load is complete at the window edges.
	"""
	history_start = now - timedelta(days=config.history_days)
	pad = timedelta(days=1)

	calls = (
		(availability_store.get_weekly_availability, (user_id,), {}),
		(session_store.list_sessions, (user_id, history_start, now), {"completed": True, "limit": config.max_history_sessions}),
		(session_store.list_sessions, (user_id, resolved.start - pad, resolved.end + pad), {"completed": False}),
	)

	if executor is None:
		weekly, history, active = (fn(*args, **kwargs) for fn, args, kwargs in calls)
	else:
		futures = [executor.submit(fn, *args, **kwargs) for fn, args, kwargs in calls]
		weekly, history, active = (f.result() for f in futures)

	return Snapshot(weekly=weekly, history=list(history), active=list(active))


def _default_plan(resolved: ResolvedOptions, config: SuggestionConfig) -> Tuple[List[SessionType], int]:
	"""
	Types and priority for default generation under the request filters.

	Preferred types outside the default set are used as-is when none of the
	defaults is preferred.
	"""
	types = [t for t in config.default_types if resolved.accepts_type(t)]
	if not types and resolved.preferred_types:
		types = list(resolved.preferred_types)

	priority = min(max(config.default_priority, resolved.min_priority), resolved.max_priority)
	return types, priority


def suggest_time_slots(
	user_id: str,
	options: Optional[SuggestionOptions],
	timezone: str,
	session_store: SessionStore,
	availability_store: AvailabilityStore,
	now: Optional[datetime] = None,
	config: Optional[SuggestionConfig] = None,
	executor: Optional[Executor] = None,
	cancel_event: Optional[threading.Event] = None
) -> List[Suggestion]:
	"""
	Suggest future time slots for a user.

	Args:
		user_id: owner of the sessions and availability
		options: look-ahead window and filters (see SuggestionOptions)
		timezone: IANA timezone of the user
		session_store: session reads
		availability_store: weekly availability reads
		now: reference instant (defaults to current UTC)
		config: tunables (defaults to DEFAULT_CONFIG)
		executor: optional executor for concurrent reads
		cancel_event: set to abort the run between phases

	Returns:
		list[Suggestion]: ranked suggestions, best first

	Raises:
		ValidationError: invalid user, timezone or options
		RequestCancelled: cancel_event was set
		TransientError: a snapshot read failed

	Algorithm:
		1. Validate timezone and options
		2. Fetch snapshot (availability, history, active sessions)
		3. No availability -> []
		4. Detect patterns over completed, recurring history; apply filters
		5. Generate, check and score pattern candidates; select
		6. Nothing selected -> default generation (skipped when patterns
		   exist and the window is already busy)
	"""
	config = config or DEFAULT_CONFIG
	if not user_id:
		raise ValidationError("user_id is required")

	tz = get_timezone(timezone)
	now = ensure_utc(now, "now") if now is not None else datetime.now(pytz.UTC)
	resolved = resolve_options(options, now, config)

	_check_cancelled(cancel_event, "fetch")
	snapshot = fetch_snapshot(
		user_id, resolved, now, session_store, availability_store, config, executor=executor
	)

	if not has_any_availability(snapshot.weekly):
		logger.info("No availability configured for user %s; returning no suggestions", user_id)
		return []

	_check_cancelled(cancel_event, "pattern detection")
	patterns = [
		p for p in detect_patterns(snapshot.history, timezone, now=now, config=config)
		if resolved.accepts_type(p.type) and resolved.accepts_priority(p.priority)
	]

	window = GenerationWindow(start=resolved.start, end=resolved.end, now=now, tz=tz)
	context = ScheduleContext(snapshot.active, tz, now, config)

	def local_date_of(candidate: Candidate):
		return context.local_date(candidate.start_time)

	selected: List[Candidate] = []
	if patterns:
		_check_cancelled(cancel_event, "pattern candidates")
		candidates = generate_pattern_candidates(
			user_id, patterns, window, snapshot.weekly, session_store, context, executor=executor
		)
		selected = select_candidates(candidates, config, local_date_of)

	if not selected:
		busy = _count_in_window(snapshot.active, resolved)
		if patterns and busy >= config.busy_session_threshold:
			logger.info(
				"User %s has %s active sessions in the window; skipping default suggestions",
				user_id, busy
			)
		else:
			_check_cancelled(cancel_event, "default candidates")
			types, priority = _default_plan(resolved, config)
			defaults = generate_default_candidates(
				user_id, types, priority, window, snapshot.weekly, session_store, context, executor=executor
			)
			selected = select_candidates(defaults, config, local_date_of)

	_check_cancelled(cancel_event, "returning results")
	logger.info(
		"Generated %s suggestions for user %s (%s patterns)", len(selected), user_id, len(patterns)
	)
	return [Suggestion.from_candidate(c) for c in selected]


def _count_in_window(sessions: Iterable[Session], resolved: ResolvedOptions) -> int:
	return sum(
		1 for s in sessions
		if s.is_active and resolved.start <= s.start_time < resolved.end
	)
