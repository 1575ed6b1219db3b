"""
Conflict Detection

Finds active sessions overlapping a candidate interval.

A session blocks a slot when it belongs to the same user, is not
soft-deleted, is not completed and overlaps the slot under the half-open
test ``start < other_end and other_start < end``.
"""

import logging
from concurrent.futures import Executor
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from .config import DEFAULT_CONFIG, SuggestionConfig
from .errors import ConflictError, TransientError, ValidationError
from .models import Session, TimeRange
from .stores import SessionStore
from .time_windows import intervals_overlap, validate_interval

logger = logging.getLogger(__name__)


def session_blocks(
	session: Session,
	user_id: str,
	start: datetime,
	end: datetime,
	exclude_id: Optional[str] = None
) -> bool:
	return (
		session.user_id == user_id
		and session.is_active
		and (exclude_id is None or session.id != exclude_id)
		and intervals_overlap(start, end, session.start_time, session.end_time)
	)


def _read_conflicts(
	store: SessionStore,
	user_id: str,
	start: datetime,
	end: datetime,
	exclude_id: Optional[str] = None
) -> List[Session]:
	found = store.find_overlapping(user_id, start, end, exclude_id=exclude_id)
	return [s for s in found if session_blocks(s, user_id, start, end, exclude_id)]


def check_conflicts(
	user_id: str,
	start: datetime,
	end: datetime,
	session_store: SessionStore,
	exclude_id: Optional[str] = None
) -> List[Session]:
	"""
	Sessions that block ``[start, end)`` for a user.

	Args:
		user_id: owner of the sessions
		start: interval start (UTC)
		end: interval end (UTC)
		session_store: where sessions are read from
		exclude_id: session to ignore, used when editing that session

	Returns:
		list[Session]: conflicting sessions, empty when the slot is free

	Raises:
		ValidationError: if the interval is naive or end <= start
	"""
	validate_interval(start, end, "conflict check")
	return _read_conflicts(session_store, user_id, start, end, exclude_id)


def fetch_conflicts(
	user_id: str,
	ranges: Sequence[TimeRange],
	session_store: SessionStore,
	executor: Optional[Executor] = None,
	skip_failures: bool = False
) -> Dict[int, List[Session]]:
	"""
	Conflict lists for many ranges, keyed by range index.

	With an executor, one read per range runs concurrently; results are
	collected by index, so the output does not depend on completion order.
	When ``skip_failures`` is set, a range whose read fails for any reason
	is logged and left out of the result instead of failing the whole
	batch. Otherwise the first failure cancels the reads not yet started
	and is re-raised.
	"""
	if executor is None:
		outcomes = {}
		for index, time_range in enumerate(ranges):
			try:
				outcomes[index] = _read_conflicts(
					session_store, user_id, time_range.start_time, time_range.end_time
				)
			except Exception as e:
				if not skip_failures:
					raise
				_log_skipped(user_id, index, e)
		return outcomes

	futures = {
		index: executor.submit(
			_read_conflicts, session_store, user_id, time_range.start_time, time_range.end_time
		)
		for index, time_range in enumerate(ranges)
	}

	outcomes = {}
	for index, future in futures.items():
		try:
			outcomes[index] = future.result()
		except Exception as e:
			if not skip_failures:
				for pending in futures.values():
					pending.cancel()
				raise
			_log_skipped(user_id, index, e)
	return outcomes


def _log_skipped(user_id: str, index: int, error: Exception) -> None:
	logger.warning(
		"Conflict read failed for user %s, range %s (%s): %s",
		user_id, index, type(error).__name__, error,
		exc_info=not isinstance(error, TransientError)
	)


def ensure_no_conflicts(
	user_id: str,
	start: datetime,
	end: datetime,
	session_store: SessionStore,
	exclude_id: Optional[str] = None
) -> None:
	"""
	Raise ConflictError when an active session blocks ``[start, end)``.

	The error context carries the ids and titles of the blocking sessions.
	"""
	conflicts = check_conflicts(user_id, start, end, session_store, exclude_id=exclude_id)
	if conflicts:
		raise ConflictError(
			f"Interval overlaps {len(conflicts)} active session(s)",
			{
				"ids": [c.id for c in conflicts],
				"titles": [c.title or c.id for c in conflicts],
			}
		)


def check_conflicts_batch(
	user_id: str,
	ranges: Sequence[TimeRange],
	session_store: SessionStore,
	executor: Optional[Executor] = None,
	config: Optional[SuggestionConfig] = None
) -> Dict[int, List[Session]]:
	"""
	Batched ``check_conflicts``: index -> conflicting sessions.

	Identical to calling ``check_conflicts`` once per range.

	Raises:
		ValidationError: more than ``max_batch_conflict_ranges`` ranges, or
			any malformed range
	"""
	config = config or DEFAULT_CONFIG
	if len(ranges) > config.max_batch_conflict_ranges:
		raise ValidationError(
			f"At most {config.max_batch_conflict_ranges} ranges can be checked at once",
			{"ranges": len(ranges)}
		)

	for index, time_range in enumerate(ranges):
		validate_interval(time_range.start_time, time_range.end_time, f"range {index}")

	if not ranges:
		return {}

	return fetch_conflicts(user_id, ranges, session_store, executor=executor)
