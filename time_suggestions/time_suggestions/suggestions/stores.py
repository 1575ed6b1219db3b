"""
Store Interfaces

Defines the collaborators the engine reads from. The Frappe app provides
DocType-backed implementations in ``time_suggestions.storage``; the
in-memory versions here back the engine tests and scripted use.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .availability import parse_weekly_availability
from .models import Session, WeeklyAvailability
from .time_windows import intervals_overlap


class SessionStore(ABC):
	"""
	Read interface over stored sessions.

	Implementations must return timezone-aware UTC datetimes.
	"""

	@abstractmethod
	def list_sessions(
		self,
		user_id: str,
		start: datetime,
		end: datetime,
		completed: Optional[bool] = None,
		limit: Optional[int] = None
	) -> List[Session]:
		"""
		Non-deleted sessions of a user starting in ``[start, end)``.

		Args:
			user_id: owner
			start: range start (UTC)
			end: range end (UTC)
			completed: filter on the completed flag; None returns both
			limit: keep at most this many, most recent first

		Returns:
			list[Session]: ordered by start time ascending
		"""
		pass

	@abstractmethod
	def find_overlapping(
		self,
		user_id: str,
		start: datetime,
		end: datetime,
		exclude_id: Optional[str] = None
	) -> List[Session]:
		"""
		Active (not deleted, not completed) sessions overlapping ``[start, end)``.

		Raises:
			TransientError: if the underlying read fails
		"""
		pass


class AvailabilityStore(ABC):
	"""Read interface over weekly availability."""

	@abstractmethod
	def get_weekly_availability(self, user_id: str) -> WeeklyAvailability:
		"""
		Weekly windows of a user, already validated.

		Returns an empty mapping when the user has no availability.
		"""
		pass


class InMemorySessionStore(SessionStore):
	def __init__(self, sessions: Iterable[Session] = ()):
		self._sessions: List[Session] = list(sessions)

	def add(self, session: Session) -> None:
		self._sessions.append(session)

	def list_sessions(self, user_id, start, end, completed=None, limit=None):
		matches = [
			s for s in self._sessions
			if s.user_id == user_id
			and not s.is_deleted
			and start <= s.start_time < end
			and (completed is None or s.completed == completed)
		]
		matches.sort(key=lambda s: (s.start_time, s.id))
		if limit is not None and len(matches) > limit:
			matches = matches[-limit:]
		return matches

	def find_overlapping(self, user_id, start, end, exclude_id=None):
		matches = [
			s for s in self._sessions
			if s.user_id == user_id
			and s.is_active
			and s.id != exclude_id
			and intervals_overlap(s.start_time, s.end_time, start, end)
		]
		matches.sort(key=lambda s: (s.start_time, s.id))
		return matches


class InMemoryAvailabilityStore(AvailabilityStore):
	def __init__(self, availability: Optional[Mapping[str, Mapping[Any, Any]]] = None):
		self._availability: Dict[str, WeeklyAvailability] = {
			user_id: parse_weekly_availability(raw)
			for user_id, raw in (availability or {}).items()
		}

	def set_availability(self, user_id: str, raw: Mapping[Any, Any]) -> None:
		self._availability[user_id] = parse_weekly_availability(raw)

	def get_weekly_availability(self, user_id):
		return dict(self._availability.get(user_id, {}))
