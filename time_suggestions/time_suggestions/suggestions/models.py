"""
Suggestion Models

Value objects shared by every stage of the suggestion engine.
All instants are timezone-aware UTC datetimes; wall-clock values
(hour and minute, or minutes since midnight) are read in the user's IANA
timezone.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class SessionType(str, Enum):
	DEEP_WORK = "DEEP_WORK"
	WORKOUT = "WORKOUT"
	LANGUAGE = "LANGUAGE"
	MEDITATION = "MEDITATION"
	CLIENT_MEETING = "CLIENT_MEETING"
	STUDY = "STUDY"
	READING = "READING"
	OTHER = "OTHER"

	@property
	def label(self) -> str:
		return SESSION_TYPE_LABELS[self]


SESSION_TYPE_LABELS = {
	SessionType.DEEP_WORK: "Deep Work",
	SessionType.WORKOUT: "Workout",
	SessionType.LANGUAGE: "Language",
	SessionType.MEDITATION: "Meditation",
	SessionType.CLIENT_MEETING: "Client Meeting",
	SessionType.STUDY: "Study",
	SessionType.READING: "Reading",
	SessionType.OTHER: "Other",
}


class DayOfWeek(str, Enum):
	"""Closed day-of-week enum; ``index`` follows ``date.weekday()`` (Monday = 0)."""

	MONDAY = "MONDAY"
	TUESDAY = "TUESDAY"
	WEDNESDAY = "WEDNESDAY"
	THURSDAY = "THURSDAY"
	FRIDAY = "FRIDAY"
	SATURDAY = "SATURDAY"
	SUNDAY = "SUNDAY"

	@property
	def index(self) -> int:
		return _DAY_ORDER.index(self)

	@classmethod
	def from_index(cls, weekday: int) -> "DayOfWeek":
		return _DAY_ORDER[weekday]


_DAY_ORDER = (
	DayOfWeek.MONDAY,
	DayOfWeek.TUESDAY,
	DayOfWeek.WEDNESDAY,
	DayOfWeek.THURSDAY,
	DayOfWeek.FRIDAY,
	DayOfWeek.SATURDAY,
	DayOfWeek.SUNDAY,
)


@dataclass(frozen=True)
class Session:
	"""A stored session as seen by the engine (read-only)."""

	id: str
	user_id: str
	type: SessionType
	title: str
	start_time: datetime
	end_time: datetime
	priority: int = 3
	completed: bool = False
	deleted_at: Optional[datetime] = None

	@property
	def is_deleted(self) -> bool:
		return self.deleted_at is not None

	@property
	def is_active(self) -> bool:
		"""Active sessions block their slot: not deleted and not completed."""
		return not self.is_deleted and not self.completed


@dataclass(frozen=True)
class TimeRange:
	"""Half-open UTC interval ``[start_time, end_time)``."""

	start_time: datetime
	end_time: datetime


@dataclass(frozen=True)
class LocalTimeRange:
	"""
	Local time-of-day range for one weekday.

	``end_minutes`` may be 1440 when the window runs until midnight.
	"""

	start_minutes: int
	end_minutes: int

	@property
	def duration_minutes(self) -> int:
		return self.end_minutes - self.start_minutes

	@property
	def midpoint_minutes(self) -> int:
		return self.start_minutes + self.duration_minutes // 2

	def contains(self, start_minutes: int, end_minutes: int) -> bool:
		return self.start_minutes <= start_minutes and end_minutes <= self.end_minutes


# DayOfWeek -> ordered, non-overlapping windows for that day
WeeklyAvailability = Dict[DayOfWeek, List[LocalTimeRange]]


@dataclass(frozen=True)
class Pattern:
	"""Recurring (type, weekday, time-of-day) cluster inferred from history."""

	type: SessionType
	day_of_week: DayOfWeek
	hour: int
	minute: int
	duration_minutes: int
	priority: int
	frequency: int
	success_rate: float
	recency_weight: float
	title: str


@dataclass
class SuggestionOptions:
	start_date: Optional[datetime] = None
	look_ahead_days: Optional[int] = None
	preferred_types: Optional[List[SessionType]] = None
	min_priority: Optional[int] = None
	max_priority: Optional[int] = None


@dataclass
class Candidate:
	"""A concrete slot under consideration, before selection."""

	type: SessionType
	title: str
	start_time: datetime
	end_time: datetime
	priority: int
	pattern: Optional[Pattern] = None
	score: int = 0
	reasons: List[str] = field(default_factory=list)

	@property
	def is_default(self) -> bool:
		return self.pattern is None

	def sort_key(self) -> Tuple[int, datetime, str]:
		return (-self.score, self.start_time, self.type.value)


@dataclass(frozen=True)
class Suggestion:
	"""Engine output; re-submitted by clients as a session creation request."""

	title: str
	type: SessionType
	start_time: datetime
	end_time: datetime
	priority: int
	score: int
	reasons: Tuple[str, ...]

	@classmethod
	def from_candidate(cls, candidate: Candidate) -> "Suggestion":
		return cls(
			title=candidate.title,
			type=candidate.type,
			start_time=candidate.start_time,
			end_time=candidate.end_time,
			priority=candidate.priority,
			score=candidate.score,
			reasons=tuple(candidate.reasons),
		)

	def as_dict(self) -> Dict[str, Any]:
		return {
			"title": self.title,
			"type": self.type.value,
			"start_time": self.start_time.isoformat(),
			"end_time": self.end_time.isoformat(),
			"priority": self.priority,
			"score": self.score,
			"reasons": list(self.reasons),
		}
