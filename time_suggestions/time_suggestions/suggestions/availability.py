"""
Availability Checking

Validates that a candidate UTC interval falls completely inside one of the
user's weekly availability windows, interpreted in the user's timezone.

Weekly availability is parsed and validated once, at the store boundary, by
``parse_weekly_availability``; the checker trusts its input.
"""

from datetime import datetime, timedelta
from typing import Any, Iterable, List, Mapping, NamedTuple, Optional, Union

import pytz

from .errors import ValidationError
from .models import DayOfWeek, LocalTimeRange, WeeklyAvailability
from .time_windows import MINUTES_PER_DAY, merge_local_ranges, parse_time_of_day, utc_to_local

NO_AVAILABILITY_REASON = "no availability for that day"
OUTSIDE_WINDOW_REASON = "outside availability window"
CROSSES_DAYS_REASON = "crosses days outside availability"


class AvailabilityResult(NamedTuple):
	valid: bool
	reason: Optional[str] = None


def _coerce_day(key: Union[str, DayOfWeek]) -> DayOfWeek:
	if isinstance(key, DayOfWeek):
		return key
	try:
		return DayOfWeek(str(key).strip().upper())
	except ValueError:
		raise ValidationError(f"Invalid day of week: {key!r}", {"day_of_week": key})


def _coerce_window(raw: Any) -> LocalTimeRange:
	if isinstance(raw, LocalTimeRange):
		window = raw
	elif isinstance(raw, Mapping):
		window = LocalTimeRange(
			start_minutes=parse_time_of_day(raw.get("start_time")),
			end_minutes=parse_time_of_day(raw.get("end_time")),
		)
	else:
		start, end = raw
		window = LocalTimeRange(parse_time_of_day(start), parse_time_of_day(end))

	if window.start_minutes >= window.end_minutes:
		raise ValidationError(
			"Availability window start must be before its end",
			{"start_minutes": window.start_minutes, "end_minutes": window.end_minutes}
		)
	return window


def normalize_windows(windows: Iterable[LocalTimeRange], day: Optional[DayOfWeek] = None) -> List[LocalTimeRange]:
	"""
	Sort one day's windows and merge the ones that touch.

	Raises:
		ValidationError: if two windows overlap
	"""
	merged: List[LocalTimeRange] = []
	for window in sorted(windows, key=lambda w: (w.start_minutes, w.end_minutes)):
		if merged and window.start_minutes < merged[-1].end_minutes:
			raise ValidationError(
				"Availability windows must not overlap",
				{"day_of_week": day.value if day else None}
			)
		if merged and window.start_minutes == merged[-1].end_minutes:
			merged[-1] = merge_local_ranges(merged[-1], window)
		else:
			merged.append(window)
	return merged


def parse_weekly_availability(raw: Optional[Mapping[Any, Iterable[Any]]]) -> WeeklyAvailability:
	"""
	Build a WeeklyAvailability map from loosely-typed data.

	Args:
		raw: {day_of_week: [{"start_time": "07:00", "end_time": "09:00"}, ...]}
			Day keys may be DayOfWeek members or names in any case; windows may
			be mappings, (start, end) pairs or LocalTimeRange values.

	Returns:
		dict: DayOfWeek -> sorted, non-overlapping windows. Days without
		windows are omitted.

	Raises:
		ValidationError: unknown day, malformed time, start >= end, overlap
	"""
	weekly: WeeklyAvailability = {}
	if not raw:
		return weekly

	collected = {}
	for key, windows in raw.items():
		day = _coerce_day(key)
		collected.setdefault(day, []).extend(_coerce_window(w) for w in windows or [])

	for day, windows in collected.items():
		normalized = normalize_windows(windows, day)
		if normalized:
			weekly[day] = normalized
	return weekly


def has_any_availability(weekly: WeeklyAvailability) -> bool:
	return any(weekly.get(day) for day in DayOfWeek)


def _contained(windows: Iterable[LocalTimeRange], start_minutes: int, end_minutes: int) -> bool:
	return any(w.contains(start_minutes, end_minutes) for w in windows)


def check_availability(
	start_time: datetime,
	end_time: datetime,
	weekly: WeeklyAvailability,
	tz: Union[str, pytz.BaseTzInfo]
) -> AvailabilityResult:
	"""
	Check a UTC interval against weekly availability.

	Args:
		start_time: candidate start (UTC)
		end_time: candidate end (UTC)
		weekly: parsed weekly availability
		tz: user timezone

	Returns:
		AvailabilityResult: (valid, reason); reason is None when valid

	Algorithm:
		1. Convert start and end to local date + minutes
		2. No windows on the start weekday -> invalid
		3. Same local day (or ending exactly at the next midnight, read as
		   24:00): require full containment in one window
		4. Crossing into the next day: require a start-day window reaching
		   24:00 and a next-day window starting at 00:00 that cover each part
		5. Anything longer is invalid
	"""
	start = utc_to_local(start_time, tz)
	end = utc_to_local(end_time, tz)

	day_windows = weekly.get(start.day_of_week) or []
	if not day_windows:
		return AvailabilityResult(False, NO_AVAILABILITY_REASON)

	next_day = start.date + timedelta(days=1)

	if end.date == start.date:
		end_minutes = end.minutes
	elif end.date == next_day and end.minutes == 0:
		end_minutes = MINUTES_PER_DAY
	elif end.date == next_day:
		next_windows = weekly.get(end.day_of_week) or []
		if (
			_contained(day_windows, start.minutes, MINUTES_PER_DAY)
			and _contained(next_windows, 0, end.minutes)
		):
			return AvailabilityResult(True)
		return AvailabilityResult(False, CROSSES_DAYS_REASON)
	else:
		return AvailabilityResult(False, CROSSES_DAYS_REASON)

	if _contained(day_windows, start.minutes, end_minutes):
		return AvailabilityResult(True)
	return AvailabilityResult(False, OUTSIDE_WINDOW_REASON)
