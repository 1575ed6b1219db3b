"""
Time Window Utilities

Wall-clock/UTC conversion and interval primitives used by every other
stage. All functions are pure.
"""

from datetime import date, datetime, time, timedelta
from typing import NamedTuple, Optional, Union

import pytz

from .errors import ValidationError
from .models import DayOfWeek, LocalTimeRange

MINUTES_PER_DAY = 24 * 60


class LocalMoment(NamedTuple):
	date: date
	day_of_week: DayOfWeek
	hour: int
	minute: int

	@property
	def minutes(self) -> int:
		return self.hour * 60 + self.minute


def get_timezone(tz_name: str) -> pytz.BaseTzInfo:
	"""
	Resolve an IANA timezone name.

	Raises:
		ValidationError: if the name is empty or unknown
	"""
	if not tz_name:
		raise ValidationError("Timezone is required")
	try:
		return pytz.timezone(tz_name)
	except pytz.UnknownTimeZoneError:
		raise ValidationError(f"Invalid timezone: {tz_name}", {"timezone": tz_name})


def is_valid_timezone(tz_name: str) -> bool:
	return bool(tz_name) and tz_name in pytz.all_timezones_set


def ensure_utc(value: datetime, field_name: str = "datetime") -> datetime:
	"""Return ``value`` as an aware UTC datetime; naive values are rejected."""
	if not isinstance(value, datetime):
		raise ValidationError(f"{field_name} must be a datetime")
	if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
		raise ValidationError(f"{field_name} must be timezone-aware")
	return value.astimezone(pytz.UTC)


def local_to_utc(
	local_date: date,
	hour: int,
	minute: int,
	tz: Union[str, pytz.BaseTzInfo]
) -> datetime:
	"""
	Convert a wall-clock time on a local calendar date to a UTC instant.

	Ambiguous times (the repeated hour when clocks go back) resolve to the
	first occurrence. Non-existent times (the skipped hour when clocks go
	forward) are shifted forward by the size of the gap.
	"""
	if isinstance(tz, str):
		tz = get_timezone(tz)

	naive = datetime.combine(local_date, time(hour, minute))
	try:
		localized = tz.localize(naive, is_dst=None)
	except pytz.AmbiguousTimeError:
		localized = tz.localize(naive, is_dst=True)
	except pytz.NonExistentTimeError:
		localized = tz.normalize(tz.localize(naive, is_dst=False))

	return localized.astimezone(pytz.UTC)


def utc_to_local(instant: datetime, tz: Union[str, pytz.BaseTzInfo]) -> LocalMoment:
	"""Convert a UTC instant to local date, weekday, hour and minute."""
	if isinstance(tz, str):
		tz = get_timezone(tz)

	local = ensure_utc(instant).astimezone(tz)
	return LocalMoment(
		date=local.date(),
		day_of_week=DayOfWeek.from_index(local.weekday()),
		hour=local.hour,
		minute=local.minute,
	)


def local_date(instant: datetime, tz: Union[str, pytz.BaseTzInfo]) -> date:
	return utc_to_local(instant, tz).date


def intervals_overlap(
	start1: datetime,
	end1: datetime,
	start2: datetime,
	end2: datetime
) -> bool:
	"""Half-open overlap test: ``[start1, end1)`` and ``[start2, end2)``."""
	return start1 < end2 and start2 < end1


def validate_interval(start: datetime, end: datetime, label: str = "interval") -> None:
	ensure_utc(start, f"{label} start")
	ensure_utc(end, f"{label} end")
	if end <= start:
		raise ValidationError(f"{label}: end time must be after start time")


def hours_between(earlier: datetime, later: datetime) -> float:
	return (later - earlier).total_seconds() / 3600.0


def parse_time_of_day(value: Union[str, time, timedelta, int]) -> int:
	"""
	Convert a time-of-day value to minutes since midnight.

	Accepts ``HH:MM`` / ``HH:MM:SS`` strings (``24:00`` allowed as end of
	day), ``datetime.time``, a ``timedelta`` since midnight (how MariaDB time
	columns come back) or an integer number of minutes.
	"""
	if isinstance(value, bool):
		raise ValidationError(f"Invalid time of day: {value!r}")
	if isinstance(value, int):
		minutes = value
	elif isinstance(value, time):
		minutes = value.hour * 60 + value.minute
	elif isinstance(value, timedelta):
		minutes = int(value.total_seconds() // 60)
	elif isinstance(value, str):
		parts = value.strip().split(":")
		if len(parts) == 3:
			# seconds may carry a fraction, e.g. "07:00:00.000000"
			parts[2] = parts[2].split(".")[0]
		if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
			raise ValidationError(f"Invalid time of day: {value!r}")
		hours, mins = int(parts[0]), int(parts[1])
		if mins > 59 or hours > 24 or (hours == 24 and mins != 0):
			raise ValidationError(f"Invalid time of day: {value!r}")
		minutes = hours * 60 + mins
	else:
		raise ValidationError(f"Invalid time of day: {value!r}")

	if minutes < 0 or minutes > MINUTES_PER_DAY:
		raise ValidationError(f"Invalid time of day: {value!r}")
	return minutes


def local_ranges_overlap(a: LocalTimeRange, b: LocalTimeRange) -> bool:
	"""True when the two ranges overlap or touch."""
	return a.start_minutes <= b.end_minutes and b.start_minutes <= a.end_minutes


def merge_local_ranges(a: LocalTimeRange, b: LocalTimeRange) -> Optional[LocalTimeRange]:
	"""
	Union of two overlapping or adjacent local ranges.

	Returns None when the ranges are disjoint.
	"""
	if not local_ranges_overlap(a, b):
		return None
	return LocalTimeRange(
		start_minutes=min(a.start_minutes, b.start_minutes),
		end_minutes=max(a.end_minutes, b.end_minutes),
	)


def next_date_for_weekday(start: date, day_of_week: DayOfWeek) -> date:
	"""First date on or after ``start`` falling on ``day_of_week``."""
	days_ahead = (day_of_week.index - start.weekday()) % 7
	return start + timedelta(days=days_ahead)


def round_to_interval(minutes: int, interval: int) -> int:
	"""Round minutes-since-midnight to the nearest multiple of ``interval`` (half up)."""
	return ((minutes + interval // 2) // interval) * interval
