"""
Test helpers shared by the engine tests.

Reference clock: Wednesday 2026-01-14 12:00 UTC.
"""

from datetime import datetime, timedelta

import pytz

from time_suggestions.time_suggestions.suggestions.models import Session, SessionType

USER = "user-1"
OTHER_USER = "user-2"

NOW = datetime(2026, 1, 14, 12, 0, tzinfo=pytz.UTC)

WEEKDAY_MORNINGS = {
	"MONDAY": [{"start_time": "07:00", "end_time": "09:00"}],
	"TUESDAY": [{"start_time": "07:00", "end_time": "09:00"}],
	"WEDNESDAY": [{"start_time": "07:00", "end_time": "09:00"}],
	"THURSDAY": [{"start_time": "07:00", "end_time": "09:00"}],
	"FRIDAY": [{"start_time": "07:00", "end_time": "09:00"}],
}

WEEKENDS = {
	"SATURDAY": [{"start_time": "10:00", "end_time": "14:00"}],
	"SUNDAY": [{"start_time": "10:00", "end_time": "14:00"}],
}


def utc(year, month, day, hour=0, minute=0):
	return datetime(year, month, day, hour, minute, tzinfo=pytz.UTC)


_counter = {"value": 0}


def make_session(
	start,
	minutes=60,
	type=SessionType.DEEP_WORK,
	title="Morning focus",
	priority=3,
	completed=True,
	user_id=USER,
	deleted=False,
	id=None,
):
	"""Build a Session; ids are unique per test run unless given."""
	if id is None:
		_counter["value"] += 1
		id = f"S-{_counter['value']:05d}"
	return Session(
		id=id,
		user_id=user_id,
		type=type,
		title=title,
		start_time=start,
		end_time=start + timedelta(minutes=minutes),
		priority=priority,
		completed=completed,
		deleted_at=start if deleted else None,
	)


def monday_deep_work_history():
	"""Three completed Deep Work sessions, Mondays 07:00 UTC."""
	return [
		make_session(utc(2025, 12, 29, 7), title="Morning focus"),
		make_session(utc(2026, 1, 5, 7), title="Morning focus"),
		make_session(utc(2026, 1, 12, 7), title="Morning focus"),
	]
