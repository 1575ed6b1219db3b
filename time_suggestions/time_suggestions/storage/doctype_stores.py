"""
DocType Stores

SessionStore and AvailabilityStore implementations reading the
``Activity Session`` and ``Weekly Availability`` DocTypes.

Frappe keeps Datetime fields as naive values in the system timezone;
everything crossing into the engine is converted to aware UTC here.
"""

import frappe
from frappe.utils import get_datetime, get_system_timezone
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz

from time_suggestions.time_suggestions.suggestions.availability import parse_weekly_availability
from time_suggestions.time_suggestions.suggestions.errors import TransientError, ValidationError
from time_suggestions.time_suggestions.suggestions.models import Session, SessionType, WeeklyAvailability
from time_suggestions.time_suggestions.suggestions.stores import AvailabilityStore, SessionStore
from time_suggestions.time_suggestions.suggestions.time_windows import MINUTES_PER_DAY, parse_time_of_day

SESSION_DOCTYPE = "Activity Session"
AVAILABILITY_DOCTYPE = "Weekly Availability"
WINDOW_DOCTYPE = "Availability Window"

SESSION_FIELDS = [
	"name",
	"user",
	"session_type",
	"title",
	"start_time",
	"end_time",
	"priority",
	"completed",
	"deleted_at",
]


def transient_db_errors() -> tuple:
	"""
	Read failures worth retrying: timeouts, deadlocks and lost connections.

	The driver exception classes hang off the live ``frappe.db`` connection.
	"""
	return (
		frappe.QueryTimeoutError,
		frappe.QueryDeadlockError,
		frappe.db.OperationalError,
		ConnectionError,
	)


def to_utc(value: Any) -> Optional[datetime]:
	"""Convert a stored Datetime (naive, system timezone) to aware UTC."""
	if not value:
		return None
	value = get_datetime(value)
	if value.tzinfo is None:
		value = pytz.timezone(get_system_timezone()).localize(value)
	return value.astimezone(pytz.UTC)


def to_system_time(value: datetime) -> datetime:
	"""Convert an aware instant to the naive system-timezone value Frappe stores."""
	return value.astimezone(pytz.timezone(get_system_timezone())).replace(tzinfo=None)


def row_to_session(row: Dict[str, Any]) -> Session:
	return Session(
		id=row["name"],
		user_id=row["user"],
		type=SessionType(row["session_type"]),
		title=row.get("title") or "",
		start_time=to_utc(row["start_time"]),
		end_time=to_utc(row["end_time"]),
		priority=int(row.get("priority") or 3),
		completed=bool(row.get("completed")),
		deleted_at=to_utc(row.get("deleted_at")),
	)


class DocTypeSessionStore(SessionStore):
	"""Sessions read through ``frappe.get_all``; soft-deleted rows are never returned."""

	def list_sessions(self, user_id, start, end, completed=None, limit=None):
		filters = [
			["user", "=", user_id],
			["deleted_at", "is", "not set"],
			["start_time", ">=", to_system_time(start)],
			["start_time", "<", to_system_time(end)],
		]
		if completed is not None:
			filters.append(["completed", "=", 1 if completed else 0])

		try:
			rows = frappe.get_all(
				SESSION_DOCTYPE,
				filters=filters,
				fields=SESSION_FIELDS,
				order_by="start_time desc",
				limit_page_length=limit or 0,
			)
		except transient_db_errors() as e:
			raise TransientError(f"Could not read sessions: {e}", {"user_id": user_id})

		sessions = [row_to_session(row) for row in rows]
		sessions.reverse()
		return sessions

	def find_overlapping(self, user_id, start, end, exclude_id=None):
		# Overlap: start_time < end AND end_time > start
		filters = [
			["user", "=", user_id],
			["deleted_at", "is", "not set"],
			["completed", "=", 0],
			["start_time", "<", to_system_time(end)],
			["end_time", ">", to_system_time(start)],
		]
		if exclude_id:
			filters.append(["name", "!=", exclude_id])

		try:
			rows = frappe.get_all(
				SESSION_DOCTYPE,
				filters=filters,
				fields=SESSION_FIELDS,
				order_by="start_time asc",
			)
		except transient_db_errors() as e:
			raise TransientError(f"Could not check conflicts: {e}", {"user_id": user_id})

		return [row_to_session(row) for row in rows]


def window_rows_to_raw(rows) -> Dict[str, List[Dict[str, Any]]]:
	"""
	Group Availability Window rows by day.

	Time fields cannot hold 24:00, so an end time of 00:00 means midnight at
	the end of the day.
	"""
	raw: Dict[str, List[Dict[str, Any]]] = {}
	for row in rows:
		end_time = row.get("end_time")
		if end_time is not None and parse_time_of_day(end_time) == 0:
			end_time = MINUTES_PER_DAY
		raw.setdefault(row.get("day_of_week"), []).append({
			"start_time": row.get("start_time"),
			"end_time": end_time,
		})
	return raw


class DocTypeAvailabilityStore(AvailabilityStore):
	"""
	Weekly availability from the user's ``Weekly Availability`` document.

	The document is named after the user; its ``windows`` child table holds
	one row per (day_of_week, start_time, end_time).
	"""

	def get_weekly_availability(self, user_id) -> WeeklyAvailability:
		if not frappe.db.exists(AVAILABILITY_DOCTYPE, user_id):
			return {}

		rows = frappe.get_all(
			WINDOW_DOCTYPE,
			filters={
				"parent": user_id,
				"parenttype": AVAILABILITY_DOCTYPE,
				"parentfield": "windows",
			},
			fields=["day_of_week", "start_time", "end_time"],
			order_by="idx asc",
		)

		try:
			return parse_weekly_availability(window_rows_to_raw(rows))
		except ValidationError as e:
			frappe.log_error(
				f"Invalid availability for user {user_id}: {e.message}",
				"Time Suggestions Availability"
			)
			raise
