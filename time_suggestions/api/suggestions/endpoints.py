"""
Suggestion API Endpoints

Whitelisted functions for frontend/external use. All endpoints act on the
logged-in user (``frappe.session.user``); instants are exchanged as
ISO-8601 UTC strings.
"""

import frappe
from frappe import _
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

import pytz

from time_suggestions.api.shared import (
	check_rate_limit,
	validate_docname,
	validate_optional_int,
	validate_session_types,
	validate_time_ranges,
	validate_utc_datetime,
)
from time_suggestions.time_suggestions.storage.doctype_stores import (
	DocTypeAvailabilityStore,
	DocTypeSessionStore,
)
from time_suggestions.time_suggestions.storage.site_config import get_app_settings, get_suggestion_config
from time_suggestions.time_suggestions.storage.timezone import DEFAULT_TTL_SECONDS, TimezoneCache, get_user_timezone
from time_suggestions.time_suggestions.suggestions import conflicts as conflict_service
from time_suggestions.time_suggestions.suggestions import engine
from time_suggestions.time_suggestions.suggestions.errors import (
	ConflictError,
	NotFoundError,
	SuggestionError,
	TransientError,
	ValidationError,
)
from time_suggestions.time_suggestions.suggestions.models import Session, SuggestionOptions
from time_suggestions.time_suggestions.suggestions.patterns import detect_patterns as detect_patterns_for


# Engine error -> Frappe exception class
ERROR_MAP = (
	(ValidationError, frappe.ValidationError),
	(NotFoundError, frappe.DoesNotExistError),
	(ConflictError, frappe.DuplicateEntryError),
	(TransientError, frappe.QueryTimeoutError),
)


def throw_suggestion_error(error: SuggestionError) -> None:
	"""Re-raise an engine error as the matching Frappe exception."""
	for error_class, frappe_exc in ERROR_MAP:
		if isinstance(error, error_class):
			frappe.throw(_(error.message), frappe_exc)
	frappe.throw(_(error.message))


def _current_user() -> str:
	user = frappe.session.user
	if not user or user == "Guest":
		frappe.throw(_("Login required"), frappe.PermissionError)
	return user


def _user_timezone(user: str) -> str:
	ttl = get_app_settings().get("timezone_cache_ttl", DEFAULT_TTL_SECONDS)
	return get_user_timezone(user, cache=TimezoneCache(ttl=ttl))


def _rate_limit(action: str) -> None:
	settings = get_app_settings().get("rate_limit") or {}
	check_rate_limit(action, limit=settings.get("limit", 20), seconds=settings.get("seconds", 60))


def session_as_dict(session: Session) -> Dict[str, Any]:
	return {
		"name": session.id,
		"title": session.title,
		"session_type": session.type.value,
		"start_time": session.start_time.isoformat(),
		"end_time": session.end_time.isoformat(),
		"priority": session.priority,
		"completed": session.completed,
	}


@frappe.whitelist(methods=["GET"])
def suggest_time_slots(
	start_date: Optional[str] = None,
	look_ahead_days: Optional[str] = None,
	preferred_types: Optional[str] = None,
	min_priority: Optional[str] = None,
	max_priority: Optional[str] = None,
) -> List[Dict[str, Any]]:
	"""
	Suggest future time slots for the logged-in user.

	Rate limited per user (20 requests per minute by default).

	Args:
		start_date: ISO-8601 start of the look-ahead window (default: now)
		look_ahead_days: 1-30, default 14
		preferred_types: JSON list or comma-separated session types
		min_priority: 1-5
		max_priority: 1-5

	Returns:
		list[dict]: [
			{
				"title": "Morning focus",
				"type": "DEEP_WORK",
				"start_time": "2026-01-19T12:00:00+00:00",
				"end_time": "2026-01-19T13:00:00+00:00",
				"priority": 4,
				"score": 87,
				"reasons": ["Based on 3 previous Deep Work sessions", ...]
			},
			...
		]
	"""
	_rate_limit("suggest_time_slots")
	user = _current_user()

	options = SuggestionOptions(
		start_date=validate_utc_datetime(start_date, "start_date", required=False),
		look_ahead_days=validate_optional_int(look_ahead_days, "look_ahead_days"),
		preferred_types=validate_session_types(preferred_types),
		min_priority=validate_optional_int(min_priority, "min_priority"),
		max_priority=validate_optional_int(max_priority, "max_priority"),
	)

	try:
		suggestions = engine.suggest_time_slots(
			user,
			options,
			_user_timezone(user),
			DocTypeSessionStore(),
			DocTypeAvailabilityStore(),
			config=get_suggestion_config(),
		)
		return [s.as_dict() for s in suggestions]

	except SuggestionError as e:
		throw_suggestion_error(e)

	except frappe.ValidationError:
		raise

	except Exception as e:
		frappe.log_error(f"Error in suggest_time_slots for {user}: {str(e)}", "Time Suggestions API Error")
		frappe.throw(_("Could not generate suggestions. Please try again later."))


@frappe.whitelist(methods=["GET"])
def check_conflicts(start_time: str, end_time: str, exclude_id: Optional[str] = None) -> List[Dict[str, Any]]:
	"""
	Active sessions of the logged-in user overlapping an interval.

	Args:
		start_time: ISO-8601 interval start
		end_time: ISO-8601 interval end
		exclude_id: session to ignore (when editing it)

	Returns:
		list[dict]: conflicting sessions
	"""
	user = _current_user()
	start = validate_utc_datetime(start_time, "start_time")
	end = validate_utc_datetime(end_time, "end_time")
	exclude_id = validate_docname(exclude_id, "exclude_id")

	try:
		conflicts = conflict_service.check_conflicts(
			user, start, end, DocTypeSessionStore(), exclude_id=exclude_id
		)
		return [session_as_dict(s) for s in conflicts]

	except SuggestionError as e:
		throw_suggestion_error(e)

	except frappe.ValidationError:
		raise

	except Exception as e:
		frappe.log_error(f"Error in check_conflicts for {user}: {str(e)}", "Time Suggestions API Error")
		frappe.throw(_("Could not check conflicts. Please try again later."))


@frappe.whitelist(methods=["POST"])
def check_conflicts_batch(ranges: Any) -> Dict[str, List[Dict[str, Any]]]:
	"""
	Batched ``check_conflicts``.

	Args:
		ranges: JSON list of {"start_time", "end_time"} (at most 100)

	Returns:
		dict: {"0": [sessions...], "1": [], ...} keyed by range index
	"""
	user = _current_user()
	time_ranges = validate_time_ranges(ranges)

	try:
		results = conflict_service.check_conflicts_batch(
			user, time_ranges, DocTypeSessionStore(), config=get_suggestion_config()
		)
		return {
			str(index): [session_as_dict(s) for s in sessions]
			for index, sessions in sorted(results.items())
		}

	except SuggestionError as e:
		throw_suggestion_error(e)

	except frappe.ValidationError:
		raise

	except Exception as e:
		frappe.log_error(f"Error in check_conflicts_batch for {user}: {str(e)}", "Time Suggestions API Error")
		frappe.throw(_("Could not check conflicts. Please try again later."))


@frappe.whitelist(methods=["GET"])
def detect_patterns() -> List[Dict[str, Any]]:
	"""
	Recurring patterns in the logged-in user's completed sessions.

	Returns:
		list[dict]: [
			{
				"type": "DEEP_WORK",
				"label": "Deep Work",
				"day_of_week": "MONDAY",
				"hour": 7,
				"minute": 0,
				"duration_minutes": 60,
				"priority": 4,
				"frequency": 3,
				"success_rate": 1.0,
				"recency_weight": 0.93,
				"title": "Morning focus"
			},
			...
		]
	"""
	_rate_limit("detect_patterns")
	user = _current_user()

	try:
		config = get_suggestion_config()
		now = datetime.now(pytz.UTC)
		history = DocTypeSessionStore().list_sessions(
			user,
			now - timedelta(days=config.history_days),
			now,
			completed=True,
			limit=config.max_history_sessions,
		)
		patterns = detect_patterns_for(history, _user_timezone(user), now=now, config=config)
		return [
			{
				"type": p.type.value,
				"label": p.type.label,
				"day_of_week": p.day_of_week.value,
				"hour": p.hour,
				"minute": p.minute,
				"duration_minutes": p.duration_minutes,
				"priority": p.priority,
				"frequency": p.frequency,
				"success_rate": round(p.success_rate, 2),
				"recency_weight": round(p.recency_weight, 2),
				"title": p.title,
			}
			for p in patterns
		]

	except SuggestionError as e:
		throw_suggestion_error(e)

	except frappe.ValidationError:
		raise

	except Exception as e:
		frappe.log_error(f"Error in detect_patterns for {user}: {str(e)}", "Time Suggestions API Error")
		frappe.throw(_("Could not detect patterns. Please try again later."))
