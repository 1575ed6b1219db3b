"""
Request Validators

Parse and validate raw endpoint arguments before they reach the engine.
Every failure raises frappe.ValidationError with a field-specific message.
"""

import json
import re
from datetime import datetime
from typing import Any, List, Optional

import frappe
import pytz
from frappe import _
from frappe.utils import cint, get_datetime

from time_suggestions.time_suggestions.suggestions.models import SessionType, TimeRange

ISO_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$")


def validate_utc_datetime(value: Any, field_name: str = "datetime", required: bool = True) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime into an aware UTC datetime.

    Values without an offset are read as UTC.

    Raises:
        frappe.ValidationError: If the value is missing or malformed
    """
    if value in (None, ""):
        if required:
            frappe.throw(_(f"{field_name} is required"), frappe.ValidationError)
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        value = str(value).strip()
        if not ISO_DATETIME_RE.match(value):
            frappe.throw(
                _(f"Invalid {field_name} format. Use ISO-8601, e.g. 2026-01-20T07:00:00Z"),
                frappe.ValidationError,
            )
        parsed = get_datetime(value.replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        parsed = pytz.UTC.localize(parsed)
    return parsed.astimezone(pytz.UTC)


def validate_optional_int(value: Any, field_name: str) -> Optional[int]:
    """Integer argument; query strings arrive as text."""
    if value in (None, ""):
        return None
    if isinstance(value, bool) or not re.match(r"^-?\d+$", str(value).strip()):
        frappe.throw(_(f"{field_name} must be an integer"), frappe.ValidationError)
    return cint(value)


def parse_json_list(value: Any, field_name: str) -> List[Any]:
    """Accept a list or its JSON encoding."""
    if value in (None, ""):
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            frappe.throw(_(f"{field_name} must be a JSON list"), frappe.ValidationError)
    if not isinstance(value, list):
        frappe.throw(_(f"{field_name} must be a list"), frappe.ValidationError)
    return value


def validate_session_types(value: Any, field_name: str = "preferred_types") -> Optional[List[SessionType]]:
    """
    List of session type names (JSON list or comma-separated string).

    Raises:
        frappe.ValidationError: If any name is not a known session type
    """
    if value in (None, "", []):
        return None

    if isinstance(value, str) and not value.strip().startswith("["):
        names = [v.strip() for v in value.split(",") if v.strip()]
    else:
        names = parse_json_list(value, field_name)

    types = []
    for name in names:
        try:
            types.append(SessionType(str(name).strip().upper()))
        except ValueError:
            frappe.throw(_(f"Invalid session type in {field_name}: {name}"), frappe.ValidationError)
    return types or None


def validate_time_ranges(value: Any, field_name: str = "ranges") -> List[TimeRange]:
    """
    List of {"start_time", "end_time"} objects.

    Raises:
        frappe.ValidationError: If a range is malformed
    """
    ranges = []
    for idx, item in enumerate(parse_json_list(value, field_name)):
        if not isinstance(item, dict):
            frappe.throw(_(f"{field_name}[{idx}] must be an object"), frappe.ValidationError)
        ranges.append(TimeRange(
            start_time=validate_utc_datetime(item.get("start_time"), f"{field_name}[{idx}].start_time"),
            end_time=validate_utc_datetime(item.get("end_time"), f"{field_name}[{idx}].end_time"),
        ))
    return ranges


def validate_docname(name: Any, field_name: str = "name") -> Optional[str]:
    """
    Validate an optional document name (ID).

    Raises:
        frappe.ValidationError: If name is too long or contains injection patterns
    """
    if not name:
        return None

    name = str(name).strip()
    if len(name) > 140:
        frappe.throw(_(f"{field_name} is too long"), frappe.ValidationError)

    dangerous_patterns = [r"<script", r"javascript:", r"--", r";"]
    for pattern in dangerous_patterns:
        if re.search(pattern, name, re.IGNORECASE):
            frappe.throw(_(f"Invalid {field_name}"), frappe.ValidationError)

    return name
