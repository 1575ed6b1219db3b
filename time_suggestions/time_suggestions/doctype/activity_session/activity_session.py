# Copyright (c) 2026, Time Suggestions and contributors
# For license information, please see license.txt

"""
Activity Session DocType

A scheduled work/activity block owned by a user. Completed sessions feed
pattern detection; active ones block their slot.
"""

import frappe
from frappe import _
from frappe.model.document import Document
from frappe.utils import get_datetime

from time_suggestions.time_suggestions.storage.doctype_stores import DocTypeSessionStore, to_utc
from time_suggestions.time_suggestions.suggestions.conflicts import ensure_no_conflicts
from time_suggestions.time_suggestions.suggestions.errors import ConflictError
from time_suggestions.time_suggestions.suggestions.models import SessionType


class ActivitySession(Document):
	"""
	Activity Session with schedule validation.

	Validations:
	- title and user required
	- session_type is a known type
	- start_time < end_time
	- priority between 1 and 5
	- no overlap with another active session of the same user
	"""

	def validate(self) -> None:
		self._validate_required()
		self._validate_session_type()
		self._validate_datetime_consistency()
		self._validate_priority()
		self._validate_no_conflicts()

	def _validate_required(self) -> None:
		if not self.user:
			frappe.throw(_("User is required"))
		if not (self.title or "").strip():
			frappe.throw(_("Title is required"))

	def _validate_session_type(self) -> None:
		try:
			SessionType(self.session_type)
		except ValueError:
			frappe.throw(_("Invalid session type: {0}").format(self.session_type))

	def _validate_datetime_consistency(self) -> None:
		if not self.start_time or not self.end_time:
			frappe.throw(_("Start Time and End Time are required"))

		if get_datetime(self.start_time) >= get_datetime(self.end_time):
			frappe.throw(_("Start Time must be before End Time"))

	def _validate_priority(self) -> None:
		if self.priority is None:
			self.priority = 3
		if not 1 <= int(self.priority) <= 5:
			frappe.throw(_("Priority must be between 1 and 5"))

	def _validate_no_conflicts(self) -> None:
		"""
		Block the save if another active session overlaps this one.

		Completed or deleted sessions do not block anything, so they skip
		the check.
		"""
		if self.completed or self.deleted_at:
			return

		try:
			ensure_no_conflicts(
				self.user,
				to_utc(self.start_time),
				to_utc(self.end_time),
				DocTypeSessionStore(),
				exclude_id=self.name if not self.is_new() else None,
			)
		except ConflictError as e:
			titles = e.context["titles"]
			frappe.throw(
				_("This session overlaps with {0} other session(s): {1}").format(len(titles), ", ".join(titles)),
				frappe.DuplicateEntryError
			)
