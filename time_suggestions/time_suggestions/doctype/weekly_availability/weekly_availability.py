# Copyright (c) 2026, Time Suggestions and contributors
# For license information, please see license.txt

"""
Weekly Availability DocType

Per-user weekly template of local time-of-day windows, one child row per
window. This is the boundary where availability shape is validated.
"""

import frappe
from frappe import _
from frappe.model.document import Document

from time_suggestions.time_suggestions.storage.doctype_stores import window_rows_to_raw
from time_suggestions.time_suggestions.suggestions.availability import parse_weekly_availability
from time_suggestions.time_suggestions.suggestions.errors import ValidationError


class WeeklyAvailability(Document):
	"""
	Weekly Availability with validation for windows.

	Validations:
	- user required
	- each window: day, start and end present
	- each window: start_time < end_time (00:00 as end means midnight)
	- no overlapping windows on the same day
	"""

	def validate(self) -> None:
		self._validate_user()
		self._validate_windows_present()
		self._validate_windows_shape()

	def _validate_user(self) -> None:
		if not self.user:
			frappe.throw(_("User is required"))

	def _validate_windows_present(self) -> None:
		for idx, window in enumerate(self.windows or [], 1):
			if not window.day_of_week:
				frappe.throw(_("Row {0}: Day of Week is required").format(idx))
			if not window.start_time:
				frappe.throw(_("Row {0}: Start Time is required").format(idx))
			if not window.end_time:
				frappe.throw(_("Row {0}: End Time is required").format(idx))

	def _validate_windows_shape(self) -> None:
		rows = [
			{"day_of_week": w.day_of_week, "start_time": w.start_time, "end_time": w.end_time}
			for w in self.windows or []
		]
		try:
			parse_weekly_availability(window_rows_to_raw(rows))
		except ValidationError as e:
			day = e.context.get("day_of_week")
			message = f"{day}: {e.message}" if day else e.message
			frappe.throw(_(message))

	def on_update(self) -> None:
		frappe.logger("time_suggestions").info(
			f"Weekly availability updated for {self.user} ({len(self.windows or [])} windows)"
		)
