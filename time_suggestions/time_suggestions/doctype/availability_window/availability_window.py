# Copyright (c) 2026, Time Suggestions and contributors
# For license information, please see license.txt

from frappe.model.document import Document


class AvailabilityWindow(Document):
	pass
