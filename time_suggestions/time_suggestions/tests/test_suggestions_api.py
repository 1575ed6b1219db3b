"""
Tests for api/suggestions/endpoints.py

Tests whitelisted API endpoints against a Frappe site
(run with ``bench --site <site> run-tests --app time_suggestions``).
"""

import json
import unittest
from datetime import datetime, timedelta

try:
	import frappe
except ImportError:
	raise unittest.SkipTest("frappe is not installed; run with bench run-tests")

if not getattr(frappe.local, "site", None):
	raise unittest.SkipTest("no Frappe site is active; run with bench run-tests")

import pytz

from time_suggestions.api.suggestions import (
	check_conflicts,
	check_conflicts_batch,
	detect_patterns,
	suggest_time_slots,
)
from time_suggestions.time_suggestions.storage.doctype_stores import to_system_time
from time_suggestions.time_suggestions.suggestions.models import DayOfWeek

TEST_USER = "suggestions-api@example.com"


def iso(value):
	return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class TestSuggestionsAPI(unittest.TestCase):
	"""Tests for API endpoints."""

	def setUp(self):
		"""Set up test data before each test."""
		if not frappe.db.exists("User", TEST_USER):
			frappe.get_doc({
				"doctype": "User",
				"email": TEST_USER,
				"first_name": "Suggestions",
				"time_zone": "UTC",
				"send_welcome_email": 0,
			}).insert(ignore_permissions=True)

		if not frappe.db.exists("Weekly Availability", TEST_USER):
			frappe.get_doc({
				"doctype": "Weekly Availability",
				"user": TEST_USER,
				"windows": [
					{"day_of_week": day.value, "start_time": "06:00:00", "end_time": "22:00:00"}
					for day in DayOfWeek
				],
			}).insert(ignore_permissions=True)

		tomorrow = datetime.now(pytz.UTC).replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
		self.busy_start = tomorrow + timedelta(hours=10)
		self.busy_end = tomorrow + timedelta(hours=11)

		self.busy = frappe.get_doc({
			"doctype": "Activity Session",
			"user": TEST_USER,
			"title": "Planning",
			"session_type": "DEEP_WORK",
			"priority": 3,
			"start_time": to_system_time(self.busy_start),
			"end_time": to_system_time(self.busy_end),
		}).insert(ignore_permissions=True)

		for action in ("suggest_time_slots", "detect_patterns"):
			frappe.cache.delete_value(f"rate_limit:time_suggestions:{action}:user:{TEST_USER}")

		frappe.db.commit()
		frappe.set_user(TEST_USER)

	def tearDown(self):
		frappe.set_user("Administrator")
		frappe.db.delete("Activity Session", {"user": TEST_USER})
		frappe.db.commit()

	def test_check_conflicts_finds_overlap(self):
		result = check_conflicts(iso(self.busy_start + timedelta(minutes=30)), iso(self.busy_end + timedelta(hours=1)))

		self.assertEqual([c["name"] for c in result], [self.busy.name])
		self.assertEqual(result[0]["session_type"], "DEEP_WORK")

	def test_check_conflicts_touching_interval(self):
		self.assertEqual(check_conflicts(iso(self.busy_end), iso(self.busy_end + timedelta(hours=1))), [])

	def test_check_conflicts_exclude_id(self):
		self.assertEqual(check_conflicts(iso(self.busy_start), iso(self.busy_end), exclude_id=self.busy.name), [])

	def test_check_conflicts_invalid_input(self):
		with self.assertRaises(frappe.ValidationError):
			check_conflicts("tomorrow", iso(self.busy_end))
		with self.assertRaises(frappe.ValidationError):
			check_conflicts(iso(self.busy_end), iso(self.busy_start))

	def test_check_conflicts_requires_login(self):
		frappe.set_user("Guest")
		with self.assertRaises(frappe.PermissionError):
			check_conflicts(iso(self.busy_start), iso(self.busy_end))

	def test_check_conflicts_batch(self):
		ranges = json.dumps([
			{"start_time": iso(self.busy_start), "end_time": iso(self.busy_end)},
			{"start_time": iso(self.busy_end + timedelta(hours=2)), "end_time": iso(self.busy_end + timedelta(hours=3))},
		])
		result = check_conflicts_batch(ranges)

		self.assertEqual(sorted(result), ["0", "1"])
		self.assertEqual([c["name"] for c in result["0"]], [self.busy.name])
		self.assertEqual(result["1"], [])

	def test_suggest_time_slots_returns_defaults(self):
		"""Without history the user gets default suggestions."""
		result = suggest_time_slots()

		self.assertIsInstance(result, list)
		self.assertTrue(result)
		for suggestion in result:
			self.assertIn(suggestion["type"], ("DEEP_WORK", "WORKOUT", "LANGUAGE"))
			self.assertTrue(0 <= suggestion["score"] <= 100)
			self.assertTrue(suggestion["reasons"])

	def test_suggest_time_slots_filters(self):
		result = suggest_time_slots(look_ahead_days="7", preferred_types="WORKOUT")
		self.assertEqual({s["type"] for s in result}, {"WORKOUT"})

	def test_suggest_time_slots_invalid_options(self):
		with self.assertRaises(frappe.ValidationError):
			suggest_time_slots(look_ahead_days="45")
		with self.assertRaises(frappe.ValidationError):
			suggest_time_slots(preferred_types="NAP")
		with self.assertRaises(frappe.ValidationError):
			suggest_time_slots(min_priority="4", max_priority="2")

	def test_detect_patterns_returns_list(self):
		self.assertEqual(detect_patterns(), [])
