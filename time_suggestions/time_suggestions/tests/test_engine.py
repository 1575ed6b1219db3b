"""
Tests for suggestions/engine.py

End-to-end runs of suggest_time_slots over in-memory stores.
Reference clock: Wednesday 2026-01-14 12:00 UTC.
"""

import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytz

from time_suggestions.time_suggestions.suggestions.availability import check_availability
from time_suggestions.time_suggestions.suggestions.candidates import GenerationWindow, generate_pattern_candidates
from time_suggestions.time_suggestions.suggestions.config import DEFAULT_CONFIG
from time_suggestions.time_suggestions.suggestions.conflicts import check_conflicts
from time_suggestions.time_suggestions.suggestions.engine import suggest_time_slots
from time_suggestions.time_suggestions.suggestions.errors import RequestCancelled, TransientError, ValidationError
from time_suggestions.time_suggestions.suggestions.models import SessionType, SuggestionOptions
from time_suggestions.time_suggestions.suggestions.patterns import detect_patterns
from time_suggestions.time_suggestions.suggestions.scoring import DEFAULT_REASON, ScheduleContext
from time_suggestions.time_suggestions.suggestions.stores import InMemoryAvailabilityStore, InMemorySessionStore
from time_suggestions.time_suggestions.tests.utils import (
	NOW,
	USER,
	WEEKDAY_MORNINGS,
	WEEKENDS,
	make_session,
	monday_deep_work_history,
	utc,
)


class FailingSessionStore(InMemorySessionStore):
	def list_sessions(self, user_id, start, end, completed=None, limit=None):
		raise TransientError("database unavailable")


class DroppedConnectionStore(InMemorySessionStore):
	"""Loses the connection on the first conflict read only."""

	def __init__(self, sessions):
		super().__init__(sessions)
		self.conflict_reads = 0

	def find_overlapping(self, user_id, start, end, exclude_id=None):
		self.conflict_reads += 1
		if self.conflict_reads == 1:
			raise ConnectionError("lost connection")
		return super().find_overlapping(user_id, start, end, exclude_id=exclude_id)


class EngineTestCase(unittest.TestCase):

	def run_engine(self, sessions=(), availability=WEEKDAY_MORNINGS, options=None, timezone="UTC", now=NOW, **kwargs):
		self.session_store = InMemorySessionStore(sessions)
		self.availability_store = InMemoryAvailabilityStore({USER: availability} if availability else {})
		return suggest_time_slots(
			USER, options, timezone, self.session_store, self.availability_store, now=now, **kwargs
		)

	def assert_invariants(self, results, timezone="UTC", now=NOW, look_ahead_days=14):
		"""Properties every result list must hold."""
		weekly = self.availability_store.get_weekly_availability(USER)
		tz = pytz.timezone(timezone)
		per_day = {}
		per_type = {}

		self.assertLessEqual(len(results), 15)
		for i, suggestion in enumerate(results):
			self.assertGreaterEqual(suggestion.start_time, now)
			self.assertLess(suggestion.start_time, now + timedelta(days=look_ahead_days))
			self.assertLess(suggestion.start_time, suggestion.end_time)
			self.assertTrue(0 <= suggestion.score <= 100)
			self.assertTrue(suggestion.reasons)
			self.assertTrue(check_availability(suggestion.start_time, suggestion.end_time, weekly, timezone).valid)
			self.assertEqual(
				check_conflicts(USER, suggestion.start_time, suggestion.end_time, self.session_store), []
			)
			for other in results[:i]:
				self.assertGreaterEqual(abs(suggestion.start_time - other.start_time), timedelta(hours=2))
				self.assertFalse(
					suggestion.start_time < other.end_time and other.start_time < suggestion.end_time
				)
				self.assertGreaterEqual(other.score, suggestion.score)

			day = suggestion.start_time.astimezone(tz).date()
			per_day[day] = per_day.get(day, 0) + 1
			per_type[suggestion.type] = per_type.get(suggestion.type, 0) + 1

		self.assertTrue(all(count <= 2 for count in per_day.values()))
		self.assertTrue(all(count <= 3 for count in per_type.values()))


class TestPatternSuggestions(EngineTestCase):
	"""Runs where history yields patterns."""

	def test_weekly_habit(self):
		"""Three Monday 07:00 sessions suggest the next two Mondays at 07:00."""
		results = self.run_engine(monday_deep_work_history())

		self.assertEqual([s.start_time for s in results], [utc(2026, 1, 19, 7), utc(2026, 1, 26, 7)])
		first = results[0]
		self.assertEqual(first.type, SessionType.DEEP_WORK)
		self.assertEqual(first.title, "Morning focus")
		self.assertEqual(first.end_time, utc(2026, 1, 19, 8))
		self.assertEqual(first.priority, 3)
		self.assertEqual(first.score, 67)
		self.assertEqual(first.reasons, ("Based on 3 previous Deep Work sessions", "High completion rate"))
		self.assert_invariants(results)

	def test_conflicting_slot_removed(self):
		sessions = monday_deep_work_history() + [make_session(utc(2026, 1, 19, 7), completed=False)]
		results = self.run_engine(sessions)

		self.assertEqual([s.start_time for s in results], [utc(2026, 1, 26, 7)])
		self.assert_invariants(results)

	def test_close_habits_on_same_morning(self):
		"""Two priority-5 habits 30 minutes apart: the later slot is penalized and dropped."""
		deep_work = [make_session(s.start_time, priority=5) for s in monday_deep_work_history()]
		study = [
			make_session(utc(2025, 12, d, 7, 30), type=SessionType.STUDY, title="Exam prep", priority=5)
			for d in (15, 22, 29)
		]
		results = self.run_engine(deep_work + study, options=SuggestionOptions(look_ahead_days=7))

		self.assertEqual(len(results), 1)
		self.assertEqual(results[0].type, SessionType.DEEP_WORK)
		self.assertEqual(results[0].start_time, utc(2026, 1, 19, 7))
		self.assertEqual(results[0].score, 70)
		self.assertIn("High-priority habit", results[0].reasons)
		self.assert_invariants(results, look_ahead_days=7)

	def test_close_slot_scored_with_penalty(self):
		"""The later of two close slots carries the suggestion spacing penalty."""
		tz = pytz.UTC
		history = [make_session(s.start_time, priority=5) for s in monday_deep_work_history()]
		history += [
			make_session(utc(2025, 12, d, 7, 30), type=SessionType.STUDY, priority=5)
			for d in (15, 22, 29)
		]
		patterns = detect_patterns(history, "UTC", now=NOW)
		window = GenerationWindow(start=NOW, end=NOW + timedelta(days=7), now=NOW, tz=tz)
		weekly = InMemoryAvailabilityStore({USER: WEEKDAY_MORNINGS}).get_weekly_availability(USER)
		context = ScheduleContext([], tz, NOW, DEFAULT_CONFIG)
		candidates = generate_pattern_candidates(
			USER, patterns, window, weekly, InMemorySessionStore(), context
		)

		self.assertEqual([(c.type, c.score) for c in candidates], [(SessionType.DEEP_WORK, 70), (SessionType.STUDY, 30)])
		self.assertIn("Too close to another suggestion", candidates[1].reasons)

	def test_overlapping_habits_not_suggested_together(self):
		"""A 3 h habit blocks a habit starting 2.5 h later on the same morning."""
		deep_work = [make_session(s.start_time, minutes=180) for s in monday_deep_work_history()]
		study = [
			make_session(utc(2025, 12, d, 9, 30), type=SessionType.STUDY, title="Exam prep")
			for d in (15, 22, 29)
		]
		mornings = {"MONDAY": [{"start_time": "06:00", "end_time": "12:00"}]}
		results = self.run_engine(
			deep_work + study, availability=mornings, options=SuggestionOptions(look_ahead_days=7)
		)

		self.assertEqual([(s.type, s.start_time) for s in results], [(SessionType.DEEP_WORK, utc(2026, 1, 19, 7))])
		self.assertEqual(results[0].end_time, utc(2026, 1, 19, 10))
		self.assert_invariants(results, look_ahead_days=7)

	def test_start_date_moves_window(self):
		options = SuggestionOptions(start_date=utc(2026, 1, 20), look_ahead_days=7)
		results = self.run_engine(monday_deep_work_history(), options=options)
		self.assertEqual([s.start_time for s in results], [utc(2026, 1, 26, 7)])

	def test_daylight_saving_start(self):
		"""07:00 New York stays 07:00 local after clocks move forward."""
		tz = pytz.timezone("America/New_York")
		history = [
			make_session(tz.localize(datetime(2026, month, day, 7)).astimezone(pytz.UTC))
			for month, day in ((2, 23), (3, 2), (3, 9))
		]
		now = utc(2026, 3, 10, 12)
		results = self.run_engine(history, timezone="America/New_York", now=now)

		self.assertEqual([s.start_time for s in results], [utc(2026, 3, 16, 11), utc(2026, 3, 23, 11)])
		self.assert_invariants(results, timezone="America/New_York", now=now)

	def test_active_sessions_do_not_form_patterns(self):
		history = [make_session(s.start_time, completed=False) for s in monday_deep_work_history()]
		results = self.run_engine(history)
		self.assertTrue(all(DEFAULT_REASON in s.reasons for s in results))


class TestDefaultSuggestions(EngineTestCase):
	"""Runs that fall back to default suggestions."""

	def test_new_user(self):
		results = self.run_engine(availability=dict(WEEKDAY_MORNINGS, **WEEKENDS))

		self.assertEqual(
			[(s.type, s.start_time) for s in results],
			[
				(SessionType.DEEP_WORK, utc(2026, 1, 15, 7, 30)),
				(SessionType.WORKOUT, utc(2026, 1, 16, 7, 30)),
				(SessionType.LANGUAGE, utc(2026, 1, 17, 11, 30)),
			]
		)
		for suggestion in results:
			self.assertEqual(suggestion.score, 55)
			self.assertEqual(suggestion.reasons, (DEFAULT_REASON, "Available soon"))
			self.assertEqual(suggestion.priority, 3)
			self.assertEqual(suggestion.title, suggestion.type.label)
			self.assertEqual(suggestion.end_time - suggestion.start_time, timedelta(hours=1))
		self.assert_invariants(results)

	def test_pattern_outside_availability(self):
		"""A 06:00 habit cannot be placed in a 07:00-09:00 window."""
		history = [make_session(utc(2026, 1, d, 6)) for d in (5, 12)] + [make_session(utc(2025, 12, 29, 6))]
		results = self.run_engine(history)

		self.assertEqual(
			[(s.type, s.start_time, s.score) for s in results],
			[
				(SessionType.DEEP_WORK, utc(2026, 1, 15, 7, 30), 55),
				(SessionType.WORKOUT, utc(2026, 1, 16, 7, 30), 55),
				(SessionType.LANGUAGE, utc(2026, 1, 19, 7, 30), 50),
			]
		)
		self.assert_invariants(results)

	def test_defaults_skip_busy_window(self):
		history = monday_deep_work_history()
		blockers = [make_session(utc(2026, 1, d, 7), completed=False) for d in (19, 26)]
		afternoons = [make_session(utc(2026, 1, d, 15), completed=False) for d in (15, 16, 17, 18, 20, 21, 22, 23)]

		self.assertEqual(self.run_engine(history + blockers + afternoons), [])

		results = self.run_engine(history + blockers + afternoons[:-1])
		self.assertTrue(results)
		self.assertTrue(all(DEFAULT_REASON in s.reasons for s in results))
		self.assert_invariants(results)

	def test_preferred_types_filter_patterns_and_defaults(self):
		options = SuggestionOptions(preferred_types=[SessionType.WORKOUT])
		results = self.run_engine(monday_deep_work_history(), options=options)

		self.assertEqual([(s.type, s.start_time) for s in results], [(SessionType.WORKOUT, utc(2026, 1, 15, 7, 30))])

	def test_preferred_type_outside_default_set(self):
		options = SuggestionOptions(preferred_types=["READING"])
		results = self.run_engine(options=options)
		self.assertEqual([s.type for s in results], [SessionType.READING])

	def test_priority_filter(self):
		history = [make_session(s.start_time, priority=5) for s in monday_deep_work_history()]

		results = self.run_engine(history, options=SuggestionOptions(max_priority=3))
		self.assertTrue(results)
		self.assertTrue(all(DEFAULT_REASON in s.reasons and s.priority == 3 for s in results))

		results = self.run_engine(options=SuggestionOptions(min_priority=4))
		self.assertTrue(all(s.priority == 4 for s in results))

	def test_no_availability(self):
		self.assertEqual(self.run_engine(monday_deep_work_history(), availability=None), [])


class TestEngineBehaviour(EngineTestCase):

	def test_deterministic(self):
		sessions = monday_deep_work_history() + [make_session(utc(2026, 1, 16, 8), completed=False)]
		first = self.run_engine(sessions)
		second = self.run_engine(list(reversed(sessions)))
		self.assertEqual(first, second)

	def test_executor_gives_same_result(self):
		sessions = monday_deep_work_history()
		expected = self.run_engine(sessions)
		with ThreadPoolExecutor(max_workers=4) as executor:
			self.assertEqual(self.run_engine(sessions, executor=executor), expected)

		with ThreadPoolExecutor(max_workers=4) as executor:
			defaults = self.run_engine(availability=dict(WEEKDAY_MORNINGS, **WEEKENDS), executor=executor)
		self.assertEqual(len(defaults), 3)

	def test_cancelled_request(self):
		event = threading.Event()
		event.set()
		with self.assertRaises(RequestCancelled):
			self.run_engine(monday_deep_work_history(), cancel_event=event)

	def test_snapshot_failure_propagates(self):
		with self.assertRaises(TransientError):
			suggest_time_slots(
				USER, None, "UTC", FailingSessionStore(),
				InMemoryAvailabilityStore({USER: WEEKDAY_MORNINGS}), now=NOW
			)

	def test_failed_conflict_read_drops_only_that_slot(self):
		store = DroppedConnectionStore(monday_deep_work_history())
		results = suggest_time_slots(
			USER, None, "UTC", store, InMemoryAvailabilityStore({USER: WEEKDAY_MORNINGS}), now=NOW
		)

		self.assertEqual([s.start_time for s in results], [utc(2026, 1, 26, 7)])
		self.assertEqual(store.conflict_reads, 2)

	def test_suggestion_as_dict(self):
		payload = self.run_engine(monday_deep_work_history())[0].as_dict()
		self.assertEqual(payload["type"], "DEEP_WORK")
		self.assertEqual(payload["start_time"], "2026-01-19T07:00:00+00:00")
		self.assertEqual(payload["score"], 67)


class TestEngineValidation(EngineTestCase):

	def assert_invalid(self, options=None, **kwargs):
		with self.assertRaises(ValidationError):
			self.run_engine(options=options, **kwargs)

	def test_invalid_timezone(self):
		self.assert_invalid(timezone="Not/AZone")

	def test_missing_user(self):
		with self.assertRaises(ValidationError):
			suggest_time_slots("", None, "UTC", InMemorySessionStore(), InMemoryAvailabilityStore(), now=NOW)

	def test_look_ahead_bounds(self):
		for value in (0, 31, -1, True, "7"):
			self.assert_invalid(SuggestionOptions(look_ahead_days=value))
		self.assertIsInstance(self.run_engine(options=SuggestionOptions(look_ahead_days=30)), list)

	def test_start_date(self):
		self.assert_invalid(SuggestionOptions(start_date=datetime(2026, 1, 20)))
		self.assert_invalid(SuggestionOptions(start_date=utc(2026, 3, 1)))

	def test_preferred_types(self):
		self.assert_invalid(SuggestionOptions(preferred_types=["NAP"]))

	def test_priority_bounds(self):
		self.assert_invalid(SuggestionOptions(min_priority=0))
		self.assert_invalid(SuggestionOptions(max_priority=6))
		self.assert_invalid(SuggestionOptions(min_priority=4, max_priority=2))
