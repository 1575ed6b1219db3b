"""
Suggestion Errors

Closed set of error variants raised by the suggestion engine.
The API layer maps each variant to the matching Frappe exception.
"""

from typing import Any, Dict, Optional


class SuggestionError(Exception):
	"""Base class for every error raised by the suggestion engine."""

	http_status_code = 500

	def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
		super().__init__(message)
		self.message = message
		self.context = context or {}


class ValidationError(SuggestionError):
	"""Invalid input: bad timezone, out-of-range look-ahead, malformed interval."""

	http_status_code = 400


class NotFoundError(SuggestionError):
	"""Referenced user, session or availability record does not exist."""

	http_status_code = 404


class ConflictError(SuggestionError):
	"""Interval collides with an existing active session."""

	http_status_code = 409


class TransientError(SuggestionError):
	"""A collaborator failed in a way that may succeed on retry."""

	http_status_code = 503


class RequestCancelled(TransientError):
	"""The surrounding request was cancelled; no partial result is returned."""
