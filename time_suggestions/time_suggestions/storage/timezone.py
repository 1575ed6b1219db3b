"""
User Timezone Resolution

Resolves a user's IANA timezone from the ``User`` DocType, falling back to
the system timezone. Lookups go through ``TimezoneCache``, a thin TTL cache
over ``frappe.cache`` (Redis) that is invalidated whenever a User is saved.
"""

import frappe
from frappe.utils import get_system_timezone
from typing import Optional

from time_suggestions.time_suggestions.suggestions.errors import NotFoundError
from time_suggestions.time_suggestions.suggestions.time_windows import is_valid_timezone

DEFAULT_TTL_SECONDS = 300


class TimezoneCache:
	"""
	TTL cache of user timezones.

	Keys are namespaced per user; entries expire after ``ttl`` seconds.
	"""

	def __init__(self, ttl: int = DEFAULT_TTL_SECONDS):
		self.ttl = ttl

	@staticmethod
	def key(user: str) -> str:
		return f"time_suggestions:timezone:{user}"

	def get(self, user: str) -> Optional[str]:
		return frappe.cache.get_value(self.key(user))

	def set(self, user: str, tz_name: str) -> None:
		frappe.cache.set_value(self.key(user), tz_name, expires_in_sec=self.ttl)

	def invalidate(self, user: str) -> None:
		frappe.cache.delete_value(self.key(user))


def get_user_timezone(user: str, cache: Optional[TimezoneCache] = None) -> str:
	"""
	IANA timezone of a user.

	Args:
		user: User name (email)
		cache: cache to consult; a default TimezoneCache when omitted

	Returns:
		str: the user's ``time_zone`` if set and valid, else the system timezone

	Raises:
		NotFoundError: if the user does not exist
	"""
	cache = cache or TimezoneCache()

	cached = cache.get(user)
	if cached:
		return cached

	if not frappe.db.exists("User", user):
		raise NotFoundError(f"User {user} not found", {"user": user})

	tz_name = frappe.db.get_value("User", user, "time_zone")
	if not is_valid_timezone(tz_name):
		if tz_name:
			frappe.logger("time_suggestions").warning(
				f"User {user} has invalid timezone {tz_name!r}; using system timezone"
			)
		tz_name = get_system_timezone()

	cache.set(user, tz_name)
	return tz_name


def on_user_update(doc, method=None) -> None:
	"""doc_events hook: drop the cached timezone when a User is saved."""
	TimezoneCache().invalidate(doc.name)
