"""
Security Utilities

Per-user rate limiting for the suggestion endpoints, backed by
Frappe's cache (Redis).
"""

import frappe
from frappe import _
from frappe.utils import cint


def get_client_ip() -> str:
    """
    Get the real client IP address, handling proxies.

    Returns:
        str: Client IP address
    """
    if not getattr(frappe, "request", None):
        return "unknown"

    # X-Forwarded-For can contain multiple IPs, take the first one
    forwarded_for = frappe.request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = frappe.request.headers.get("X-Real-IP", "")
    if real_ip:
        return real_ip.strip()

    return frappe.request.remote_addr or "unknown"


def get_rate_limit_identity() -> str:
    """Logged-in users are limited per user; guests per IP."""
    user = frappe.session.user
    if user and user != "Guest":
        return f"user:{user}"
    return f"ip:{get_client_ip()}"


def check_rate_limit(action: str, limit: int = 10, seconds: int = 60) -> None:
    """
    Check rate limit for an action.

    Args:
        action: Identifier for the action being rate limited
        limit: Maximum number of requests allowed
        seconds: Time window in seconds

    Raises:
        frappe.TooManyRequestsError: If rate limit exceeded
    """
    identity = get_rate_limit_identity()
    cache_key = f"rate_limit:time_suggestions:{action}:{identity}"

    current = cint(frappe.cache.get_value(cache_key) or 0)

    if current >= limit:
        frappe.log_error(
            title=_("Rate Limit Exceeded"),
            message=f"Identity: {identity}, Action: {action}, Limit: {limit}/{seconds}s"
        )
        frappe.throw(
            _("Too many requests. Please wait a moment and try again."),
            frappe.TooManyRequestsError
        )

    frappe.cache.set_value(cache_key, current + 1, expires_in_sec=seconds)
