"""
Shared utilities for the Time Suggestions API.

Rate limiting and request validators used by every endpoint.
"""

from .security import (
    check_rate_limit,
    get_client_ip,
    get_rate_limit_identity,
)
from .validators import (
    parse_json_list,
    validate_docname,
    validate_optional_int,
    validate_session_types,
    validate_time_ranges,
    validate_utc_datetime,
)

__all__ = [
    # Rate limiting
    "check_rate_limit",
    "get_client_ip",
    "get_rate_limit_identity",
    # Validators
    "parse_json_list",
    "validate_docname",
    "validate_optional_int",
    "validate_session_types",
    "validate_time_ranges",
    "validate_utc_datetime",
]
