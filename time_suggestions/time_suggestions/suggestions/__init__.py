"""
Suggestion Engine Module

Framework-free core that proposes future session slots:
- Time window utilities (time_windows.py)
- Pattern detection over session history (patterns.py)
- Availability checking (availability.py)
- Conflict detection (conflicts.py)
- Candidate generation (candidates.py)
- Scoring (scoring.py)
- Diversity selection (selection.py)
- Orchestration (engine.py)
"""

from .config import DEFAULT_CONFIG, SuggestionConfig
from .conflicts import check_conflicts, check_conflicts_batch, ensure_no_conflicts
from .engine import suggest_time_slots
from .errors import (
	ConflictError,
	NotFoundError,
	RequestCancelled,
	SuggestionError,
	TransientError,
	ValidationError,
)
from .models import (
	DayOfWeek,
	LocalTimeRange,
	Pattern,
	Session,
	SessionType,
	Suggestion,
	SuggestionOptions,
	TimeRange,
)
from .patterns import detect_patterns

__all__ = [
	"DEFAULT_CONFIG",
	"SuggestionConfig",
	"check_conflicts",
	"check_conflicts_batch",
	"ensure_no_conflicts",
	"detect_patterns",
	"suggest_time_slots",
	"ConflictError",
	"NotFoundError",
	"RequestCancelled",
	"SuggestionError",
	"TransientError",
	"ValidationError",
	"DayOfWeek",
	"LocalTimeRange",
	"Pattern",
	"Session",
	"SessionType",
	"Suggestion",
	"SuggestionOptions",
	"TimeRange",
]
