"""
Selection Filter

Picks the final, diverse list out of the scored candidates.
"""

from collections import Counter
from datetime import date
from typing import Callable, Iterable, List

from .config import SuggestionConfig
from .models import Candidate
from .scoring import clashes


def select_candidates(
	candidates: Iterable[Candidate],
	config: SuggestionConfig,
	local_date_of: Callable[[Candidate], date]
) -> List[Candidate]:
	"""
	Greedy diversity selection.

	Args:
		candidates: scored candidates
		config: caps and spacing
		local_date_of: maps a candidate to its local calendar date

	Returns:
		list[Candidate]: at most ``max_suggestions``, best first

	Algorithm:
		1. Sort by score desc, then start time, then type
		2. Skip candidates over the per-day or per-type cap, starting
		   closer than the suggestion spacing to a selected one, or
		   overlapping a selected one
		3. Stop at the global cap
	"""
	per_day: Counter = Counter()
	per_type: Counter = Counter()
	selected: List[Candidate] = []

	for candidate in sorted(candidates, key=lambda c: c.sort_key()):
		if len(selected) >= config.max_suggestions:
			break

		day = local_date_of(candidate)
		if per_day[day] >= config.max_suggestions_per_day:
			continue
		if per_type[candidate.type] >= config.max_suggestions_per_type:
			continue
		if any(clashes(candidate, s, config.min_suggestion_spacing_hours) for s in selected):
			continue

		selected.append(candidate)
		per_day[day] += 1
		per_type[candidate.type] += 1

	return selected
