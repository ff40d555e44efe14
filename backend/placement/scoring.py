from __future__ import annotations
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel

from .difficulty import difficulty_to_level, round_half_up


class ScoredItem(Protocol):
	difficulty: int
	is_correct: Optional[bool]


class PlacementScore(BaseModel):
	final_score: int
	final_level: str
	correct: int
	answered: int


def score_items(items: Iterable[ScoredItem]) -> PlacementScore:
	"""Score a finished assessment.

	The score is the percentage of correct answers and the level is the band of
	the mean difficulty the learner was served, so the staircase position rather
	than raw accuracy decides placement.
	"""
	items = list(items)
	total = len(items)
	correct = sum(1 for i in items if i.is_correct)
	final_score = round_half_up(100 * correct / total) if total else 0
	avg_difficulty = sum(i.difficulty for i in items) / (total or 1)
	return PlacementScore(
		final_score=final_score,
		final_level=difficulty_to_level(round_half_up(avg_difficulty)),
		correct=correct,
		answered=total,
	)
