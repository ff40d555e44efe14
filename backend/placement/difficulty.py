from __future__ import annotations
import math
from typing import Dict, List, Optional


MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 9
SEED_DIFFICULTY = 5

# CEFR bands reachable by the placement test, lowest first
LEVELS: List[str] = ["A1", "A2", "B1", "B2", "C1"]

LEVEL_BY_DIFFICULTY: Dict[int, str] = {
	1: "A1",
	2: "A1",
	3: "A2",
	4: "A2",
	5: "B1",
	6: "B1",
	7: "B2",
	8: "B2",
	9: "C1",
}


def round_half_up(value: float) -> int:
	# Python's round() is banker's rounding; 5.5 must map to 6 here
	return int(math.floor(value + 0.5))


def clamp_difficulty(value: int) -> int:
	return min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, value))


def difficulty_to_level(difficulty: float) -> str:
	"""Map a (possibly fractional or out-of-range) difficulty to a CEFR label."""
	if math.isnan(difficulty):
		return LEVELS[0]
	value = min(MAX_DIFFICULTY, max(MIN_DIFFICULTY, difficulty))
	return LEVEL_BY_DIFFICULTY[round_half_up(value)]


def level_rank(level: str) -> int:
	return LEVELS.index(level)


def next_difficulty(previous: Optional[int], was_correct: Optional[bool], *, seed: int = SEED_DIFFICULTY) -> int:
	"""Step the difficulty one notch towards the learner's ability.

	With no previous item the seed is used. An item without a recorded
	answer keeps its difficulty.
	"""
	if previous is None:
		return clamp_difficulty(seed)
	if was_correct is None:
		return clamp_difficulty(previous)
	return clamp_difficulty(previous + (1 if was_correct else -1))
