"""Curated offline items used when the AI generator is unavailable.

Each entry carries the CEFR band it targets. Options are listed with the
correct answer first for readability; they are shuffled before being served.
"""

from __future__ import annotations
from typing import Any, Dict, Tuple


FALLBACK_BANK: Tuple[Dict[str, Any], ...] = (
	# A1
	{
		"level": "A1",
		"skill_tag": "vocab",
		"question": "Which word is a fruit?",
		"options": ["apple", "chair", "river", "shoe"],
		"correct_answer": "apple",
	},
	{
		"level": "A1",
		"skill_tag": "grammar",
		"question": "Choose the correct form: 'She ___ a student.'",
		"options": ["is", "am", "are", "be"],
		"correct_answer": "is",
	},
	{
		"level": "A1",
		"skill_tag": "grammar",
		"question": "Complete the sentence: 'There ___ two cats in the garden.'",
		"options": ["are", "is", "be", "am"],
		"correct_answer": "are",
	},
	# A2
	{
		"level": "A2",
		"skill_tag": "vocab",
		"question": "Where do you usually borrow books?",
		"options": ["a library", "a bakery", "a hospital", "a garage"],
		"correct_answer": "a library",
	},
	{
		"level": "A2",
		"skill_tag": "grammar",
		"question": "Choose the past tense: 'They ___ football yesterday.'",
		"options": ["played", "plays", "play", "playing"],
		"correct_answer": "played",
	},
	{
		"level": "A2",
		"skill_tag": "grammar",
		"question": "Fill in the gap: 'I have lived here ___ 2010.'",
		"options": ["since", "for", "from", "in"],
		"correct_answer": "since",
	},
	# B1
	{
		"level": "B1",
		"skill_tag": "vocab",
		"question": "A process that achieves a lot without wasting time or energy is ___.",
		"options": ["efficient", "expensive", "boring", "careless"],
		"correct_answer": "efficient",
	},
	{
		"level": "B1",
		"skill_tag": "grammar",
		"question": "Choose the correct conditional: 'If I ___ time, I will call you.'",
		"options": ["have", "had", "has", "having"],
		"correct_answer": "have",
	},
	{
		"level": "B1",
		"skill_tag": "vocab",
		"question": "Someone who changes easily to fit new situations is ___.",
		"options": ["adaptable", "stubborn", "forgetful", "fragile"],
		"correct_answer": "adaptable",
	},
	# B2
	{
		"level": "B2",
		"skill_tag": "vocab",
		"question": "A friend you can always trust to help is ___.",
		"options": ["reliable", "fragile", "untidy", "famous"],
		"correct_answer": "reliable",
	},
	{
		"level": "B2",
		"skill_tag": "grammar",
		"question": "Choose the correct passive: 'The report ___ by the manager last week.'",
		"options": ["was written", "wrote", "is write", "has write"],
		"correct_answer": "was written",
	},
	{
		"level": "B2",
		"skill_tag": "grammar",
		"question": "Complete the sentence: 'I wish I ___ harder for the exam.'",
		"options": ["had studied", "studied", "have studied", "would study"],
		"correct_answer": "had studied",
	},
	# C1
	{
		"level": "C1",
		"skill_tag": "vocab",
		"question": "Someone who pays great attention to every detail is ___.",
		"options": ["meticulous", "hasty", "shallow", "rude"],
		"correct_answer": "meticulous",
	},
	{
		"level": "C1",
		"skill_tag": "grammar",
		"question": "Choose the correct inversion: '___ had I arrived than it started to rain.'",
		"options": ["No sooner", "Hardly", "Rarely", "Seldom"],
		"correct_answer": "No sooner",
	},
	{
		"level": "C1",
		"skill_tag": "vocab",
		"question": "A remark that is brief but full of meaning is ___.",
		"options": ["succinct", "verbose", "ambiguous", "redundant"],
		"correct_answer": "succinct",
	},
)
