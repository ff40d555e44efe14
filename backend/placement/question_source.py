"""
Question sources for the placement test.

A question source turns a difficulty (1-9) into one multiple-choice item.
Two implementations exist:

- ``AIQuestionGenerator`` asks the text-generation service for a fresh item
  at the CEFR band of the requested difficulty and validates the payload.
- ``FallbackBank`` serves curated offline items and never fails.

``FallbackQuestionSource`` chains them: the AI generator is tried once and any
failure is recovered by drawing from the bank, so callers never see AI errors.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, model_validator

from .difficulty import difficulty_to_level
from .errors import ConfigurationError, ExternalServiceError
from .models import SkillTag
from .question_bank import FALLBACK_BANK

logger = logging.getLogger(__name__)


class Question(BaseModel):
    question: str
    options: List[str]
    correct_answer: str
    skill_tag: SkillTag
    level: str
    source: str

    @model_validator(mode="after")
    def _check_options(self) -> "Question":
        if not self.question.strip():
            raise ValueError("question text is empty")
        if len(self.options) < 2 or len(set(self.options)) != len(self.options):
            raise ValueError("options must contain at least two distinct strings")
        if self.correct_answer not in self.options:
            raise ValueError("correct_answer must be one of the options")
        return self


class QuestionSource(Protocol):
    async def generate(self, difficulty: int) -> Question:
        ...


class TextGenerator(Protocol):
    async def generate(self, prompt: str, *, json_output: bool = False) -> str:
        ...


def build_question_prompt(level: str) -> str:
    return f"""
Generate ONE English multiple-choice question for a placement test.
CEFR level: {level}.
Constraints:
- Four options, written out as full strings (not "A/B/C/D"), no duplicates.
- "correctAnswer" must be EXACTLY one of the strings in "options".
- Only one option may be correct; distractors must be clearly wrong.
- skillTag: "vocab" or "grammar".
Return STRICT JSON (no markdown, no commentary):
{{
  "question": "...",
  "options": ["...", "...", "...", "..."],
  "correctAnswer": "...",
  "skillTag": "vocab"
}}
""".strip()


def _extract_json_object(text: str) -> Dict[str, Any]:
    try:
        data = json.loads(text)
    except ValueError:
        data = None
    if data is None:
        code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text)
        if code_block:
            try:
                data = json.loads(code_block.group(1))
            except ValueError:
                data = None
    if data is None:
        first = text.find("{")
        last = text.rfind("}")
        if first != -1 and last > first:
            try:
                data = json.loads(text[first : last + 1])
            except ValueError:
                data = None
    if not isinstance(data, dict):
        raise ExternalServiceError("AI response is not a JSON object")
    return data


class AIQuestionGenerator:
    """Generates items with the text-generation service.

    Args:
        client: anything with ``async generate(prompt, json_output=...) -> str``,
            normally the shared ``GeminiClient``.
        timeout: seconds to wait for the service before giving up.
        strict_answers: reject payloads whose correctAnswer is not among the
            options. When False the first option is used instead.
    """

    source_name = "ai"

    def __init__(self, client: TextGenerator, *, timeout: float = 20.0, strict_answers: bool = False) -> None:
        self._client = client
        self._timeout = timeout
        self._strict_answers = strict_answers

    async def generate(self, difficulty: int) -> Question:
        level = difficulty_to_level(difficulty)
        prompt = build_question_prompt(level)
        try:
            raw = await asyncio.wait_for(self._client.generate(prompt, json_output=True), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalServiceError(f"AI generation timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise ExternalServiceError(f"AI generation failed: {exc}") from exc
        if not isinstance(raw, str) or not raw.strip():
            raise ExternalServiceError("AI returned an empty response")
        return self.parse(raw, level)

    def parse(self, raw: str, level: str) -> Question:
        data = _extract_json_object(raw)

        question_text = str(data.get("question") or "").strip()
        raw_options = data.get("options")
        options: List[str] = []
        if isinstance(raw_options, list):
            for opt in raw_options:
                value = str(opt).strip()
                if value and value not in options:
                    options.append(value)
        if not question_text:
            raise ExternalServiceError("AI payload has no question text")
        if len(options) < 2:
            raise ExternalServiceError("AI payload has fewer than two options")

        correct_answer = str(data.get("correctAnswer") or "").strip()
        if correct_answer not in options:
            if self._strict_answers:
                raise ExternalServiceError("AI correctAnswer is not one of the options")
            logger.warning(
                "AI correctAnswer %r not among options for %r; using first option",
                correct_answer,
                question_text,
            )
            correct_answer = options[0]

        skill_tag = SkillTag.GRAMMAR if data.get("skillTag") == "grammar" else SkillTag.VOCAB
        return Question(
            question=question_text,
            options=options,
            correct_answer=correct_answer,
            skill_tag=skill_tag,
            level=level,
            source=self.source_name,
        )


class FallbackBank:
    """Serves curated items from an immutable in-memory pool.

    Items are filtered by CEFR band; when no item matches the band the whole
    pool is used. Options are shuffled with ``random.Random.shuffle`` (Fisher-Yates)
    so the correct answer's position is uniform.
    """

    source_name = "bank"

    def __init__(self, entries: Sequence[Dict[str, Any]] = FALLBACK_BANK, *, rng: Optional[random.Random] = None) -> None:
        if not entries:
            raise ConfigurationError("Fallback question bank is empty")
        self._entries = tuple(entries)
        self._rng = rng or random.Random()

    async def generate(self, difficulty: int) -> Question:
        return self.pick(difficulty_to_level(difficulty))

    def pick(self, level: str) -> Question:
        pool = [e for e in self._entries if e["level"] == level] or list(self._entries)
        entry = self._rng.choice(pool)
        options = list(entry["options"])
        self._rng.shuffle(options)
        return Question(
            question=entry["question"],
            options=options,
            correct_answer=entry["correct_answer"],
            skill_tag=SkillTag(entry["skill_tag"]),
            level=entry["level"],
            source=self.source_name,
        )


class FallbackQuestionSource:
    """Tries ``primary`` once and falls back to ``fallback`` on any failure."""

    def __init__(self, primary: QuestionSource, fallback: FallbackBank) -> None:
        self.primary = primary
        self.fallback = fallback

    async def generate(self, difficulty: int) -> Question:
        try:
            return await self.primary.generate(difficulty)
        except Exception as exc:
            logger.warning("Question generation failed at difficulty %s, using fallback bank: %s", difficulty, exc)
            return await self.fallback.generate(difficulty)


def build_question_source(
    client: Optional[TextGenerator],
    *,
    timeout: float = 20.0,
    strict_answers: bool = False,
    rng: Optional[random.Random] = None,
) -> QuestionSource:
    bank = FallbackBank(rng=rng)
    if client is None:
        logger.info("AI question generation disabled; serving items from the fallback bank")
        return bank
    generator = AIQuestionGenerator(client, timeout=timeout, strict_answers=strict_answers)
    return FallbackQuestionSource(generator, bank)
