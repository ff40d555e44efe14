"""
Placement session orchestration.

``PlacementOrchestrator`` drives one assessment through its states:

    NO_ITEMS -> PENDING <-> ANSWERED_INCOMPLETE -> COMPLETE

``advance`` is the only transition entry point. Calls for the same assessment
are serialized by a per-assessment ``asyncio.Lock``; the store's conditional
writes cover writers in other processes.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Optional, Union

from .difficulty import SEED_DIFFICULTY, next_difficulty
from .errors import NotFoundError, StateError, ValidationError
from .models import Assessment, AssessmentItem, ItemStatus
from .question_source import QuestionSource
from .schemas import AssessmentSummary, PendingQuestion, PlacementResult, SessionState, StartResponse
from .scoring import score_items
from .store import AssessmentStore

logger = logging.getLogger(__name__)

TOTAL_QUESTIONS = 30


def session_state(last_item: Optional[AssessmentItem], answered: int, total: int) -> SessionState:
    if answered >= total:
        return SessionState.COMPLETE
    if last_item is None:
        return SessionState.NO_ITEMS
    if last_item.status == ItemStatus.PENDING:
        return SessionState.PENDING
    return SessionState.ANSWERED_INCOMPLETE


class PlacementOrchestrator:
    def __init__(
        self,
        question_source: QuestionSource,
        *,
        total_questions: int = TOTAL_QUESTIONS,
        seed_difficulty: int = SEED_DIFFICULTY,
    ) -> None:
        self.question_source = question_source
        self.total_questions = total_questions
        self.seed_difficulty = seed_difficulty
        # Locks disappear once no request holds or awaits them
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, assessment_id: str) -> asyncio.Lock:
        lock = self._locks.get(assessment_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[assessment_id] = lock
        return lock

    def start(self, store: AssessmentStore, user_id: str) -> StartResponse:
        assessment = store.create_assessment(user_id, self.total_questions)
        logger.info("Started assessment %s for %s", assessment.id, user_id)
        return StartResponse(assessment_id=assessment.id)

    async def advance(
        self,
        store: AssessmentStore,
        assessment_id: Optional[str],
        user_id: str,
        answer: Optional[str] = None,
        item_id: Optional[int] = None,
    ) -> Union[PendingQuestion, PlacementResult]:
        """Serve the pending question, record an answer, or finish the test.

        An empty answer string counts as no answer. When ``item_id`` is given
        the answer is only accepted if that item is still the pending one.
        """
        if not assessment_id or not assessment_id.strip():
            raise ValidationError("assessmentId is required")
        lock = self._lock_for(assessment_id)
        async with lock:
            return await self._advance(store, assessment_id, user_id, answer or None, item_id)

    async def _advance(
        self,
        store: AssessmentStore,
        assessment_id: str,
        user_id: str,
        answer: Optional[str],
        item_id: Optional[int],
    ) -> Union[PendingQuestion, PlacementResult]:
        assessment = self._load_owned(store, assessment_id, user_id)
        total = assessment.total_questions
        answered = store.count_answered(assessment_id)
        last = store.last_item(assessment_id)
        state = session_state(last, answered, total)

        if answer is None:
            if state is SessionState.PENDING:
                return self._pending(last, answered, total)
            if state is SessionState.COMPLETE:
                return self._finalize(store, assessment)
            previous_difficulty = last.difficulty if last is not None else None
            previous_correct = last.is_correct if last is not None else None
        else:
            if state is not SessionState.PENDING:
                raise StateError("No pending question to answer")
            if item_id is not None and item_id != last.id:
                raise StateError(f"Question {item_id} is not the pending question")
            is_correct = answer == last.correct_answer
            if not store.record_answer(last.id, answer, is_correct):
                raise StateError("No pending question to answer")
            answered += 1
            if answered >= total:
                return self._finalize(store, assessment)
            previous_difficulty = last.difficulty
            previous_correct = is_correct

        difficulty = next_difficulty(previous_difficulty, previous_correct, seed=self.seed_difficulty)
        question = await self.question_source.generate(difficulty)
        sequence = (last.sequence if last is not None else 0) + 1
        item = store.create_item(assessment_id, sequence, question, difficulty)
        logger.debug(
            "Assessment %s: item %s at difficulty %s (%s, %s)",
            assessment_id, sequence, difficulty, question.level, question.source,
        )
        return self._pending(item, answered, total)

    def describe(self, store: AssessmentStore, assessment_id: str, user_id: str) -> AssessmentSummary:
        assessment = self._load_owned(store, assessment_id, user_id)
        answered = store.count_answered(assessment_id)
        last = store.last_item(assessment_id)
        return AssessmentSummary(
            assessment_id=assessment.id,
            state=session_state(last, answered, assessment.total_questions),
            answered=answered,
            total=assessment.total_questions,
            final_score=assessment.final_score,
            final_level=assessment.final_level,
            created_at=assessment.created_at,
            completed_at=assessment.completed_at,
        )

    @staticmethod
    def _load_owned(store: AssessmentStore, assessment_id: str, user_id: str) -> Assessment:
        assessment = store.get_assessment(assessment_id)
        # Same error for foreign assessments so ids of other users don't leak
        if assessment is None or assessment.user_id != user_id:
            raise NotFoundError("Assessment not found")
        return assessment

    @staticmethod
    def _pending(item: AssessmentItem, answered: int, total: int) -> PendingQuestion:
        return PendingQuestion(
            item_id=item.id,
            question=item.question,
            options=list(item.options),
            progress=answered + 1,
            total=total,
        )

    @staticmethod
    def _finalize(store: AssessmentStore, assessment: Assessment) -> PlacementResult:
        if assessment.final_score is None:
            score = score_items(store.list_items(assessment.id))
            if store.finalize(assessment.id, score.final_score, score.final_level):
                logger.info(
                    "Assessment %s complete: %s/%s correct, score %s, level %s",
                    assessment.id, score.correct, score.answered, score.final_score, score.final_level,
                )
                return PlacementResult(final_score=score.final_score, final_level=score.final_level)
            store.refresh(assessment)
        return PlacementResult(final_score=assessment.final_score, final_level=assessment.final_level)
