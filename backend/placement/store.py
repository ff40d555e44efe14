from __future__ import annotations
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import PersistenceError, StateError
from .models import Assessment, AssessmentItem, ItemStatus
from .question_source import Question


class AssessmentStore:
	"""Persistence operations used by the placement orchestrator.

	Every write commits immediately. Writes that race with another request
	are conditional, so a losing writer sees ``False`` or ``StateError``
	instead of overwriting the winner.
	"""

	def __init__(self, db: Session) -> None:
		self.db = db

	@contextmanager
	def _guard(self, action: str) -> Iterator[None]:
		try:
			yield
		except SQLAlchemyError as exc:
			self.db.rollback()
			raise PersistenceError(f"{action} failed: {exc}") from exc

	def create_assessment(self, user_id: str, total_questions: int) -> Assessment:
		with self._guard("create assessment"):
			row = Assessment(user_id=user_id, total_questions=total_questions)
			self.db.add(row)
			self.db.commit()
			self.db.refresh(row)
			return row

	def get_assessment(self, assessment_id: str) -> Optional[Assessment]:
		with self._guard("load assessment"):
			return self.db.get(Assessment, assessment_id)

	def count_answered(self, assessment_id: str) -> int:
		with self._guard("count answered items"):
			stmt = select(func.count(AssessmentItem.id)).where(
				AssessmentItem.assessment_id == assessment_id,
				AssessmentItem.status == ItemStatus.ANSWERED,
			)
			return int(self.db.execute(stmt).scalar_one())

	def last_item(self, assessment_id: str) -> Optional[AssessmentItem]:
		with self._guard("load last item"):
			stmt = (
				select(AssessmentItem)
				.where(AssessmentItem.assessment_id == assessment_id)
				.order_by(AssessmentItem.sequence.desc())
				.limit(1)
			)
			return self.db.execute(stmt).scalars().first()

	def list_items(self, assessment_id: str) -> List[AssessmentItem]:
		with self._guard("list items"):
			stmt = (
				select(AssessmentItem)
				.where(AssessmentItem.assessment_id == assessment_id)
				.order_by(AssessmentItem.sequence)
			)
			return list(self.db.execute(stmt).scalars().all())

	def create_item(self, assessment_id: str, sequence: int, question: Question, difficulty: int) -> AssessmentItem:
		row = AssessmentItem(
			assessment_id=assessment_id,
			sequence=sequence,
			question=question.question,
			options=list(question.options),
			correct_answer=question.correct_answer,
			difficulty=difficulty,
			skill_tag=question.skill_tag,
			status=ItemStatus.PENDING,
			source=question.source,
		)
		try:
			self.db.add(row)
			self.db.commit()
		except IntegrityError as exc:
			self.db.rollback()
			raise StateError(f"Item {sequence} already exists for this assessment") from exc
		except SQLAlchemyError as exc:
			self.db.rollback()
			raise PersistenceError(f"create item failed: {exc}") from exc
		with self._guard("reload item"):
			self.db.refresh(row)
		return row

	def record_answer(self, item_id: int, answer: str, is_correct: bool) -> bool:
		"""Answer a pending item. Returns False if it was no longer pending."""
		with self._guard("record answer"):
			stmt = (
				update(AssessmentItem)
				.where(AssessmentItem.id == item_id, AssessmentItem.status == ItemStatus.PENDING)
				.values(
					user_answer=answer,
					is_correct=is_correct,
					status=ItemStatus.ANSWERED,
					answered_at=datetime.utcnow(),
				)
				.execution_options(synchronize_session=False)
			)
			res = self.db.execute(stmt)
			self.db.commit()
			return res.rowcount == 1

	def finalize(self, assessment_id: str, final_score: int, final_level: str) -> bool:
		"""Store the result once. Returns False if the assessment was already finalized."""
		with self._guard("finalize assessment"):
			stmt = (
				update(Assessment)
				.where(Assessment.id == assessment_id, Assessment.final_score.is_(None))
				.values(final_score=final_score, final_level=final_level, completed_at=datetime.utcnow())
				.execution_options(synchronize_session=False)
			)
			res = self.db.execute(stmt)
			self.db.commit()
			return res.rowcount == 1

	def refresh(self, row) -> None:
		with self._guard("reload row"):
			self.db.refresh(row)
