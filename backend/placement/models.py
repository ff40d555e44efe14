from __future__ import annotations
import enum
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from .db import Base


class ItemStatus(str, enum.Enum):
	PENDING = "pending"
	ANSWERED = "answered"


class SkillTag(str, enum.Enum):
	VOCAB = "vocab"
	GRAMMAR = "grammar"


def _enum_column(enum_cls):
	return Enum(enum_cls, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e])


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	# jti of the issued access token
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Assessment(Base):
	__tablename__ = "assessments"
	id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
	user_id = Column(String(128), nullable=False, index=True)
	total_questions = Column(Integer, nullable=False)
	final_score = Column(Integer, nullable=True)
	final_level = Column(String(8), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	completed_at = Column(DateTime, nullable=True)

	items = relationship(
		"AssessmentItem",
		back_populates="assessment",
		order_by="AssessmentItem.sequence",
		lazy="select",
	)


class AssessmentItem(Base):
	__tablename__ = "assessment_items"
	# One row per (assessment, sequence); guards against two writers creating the same next item
	__table_args__ = (UniqueConstraint("assessment_id", "sequence", name="uq_assessment_item_sequence"),)

	id = Column(Integer, primary_key=True, autoincrement=True)
	assessment_id = Column(String(32), ForeignKey("assessments.id"), nullable=False, index=True)
	sequence = Column(Integer, nullable=False)
	question = Column(Text, nullable=False)
	options = Column(JSON, nullable=False)
	correct_answer = Column(Text, nullable=False)
	user_answer = Column(Text, nullable=True)
	is_correct = Column(Boolean, nullable=True)
	difficulty = Column(Integer, nullable=False)
	skill_tag = Column(_enum_column(SkillTag), nullable=False, default=SkillTag.VOCAB)
	status = Column(_enum_column(ItemStatus), nullable=False, default=ItemStatus.PENDING)
	# Which question source produced the item ("ai" or "bank")
	source = Column(String(16), nullable=False, default="bank")
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	answered_at = Column(DateTime, nullable=True)

	assessment = relationship("Assessment", back_populates="items")
