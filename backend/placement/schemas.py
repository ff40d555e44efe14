from __future__ import annotations
import enum
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SessionState(str, enum.Enum):
	NO_ITEMS = "no_items"
	PENDING = "pending"
	ANSWERED_INCOMPLETE = "answered_incomplete"
	COMPLETE = "complete"


class _CamelModel(BaseModel):
	# Wire format is camelCase (assessmentId, finalScore, ...)
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartResponse(_CamelModel):
	assessment_id: str


class NextRequest(_CamelModel):
	assessment_id: Optional[str] = None
	answer: Optional[str] = None
	# Item the answer is meant for; rejected if another item is pending by now
	item_id: Optional[int] = None


class PendingQuestion(_CamelModel):
	item_id: int
	question: str
	options: List[str]
	progress: int
	total: int
	done: Literal[False] = False


class PlacementResult(_CamelModel):
	done: Literal[True] = True
	final_score: int
	final_level: str


class AssessmentSummary(_CamelModel):
	assessment_id: str
	state: SessionState
	answered: int
	total: int
	final_score: Optional[int] = None
	final_level: Optional[str] = None
	created_at: datetime
	completed_at: Optional[datetime] = None
