"""Session state for one in-progress CV assembly."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from cv_builder_ai.config import DEFAULT_LANGUAGE, MAX_IMPROVEMENT_ROUNDS, QUESTION_CAP
from cv_builder_ai.cv_pipeline.ledger import QuestionLedger
from cv_builder_ai.schemas.cv_record import CvRecord
from cv_builder_ai.schemas.question import QuestionItem
from cv_builder_ai.schemas.score import CvScore
from cv_builder_ai.utils.helpers import generate_session_id


class Stage(str, Enum):
    CREATED = "CREATED"
    EXTRACTED = "EXTRACTED"
    QUESTIONING = "QUESTIONING"
    AWAITING_ANSWER = "AWAITING_ANSWER"
    MERGED = "MERGED"
    FINALIZING = "FINALIZING"
    FINALIZED = "FINALIZED"
    FAILED = "FAILED"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RecordRevision(BaseModel):
    """A superseded record snapshot, kept for audit and diffing."""

    revision: int
    record: CvRecord
    reason: str = ""


class SessionState(BaseModel):
    """
    Everything the state machine needs between requests. Serializable with
    model_dump_json so any SessionStore can persist it.
    """

    session_id: str = Field(default_factory=generate_session_id)
    record: CvRecord = Field(default_factory=CvRecord)
    ledger: QuestionLedger = Field(default_factory=QuestionLedger)
    stage: Stage = Stage.CREATED
    revision: int = 0
    question_cap: int = QUESTION_CAP
    language: str = DEFAULT_LANGUAGE
    pending_questions: List[QuestionItem] = Field(default_factory=list)
    history: List[RecordRevision] = Field(default_factory=list)
    score: Optional[CvScore] = None
    improvement_round: int = 0
    max_improvement_rounds: int = MAX_IMPROVEMENT_ROUNDS
    failed_stage: Optional[Stage] = Field(default=None, description="Stage to resume from after a FAILED step")
    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @property
    def effective_stage(self) -> Stage:
        """The stage a retry resumes from: failed_stage while FAILED, else stage."""
        if self.stage == Stage.FAILED and self.failed_stage is not None:
            return self.failed_stage
        return self.stage

    def touch(self) -> None:
        self.updated_at = _now()
