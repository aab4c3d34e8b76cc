"""Session agent: drives one CV assembly through extraction, questions and finalization.

Stages: CREATED -> EXTRACTED -> QUESTIONING -> AWAITING_ANSWER -> MERGED
(-> optional score -> QUESTIONING again) -> FINALIZING -> FINALIZED. A score below
threshold allows another improvement round until the round budget is spent.
Any failed LLM call or invalid LLM output moves the session to FAILED; the
last good record is kept and the same transition can be retried.

Callers must serialize requests per session id; the agent holds no per-session
state of its own.
"""

import asyncio
from typing import Any, Awaitable, Iterable, List, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import ValidationError

from cv_builder_ai.config import (
    CV_TEXT_MIN_CHARS,
    DEFAULT_LANGUAGE,
    HISTORY_LIMIT,
    LLM_TIMEOUT_SECONDS,
    MAX_IMPROVEMENT_ROUNDS,
    QUESTION_CAP,
    QUESTIONS_PER_ROUND,
    SCORE_THRESHOLD,
)
from cv_builder_ai.cv_pipeline.ledger import QuestionLedger
from cv_builder_ai.cv_pipeline.merge import (
    FieldChange,
    PathUpdate,
    diff_records,
    keep_protected_fields,
    merge,
    replace_section,
)
from cv_builder_ai.cv_pipeline.record_model import missing_sections, validate_record
from cv_builder_ai.errors import CvBuilderError, ExternalCallError, InvalidTransition, RecordValidationError
from cv_builder_ai.schemas.cv_record import CvRecord
from cv_builder_ai.schemas.question import QuestionItem
from cv_builder_ai.schemas.score import CvScore
from cv_builder_ai.schemas.session import RecordRevision, SessionState, Stage
from cv_builder_ai.services.llm_service import LanguageModelService
from cv_builder_ai.services.prompts import record_template
from cv_builder_ai.services.renderer import Renderer
from cv_builder_ai.services.session_store import SessionStore
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

AnswerPatch = Union[Mapping[str, Any], PathUpdate, Sequence[PathUpdate]]


class CvSessionAgent:
    """State machine over SessionState. The LLM service is injected, never global."""

    def __init__(
        self,
        llm_service: LanguageModelService,
        question_cap: int = QUESTION_CAP,
        questions_per_round: int = QUESTIONS_PER_ROUND,
        timeout_seconds: float = LLM_TIMEOUT_SECONDS,
        score_threshold: int = SCORE_THRESHOLD,
        max_improvement_rounds: int = MAX_IMPROVEMENT_ROUNDS,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self._llm = llm_service
        self._question_cap = question_cap
        self._per_round = max(1, questions_per_round)
        self._timeout = timeout_seconds
        self._score_threshold = score_threshold
        self._max_rounds = max_improvement_rounds
        self._history_limit = max(1, history_limit)

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require(state: SessionState, operation: str, *allowed: Stage) -> Stage:
        stage = state.effective_stage
        if stage not in allowed:
            raise InvalidTransition(operation, state.stage.value)
        return stage

    @staticmethod
    def _fail(state: SessionState, prior: Stage, exc: CvBuilderError) -> None:
        state.failed_stage = prior
        state.stage = Stage.FAILED
        state.last_error = str(exc)
        state.touch()
        logger.warning("Session %s failed in %s: %s", state.session_id, prior.value, exc)

    @staticmethod
    def _enter(state: SessionState, stage: Stage) -> None:
        state.stage = stage
        state.failed_stage = None
        state.last_error = None
        state.touch()

    async def _call(self, state: SessionState, prior: Stage, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as e:
            err = ExternalCallError(operation, f"timed out after {self._timeout}s")
            self._fail(state, prior, err)
            raise err from e
        except ExternalCallError as e:
            self._fail(state, prior, e)
            raise

    def _accept_record(self, state: SessionState, prior: Stage, raw: Any) -> CvRecord:
        try:
            return validate_record(raw)
        except RecordValidationError as e:
            self._fail(state, prior, e)
            raise

    def _commit(self, state: SessionState, record: CvRecord, reason: str) -> None:
        if state.revision > 0:
            state.history.append(RecordRevision(revision=state.revision, record=state.record, reason=reason))
            # oldest snapshots go first
            del state.history[: -self._history_limit]
        state.record = record
        state.revision += 1
        state.touch()

    # ------------------------------------------------------------------
    # CREATED -> EXTRACTED
    # ------------------------------------------------------------------

    def start_session(self, language: str = DEFAULT_LANGUAGE) -> SessionState:
        state = SessionState(
            language=language or DEFAULT_LANGUAGE,
            question_cap=self._question_cap,
            max_improvement_rounds=self._max_rounds,
        )
        logger.info("Session created: %s (language=%s)", state.session_id, state.language)
        return state

    async def extract(self, state: SessionState, cv_text: str) -> SessionState:
        """Extract a record from raw CV text and make it the working record."""
        prior = self._require(state, "extract", Stage.CREATED)
        if not cv_text or len(cv_text.strip()) < CV_TEXT_MIN_CHARS:
            raise RecordValidationError("CV text too short for extraction", ["cv_text"])
        raw = await self._call(state, prior, "extract", self._llm.extract_record(cv_text, record_template()))
        record = self._accept_record(state, prior, raw)
        state.ledger = QuestionLedger()
        state.pending_questions = []
        self._commit(state, record, "extract")
        self._enter(state, Stage.EXTRACTED)
        logger.info(
            "Session %s extracted: missing=%s",
            state.session_id,
            missing_sections(record),
        )
        return state

    def start_from_record(self, state: SessionState, raw: Any = None) -> SessionState:
        """Skip the upload: start from a user-supplied (possibly empty) record."""
        self._require(state, "start from record", Stage.CREATED)
        record = validate_record(raw)
        state.ledger = QuestionLedger()
        state.pending_questions = []
        self._commit(state, record, "manual")
        self._enter(state, Stage.EXTRACTED)
        return state

    # ------------------------------------------------------------------
    # EXTRACTED / MERGED -> QUESTIONING -> AWAITING_ANSWER (or FINALIZING)
    # ------------------------------------------------------------------

    @staticmethod
    def _fresh_questions(raw: Iterable[Any], ledger: QuestionLedger, limit: int) -> List[QuestionItem]:
        seen: set[str] = set()
        fresh: List[QuestionItem] = []
        for item in raw:
            try:
                q = QuestionItem.model_validate(item)
            except ValidationError:
                logger.warning("Dropping malformed question item: %r", item)
                continue
            if ledger.already_asked(q.question) or q.question in seen:
                logger.info("Dropping repeated question: %s", q.question)
                continue
            seen.add(q.question)
            fresh.append(q)
            if len(fresh) >= limit:
                break
        return fresh

    async def next_questions(self, state: SessionState) -> List[QuestionItem]:
        """
        Ask the LLM for the next batch. Every surfaced question is recorded in the
        ledger immediately. Asking again after a merged batch starts an
        improvement round. Returns [] and moves to FINALIZING when the cap or the
        round budget is reached, or nothing new comes back.
        """
        prior = self._require(state, "ask questions", Stage.EXTRACTED, Stage.MERGED, Stage.QUESTIONING)
        remaining = state.ledger.remaining(state.question_cap)
        if remaining == 0:
            logger.info("Session %s reached question cap (%s)", state.session_id, state.question_cap)
            self._enter(state, Stage.FINALIZING)
            return []
        improving = prior == Stage.MERGED
        if improving and state.improvement_round >= state.max_improvement_rounds:
            logger.info("Session %s used all %s improvement rounds", state.session_id, state.max_improvement_rounds)
            self._enter(state, Stage.FINALIZING)
            return []

        self._enter(state, Stage.QUESTIONING)
        limit = min(self._per_round, remaining)
        raw = await self._call(
            state,
            prior,
            "questions",
            self._llm.generate_questions(
                state.record.to_wire(),
                list(state.ledger.questions),
                state.language,
                limit,
                missing_sections(state.record),
            ),
        )
        if not isinstance(raw, list):
            err = ExternalCallError("questions", "expected a list of questions")
            self._fail(state, prior, err)
            raise err

        questions = self._fresh_questions(raw, state.ledger, limit)
        if not questions:
            logger.info("Session %s: no new questions, moving to finalization", state.session_id)
            self._enter(state, Stage.FINALIZING)
            return []

        for q in questions:
            state.ledger.record(q.question)
        state.pending_questions = questions
        if improving:
            state.improvement_round += 1
        self._enter(state, Stage.AWAITING_ANSWER)
        logger.info(
            "Session %s asked %s questions (%s/%s)",
            state.session_id,
            len(questions),
            len(state.ledger),
            state.question_cap,
        )
        return questions

    # ------------------------------------------------------------------
    # AWAITING_ANSWER -> MERGED
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_patch(record: CvRecord, patch: Optional[AnswerPatch], question: str) -> CvRecord:
        if patch is None:
            return record
        updates: List[Any] = list(patch) if isinstance(patch, (list, tuple)) else [patch]
        for update in updates:
            try:
                if isinstance(update, Mapping) and "path" in update:
                    update = PathUpdate(path=update["path"], value=update.get("value"))
                record = merge(record, update)
            except (RecordValidationError, ValidationError) as e:
                logger.warning("Skipping invalid patch for %r: %s", question, e)
        return record

    def answer(
        self,
        state: SessionState,
        question: Union[str, QuestionItem],
        answer: str,
        patch: Optional[AnswerPatch] = None,
    ) -> SessionState:
        """
        Record one answer. The raw (question, answer) pair always lands in
        userAdditions; the structured patch is applied only if it validates.
        Moves to MERGED once no questions of the batch are pending.
        """
        self._require(state, "answer", Stage.AWAITING_ANSWER)
        text = (question.question if isinstance(question, QuestionItem) else question or "").strip()
        if not text:
            raise RecordValidationError("Answer needs the question text", ["question"])
        if not state.ledger.already_asked(text):
            logger.warning("Session %s: answer for a question that was never asked: %s", state.session_id, text)

        record = merge(state.record, {"userAdditions": [{"question": text, "answer": answer or ""}]})
        record = self._apply_patch(record, patch, text)
        self._commit(state, record, f"answer: {text}")
        state.pending_questions = [q for q in state.pending_questions if q.question != text]
        if not state.pending_questions:
            self._enter(state, Stage.MERGED)
        return state

    async def answer_with_ai(
        self,
        state: SessionState,
        question: Union[str, QuestionItem],
        answer: str,
    ) -> SessionState:
        """
        Let the LLM turn the answer into path updates, then record it. A failed
        suggestion call never loses the answer: it is recorded without a patch.
        """
        self._require(state, "answer", Stage.AWAITING_ANSWER)
        text = question.question if isinstance(question, QuestionItem) else question
        patch: Optional[List[Any]] = None
        try:
            changes = await asyncio.wait_for(
                self._llm.propose_patches(state.record.to_wire(), text, answer),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, ExternalCallError) as e:
            logger.warning("Session %s: patch suggestion failed, keeping raw answer only: %s", state.session_id, e)
        else:
            if isinstance(changes, list):
                patch = changes
            else:
                logger.warning("Session %s: ignoring non-list patch suggestion: %r", state.session_id, changes)
        # Entries are validated one by one in _apply_patch; bad ones are skipped
        return self.answer(state, question, answer, patch)

    def skip_remaining(self, state: SessionState) -> SessionState:
        """Drop unanswered questions of the batch; they stay in the ledger."""
        self._require(state, "skip questions", Stage.AWAITING_ANSWER)
        state.pending_questions = []
        self._enter(state, Stage.MERGED)
        return state

    def edit_section(self, state: SessionState, section: str, value: Any) -> SessionState:
        """Replace a whole section (how existing items get edited)."""
        self._require(state, "edit", Stage.EXTRACTED, Stage.AWAITING_ANSWER, Stage.MERGED)
        record = replace_section(state.record, section, value)
        self._commit(state, record, f"edit: {section}")
        return state

    # ------------------------------------------------------------------
    # MERGED -> scored (another round, or FINALIZING)
    # ------------------------------------------------------------------

    def wants_improvement(self, state: SessionState) -> bool:
        """True while the last score is below threshold and rounds remain."""
        return (
            state.score is not None
            and state.improvement_round < state.max_improvement_rounds
            and state.score.needs_improvement(self._score_threshold)
        )

    async def score(self, state: SessionState) -> CvScore:
        """
        Score the current record. Below the threshold with rounds left, the stage
        stays put so next_questions can run another round; otherwise the session
        moves to FINALIZING.
        """
        prior = self._require(state, "score", Stage.EXTRACTED, Stage.MERGED)
        raw = await self._call(
            state,
            prior,
            "score",
            self._llm.score_record(state.record.to_wire(), state.language),
        )
        try:
            result = CvScore.model_validate(raw)
        except ValidationError as e:
            err = ExternalCallError("score", f"invalid score payload ({e.error_count()} errors)")
            self._fail(state, prior, err)
            raise err from e

        state.score = result
        if self.wants_improvement(state):
            self._enter(state, prior)
        else:
            self._enter(state, Stage.FINALIZING)
        logger.info(
            "Session %s scored %s (round %s/%s) -> %s",
            state.session_id,
            result.overall,
            state.improvement_round,
            state.max_improvement_rounds,
            state.stage.value,
        )
        return result

    # ------------------------------------------------------------------
    # -> FINALIZING -> FINALIZED
    # ------------------------------------------------------------------

    async def finalize(self, state: SessionState) -> CvRecord:
        """
        Rewrite the record in the target language. userAdditions are cleared only
        after the LLM output validates.
        """
        prior = self._require(
            state,
            "finalize",
            Stage.EXTRACTED,
            Stage.AWAITING_ANSWER,
            Stage.MERGED,
            Stage.FINALIZING,
        )
        self._enter(state, Stage.FINALIZING)
        raw = await self._call(
            state,
            prior,
            "finalize",
            self._llm.finalize_record(state.record.to_wire(), state.language),
        )
        record = self._accept_record(state, prior, raw)
        record = keep_protected_fields(state.record, record).model_copy(update={"user_additions": []})
        state.pending_questions = []
        self._commit(state, record, "finalize")
        self._enter(state, Stage.FINALIZED)
        logger.info("Session %s finalized at revision %s", state.session_id, state.revision)
        return record

    def render(self, state: SessionState, renderer: Renderer, template_id: str) -> bytes:
        self._require(state, "render", Stage.FINALIZED)
        try:
            return renderer.render(state.record, template_id)
        except Exception as e:
            logger.exception("Render failed for session %s", state.session_id)
            raise ExternalCallError("render", str(e)) from e

    # ------------------------------------------------------------------
    # inspection / cancellation
    # ------------------------------------------------------------------

    @staticmethod
    def missing(state: SessionState) -> List[str]:
        return missing_sections(state.record)

    @staticmethod
    def changes_since(state: SessionState, revision: int) -> List[FieldChange]:
        """Diff between an earlier revision and the current record."""
        if revision == state.revision:
            return []
        for snap in state.history:
            if snap.revision == revision:
                return diff_records(snap.record, state.record)
        raise RecordValidationError("Unknown revision", [str(revision)])

    @staticmethod
    def abandon(state: SessionState, store: Optional[SessionStore] = None) -> None:
        """Stop the session; only its own storage entry is removed."""
        if store is not None:
            store.delete(state.session_id)
        logger.info("Session %s abandoned in %s", state.session_id, state.stage.value)
