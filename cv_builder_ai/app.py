"""
CV Builder – Streamlit frontend.
Upload or start empty, answer a few questions, download the finalized CV.
No business logic in layout; transitions live in CvSessionAgent.
"""

import asyncio
from typing import Any, Awaitable, List, Optional, TypeVar

import streamlit as st

from cv_builder_ai.agents.session_agent import CvSessionAgent
from cv_builder_ai.config import OPENAI_API_KEY, QUESTION_CAP, SUPPORTED_LANGUAGES
from cv_builder_ai.cv_pipeline.text_extractor import SUPPORTED_EXTENSIONS, extract_text_from_file
from cv_builder_ai.errors import CvBuilderError
from cv_builder_ai.schemas.question import QuestionItem
from cv_builder_ai.schemas.session import SessionState, Stage
from cv_builder_ai.services.llm_service import get_llm_service
from cv_builder_ai.services.renderer import JsonRenderer

T = TypeVar("T")

LANGUAGE_OPTIONS = list(SUPPORTED_LANGUAGES.keys())


def _run(coro: Awaitable[T]) -> T:
    """Run one agent coroutine on a fresh event loop (Streamlit reruns are sync)."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _agent() -> CvSessionAgent:
    if "agent" not in st.session_state:
        st.session_state["agent"] = CvSessionAgent(get_llm_service())
    return st.session_state["agent"]


def _state() -> Optional[SessionState]:
    return st.session_state.get("cv_session")


def answer_key(revision: int, index: int) -> str:
    """Widget key for the index-th answer of the batch shown at this revision."""
    return f"answer_{revision}_{index}"


def _set_error(message: Optional[str]) -> None:
    st.session_state["error"] = message


def _attempt(action: str, fn: Any, *args: Any) -> Any:
    """Call an agent operation, turning its errors into a page message."""
    try:
        result = fn(*args)
        if asyncio.iscoroutine(result):
            result = _run(result)
        _set_error(None)
        return result
    except CvBuilderError as e:
        _set_error(f"{action} failed: {e}")
        return None


def _render_start(agent: CvSessionAgent) -> None:
    st.subheader("1. Start")
    language = st.selectbox(
        "CV language",
        options=LANGUAGE_OPTIONS,
        format_func=lambda c: SUPPORTED_LANGUAGES[c],
        key="language",
    )
    uploaded = st.file_uploader(
        "Upload your current CV (optional)",
        type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS],
        key="cv_upload",
    )
    col1, col2 = st.columns(2)
    with col1:
        extract_clicked = st.button("Extract from upload", type="primary", disabled=uploaded is None)
    with col2:
        empty_clicked = st.button("Start without a CV")

    if extract_clicked and uploaded is not None:
        text = extract_text_from_file(uploaded.getvalue(), uploaded.name)
        if not text:
            _set_error("Could not read text from the uploaded file.")
            return
        state = agent.start_session(language)
        st.session_state["cv_session"] = state
        with st.spinner("Extracting your CV…"):
            _attempt("Extraction", agent.extract, state, text)
    elif empty_clicked:
        state = agent.start_session(language)
        st.session_state["cv_session"] = state
        _attempt("Start", agent.start_from_record, state, None)


def _render_record(state: SessionState) -> None:
    with st.expander(f"Current CV (revision {state.revision})", expanded=False):
        st.json(state.record.to_wire())
    missing = CvSessionAgent.missing(state)
    if missing:
        st.caption("Still empty: " + ", ".join(missing))


def _render_questions(agent: CvSessionAgent, state: SessionState) -> None:
    st.subheader("2. Questions")
    st.caption(f"Asked so far: {len(state.ledger)} / {state.question_cap}")
    pending: List[QuestionItem] = list(state.pending_questions)
    # Each saved answer commits a revision; widget keys stay fixed for the batch
    keys = [answer_key(state.revision, i) for i in range(len(pending))]

    if state.effective_stage == Stage.AWAITING_ANSWER and pending:
        for q, key in zip(pending, keys):
            st.markdown(f"**{q.question}**")
            if q.hint:
                st.caption(q.hint)
            if q.is_multiple_choice and q.choices:
                st.radio("Answer", options=q.choices, key=key)
            else:
                st.text_area("Answer", key=key, height=80)
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Submit answers", type="primary"):
                for q, key in zip(pending, keys):
                    answer = str(st.session_state.get(key) or "").strip()
                    if not answer:
                        continue
                    _attempt("Saving answer", agent.answer_with_ai, state, q, answer)
                if state.stage == Stage.AWAITING_ANSWER:
                    _attempt("Skipping", agent.skip_remaining, state)
                st.rerun()
        with col2:
            if st.button("Skip these questions"):
                _attempt("Skipping", agent.skip_remaining, state)
                st.rerun()
        return

    if state.score is not None:
        score = state.score
        st.metric("CV score", f"{score.overall} / 100")
        if score.suggestions:
            with st.expander("Suggestions"):
                for s in score.suggestions:
                    st.markdown(f"- {s}")
        if agent.wants_improvement(state):
            st.caption(f"Improvement round {state.improvement_round + 1} of {state.max_improvement_rounds} available.")

    if state.effective_stage in (Stage.EXTRACTED, Stage.MERGED, Stage.QUESTIONING):
        col1, col2 = st.columns(2)
        with col1:
            if st.button("Ask me questions", type="primary"):
                with st.spinner("Looking for gaps in your CV…"):
                    _attempt("Generating questions", agent.next_questions, state)
                st.rerun()
        with col2:
            if state.effective_stage != Stage.QUESTIONING and st.button("Score my CV"):
                with st.spinner("Scoring your CV…"):
                    _attempt("Scoring", agent.score, state)
                st.rerun()


def _render_finalize(agent: CvSessionAgent, state: SessionState) -> None:
    st.subheader("3. Finalize")
    if state.effective_stage in (Stage.EXTRACTED, Stage.MERGED, Stage.FINALIZING, Stage.AWAITING_ANSWER):
        if state.effective_stage == Stage.FINALIZING:
            st.info("No more questions. Finalize your CV when ready.")
        if st.button("Finalize CV", type="primary"):
            with st.spinner("Polishing your CV…"):
                _attempt("Finalization", agent.finalize, state)
            st.rerun()

    if state.stage == Stage.FINALIZED:
        st.success("Your CV is ready.")
        data = _attempt("Rendering", agent.render, state, JsonRenderer(), "json")
        if data:
            st.download_button(
                "Download CV (JSON)",
                data=data,
                file_name="cv.json",
                mime="application/json",
                key="download_cv",
            )


def render_layout() -> None:
    """Streamlit page layout; transitions go through CvSessionAgent."""
    st.set_page_config(page_title="CV Builder", layout="wide")
    st.title("CV Builder")
    st.markdown(f"*Upload a CV or start empty; answer up to {QUESTION_CAP} questions; download the result.*")
    st.divider()

    if "error" not in st.session_state:
        st.session_state["error"] = None

    if not OPENAI_API_KEY:
        st.error("OPENAI_API_KEY is not set. Add it to your .env file.")
        return

    agent = _agent()
    state = _state()

    if state is None or state.effective_stage == Stage.CREATED:
        _render_start(agent)
        state = _state()

    if st.session_state.get("error"):
        st.error(st.session_state["error"])

    if state is None or state.effective_stage == Stage.CREATED:
        st.info("Upload a CV and click **Extract**, or start without one.")
        return

    if state.stage == Stage.FAILED:
        st.warning("The last step failed. Your CV so far is kept; you can retry.")

    _render_record(state)
    st.divider()
    _render_questions(agent, state)
    st.divider()
    _render_finalize(agent, state)

    st.divider()
    if st.button("Start over"):
        CvSessionAgent.abandon(state)
        st.session_state.pop("cv_session", None)
        _set_error(None)
        st.rerun()


if __name__ == "__main__":
    render_layout()
