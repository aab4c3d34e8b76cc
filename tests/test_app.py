import asyncio
from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

from conftest import FakeLanguageModelService
from cv_builder_ai import config
from cv_builder_ai.agents.session_agent import CvSessionAgent
from cv_builder_ai.app import answer_key
from cv_builder_ai.schemas.session import Stage

APP_PATH = Path(__file__).resolve().parents[1] / "cv_builder_ai" / "app.py"


@pytest.fixture
def awaiting_session(monkeypatch):
    """Agent plus a session waiting on a two-question batch."""
    monkeypatch.setattr(config, "OPENAI_API_KEY", "test-key")
    fake = FakeLanguageModelService(batches=[["Q1", "Q2"]])
    agent = CvSessionAgent(fake)
    state = agent.start_session("en")
    agent.start_from_record(state, {"personal": {"name": "Jane Doe"}})
    asyncio.run(agent.next_questions(state))
    return agent, state


def _app(agent, state):
    at = AppTest.from_file(str(APP_PATH), default_timeout=10)
    at.session_state["agent"] = agent
    at.session_state["cv_session"] = state
    return at.run()


def _button(at, label):
    return next(b for b in at.button if b.label == label)


def test_submit_saves_every_answer_of_the_batch(awaiting_session):
    agent, state = awaiting_session
    rev = state.revision
    at = _app(agent, state)
    assert not at.exception

    at.text_area(key=answer_key(rev, 0)).input("answer one")
    at.text_area(key=answer_key(rev, 1)).input("answer two")
    _button(at, "Submit answers").click().run()

    assert not at.exception
    saved = at.session_state["cv_session"]
    assert [(u.question, u.answer) for u in saved.record.user_additions] == [
        ("Q1", "answer one"),
        ("Q2", "answer two"),
    ]
    assert saved.stage == Stage.MERGED


def test_blank_answers_are_skipped_not_saved(awaiting_session):
    agent, state = awaiting_session
    rev = state.revision
    at = _app(agent, state)

    at.text_area(key=answer_key(rev, 1)).input("only the second")
    _button(at, "Submit answers").click().run()

    saved = at.session_state["cv_session"]
    assert [(u.question, u.answer) for u in saved.record.user_additions] == [("Q2", "only the second")]
    assert saved.stage == Stage.MERGED
    assert "Q1" in saved.ledger
