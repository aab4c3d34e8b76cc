import asyncio
from typing import Any, Dict, List, Optional

import pytest

from cv_builder_ai.agents.session_agent import CvSessionAgent
from cv_builder_ai.errors import ExternalCallError
from cv_builder_ai.services.llm_service import LanguageModelService

CV_TEXT = (
    "JANE DOE\njane@example.com\n"
    "Backend Engineer at Acme, 2019 - Present. Built billing services in Python.\n"
    "BSc Computer Science, State University."
)

EXTRACTED = {
    "personal": {"name": "Jane Doe", "email": "jane@example.com"},
    "summary": "Backend engineer.",
    "experience": [{"position": "Backend Engineer", "company": "Acme", "startDate": "2019", "endDate": "Present"}],
    "education": [{"degree": "BSc Computer Science", "institution": "State University"}],
    "skills": ["Python"],
    "notes": "unknown keys are dropped",
}


class FakeLanguageModelService(LanguageModelService):
    """Deterministic stand-in for the OpenAI service. Question batches are served in order."""

    def __init__(
        self,
        extracted: Optional[Dict[str, Any]] = None,
        batches: Optional[List[List[Any]]] = None,
        finalized: Optional[Dict[str, Any]] = None,
        patches: Optional[Any] = None,
        scores: Optional[List[Any]] = None,
    ):
        self.extracted = extracted if extracted is not None else dict(EXTRACTED)
        self.batches = list(batches or [])
        self.finalized = finalized
        self.patches = patches if patches is not None else []
        self.scores = list(scores or [])
        self.fail_next: Optional[str] = None
        self.delay = 0.0
        self.calls: List[Dict[str, Any]] = []

    async def _maybe_fail(self, operation: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_next == operation:
            self.fail_next = None
            raise ExternalCallError(operation, "service unavailable")

    async def extract_record(self, cv_text, template):
        self.calls.append({"op": "extract", "text": cv_text})
        await self._maybe_fail("extract")
        return self.extracted

    async def generate_questions(self, record, asked, language, max_count, missing):
        self.calls.append({"op": "questions", "asked": list(asked), "max_count": max_count, "missing": missing})
        await self._maybe_fail("questions")
        return self.batches.pop(0) if self.batches else []

    async def score_record(self, record, language):
        self.calls.append({"op": "score", "record": record, "language": language})
        await self._maybe_fail("score")
        return self.scores.pop(0) if self.scores else {"overall": 90}

    async def finalize_record(self, record, language):
        self.calls.append({"op": "finalize", "record": record, "language": language})
        await self._maybe_fail("finalize")
        return self.finalized if self.finalized is not None else record

    async def propose_patches(self, record, question, answer):
        self.calls.append({"op": "patch", "question": question, "answer": answer})
        await self._maybe_fail("patch")
        return self.patches


@pytest.fixture
def fake_llm():
    return FakeLanguageModelService()


@pytest.fixture
def agent(fake_llm):
    return CvSessionAgent(fake_llm, question_cap=6, questions_per_round=3, timeout_seconds=1.0)
