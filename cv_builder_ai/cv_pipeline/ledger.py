"""Ledger of question texts already surfaced in a session."""

from typing import List

from pydantic import BaseModel, Field


class QuestionLedger(BaseModel):
    """
    Ordered record of asked questions. Membership is exact text after trimming,
    case-sensitive: questions come from the LLM in one fixed language, so folding
    case would only merge unrelated questions.
    """

    questions: List[str] = Field(default_factory=list)

    def already_asked(self, text: str) -> bool:
        return (text or "").strip() in self.questions

    def record(self, text: str) -> bool:
        """Add a question; returns False if it is empty or already in the ledger."""
        t = (text or "").strip()
        if not t or t in self.questions:
            return False
        self.questions.append(t)
        return True

    def remaining(self, cap: int) -> int:
        return max(0, cap - len(self.questions))

    def is_full(self, cap: int) -> bool:
        return len(self.questions) >= cap

    def __contains__(self, text: object) -> bool:
        return isinstance(text, str) and self.already_asked(text)

    def __len__(self) -> int:
        return len(self.questions)
