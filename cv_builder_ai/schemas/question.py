"""Question items surfaced to the user during the gap-filling dialogue."""

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionItem(BaseModel):
    """One question generated by the LLM. Plain strings are accepted and wrapped."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True, str_strip_whitespace=True)

    id: str = Field(default="", description="Question id from the LLM (e.g. q1); may be empty")
    question: str = Field(..., min_length=1, description="Exact question text shown to the user")
    category: str = Field(default="", description="achievements|technical|leadership|growth|industry|typo_correction")
    hint: str = Field(default="", description="Guidance on what kind of answer helps most")
    is_multiple_choice: bool = Field(default=False, alias="isMultipleChoice")
    choices: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _from_text(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"question": data}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator("choices", mode="before")
    @classmethod
    def _clean_choices(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(c).strip() for c in v if c is not None and str(c).strip()]
        return v
