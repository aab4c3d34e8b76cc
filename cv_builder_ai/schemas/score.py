"""Recruiter-style CV score returned by the scoring call."""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cv_builder_ai.utils.helpers import clean_string_list


class CvScore(BaseModel):
    """Overall 0-100 score with feedback lists; drives the improvement loop."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    overall: int = Field(..., ge=0, le=100)
    breakdown: Dict[str, int] = Field(default_factory=dict)
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)

    @field_validator("overall", mode="before")
    @classmethod
    def _round_overall(cls, v: Any) -> Any:
        # Models sometimes answer 82.5 or "85"
        if isinstance(v, str):
            v = v.strip().rstrip("%")
            try:
                v = float(v)
            except ValueError:
                return v
        if isinstance(v, float):
            return round(v)
        return v

    @field_validator("strengths", "weaknesses", "suggestions", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        return clean_string_list(v) if isinstance(v, list) else v

    @field_validator("breakdown", mode="before")
    @classmethod
    def _numeric_breakdown(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): round(n) for k, n in v.items() if isinstance(n, (int, float)) and not isinstance(n, bool)}
        return v

    def needs_improvement(self, threshold: int) -> bool:
        return self.overall < threshold
