"""Schema exports."""

from .cv_record import (
    Certification,
    CvRecord,
    EducationEntry,
    ExperienceEntry,
    Language,
    Personal,
    Project,
    Skills,
    Target,
    UserAddition,
)
from .question import QuestionItem
from .score import CvScore

__all__ = [
    "CvRecord",
    "Personal",
    "ExperienceEntry",
    "EducationEntry",
    "Skills",
    "Certification",
    "Project",
    "Language",
    "Target",
    "UserAddition",
    "QuestionItem",
    "CvScore",
]
