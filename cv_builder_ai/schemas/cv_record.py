"""Canonical CV record schema: sections, list items and their identity rules.

Wire names are camelCase (as produced by the LLM and consumed by renderers);
attributes are snake_case. Dump with ``by_alias=True`` for the wire shape.
Every model is frozen: a record is a value, merges build new records.
"""

from typing import Any, ClassVar, Dict, List, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cv_builder_ai.utils.helpers import clean_string_list, normalize_identity_text


def _scalarize(value: Any) -> Any:
    """Numbers from LLM output (e.g. gpa 3.8, year 2021) become strings."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class CvModel(BaseModel):
    """Base for all record parts: closed schema, trimmed strings, None -> default."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: _scalarize(v) for k, v in data.items() if v is not None}
        return data


class Personal(CvModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""
    headline: str = ""
    links: List[str] = Field(default_factory=list)

    @field_validator("links", mode="before")
    @classmethod
    def _clean_links(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        return clean_string_list(v) if isinstance(v, list) else v


class CvItem(CvModel):
    """A list-section entry identified by IDENTITY_FIELDS (case/whitespace-insensitive)."""

    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def identity_key(self) -> Tuple[str, ...]:
        return tuple(normalize_identity_text(getattr(self, f)) for f in self.IDENTITY_FIELDS)


def _text_list(v: Any) -> Any:
    if isinstance(v, str):
        v = [v]
    if isinstance(v, list):
        return [str(s).strip() for s in v if s is not None and str(s).strip()]
    return v


class ExperienceEntry(CvItem):
    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ("position", "company")

    position: str = Field(..., min_length=1)
    company: str = Field(..., min_length=1)
    location: str = ""
    start_date: str = Field(default="", alias="startDate")
    end_date: str = Field(default="", alias="endDate")
    description: str = ""
    achievements: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _legacy_fields(cls, data: Any) -> Any:
        # Older wizard payloads used title/start/end/bullets
        if isinstance(data, dict):
            data = dict(data)
            for old, new in (("title", "position"), ("start", "startDate"), ("end", "endDate"), ("bullets", "achievements")):
                if old in data and new not in data:
                    data[new] = data.pop(old)
        return data

    @field_validator("achievements", mode="before")
    @classmethod
    def _clean_achievements(cls, v: Any) -> Any:
        return _text_list(v)


class EducationEntry(CvItem):
    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ("degree", "institution")

    degree: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    location: str = ""
    start_date: str = Field(default="", alias="startDate")
    end_date: str = Field(default="", alias="endDate")
    gpa: str = ""


class Skills(CvModel):
    hard: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)

    @field_validator("hard", "soft", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, list):
            # legacy items shaped {name, category, level}
            v = [s.get("name") if isinstance(s, dict) else s for s in v]
            return clean_string_list(v)
        return v


class Certification(CvItem):
    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ("name",)

    name: str = Field(..., min_length=1)
    issuer: str = ""
    date: str = ""
    url: str = ""


class Project(CvItem):
    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ("name",)

    name: str = Field(..., min_length=1)
    summary: str = ""
    technologies: List[str] = Field(default_factory=list)
    link: str = ""

    @model_validator(mode="before")
    @classmethod
    def _legacy_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            if "description" in data and "summary" not in data:
                data["summary"] = data.pop("description")
            if "url" in data and "link" not in data:
                data["link"] = data.pop("url")
        return data

    @field_validator("technologies", mode="before")
    @classmethod
    def _clean_technologies(cls, v: Any) -> Any:
        return _text_list(v)


class Language(CvItem):
    IDENTITY_FIELDS: ClassVar[Tuple[str, ...]] = ("language",)

    language: str = Field(..., min_length=1)
    proficiency: str = ""


class Target(CvModel):
    role: str = ""
    seniority: str = ""
    sector: str = ""


class UserAddition(CvModel):
    """Raw question/answer pair kept as an audit trail until finalization."""

    question: str = Field(..., min_length=1)
    answer: str = ""


class CvRecord(CvModel):
    """The canonical résumé record. Always total: absent sections take their empty value."""

    personal: Personal = Field(default_factory=Personal)
    summary: str = ""
    experience: List[ExperienceEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    skills: Skills = Field(default_factory=Skills)
    certifications: List[Certification] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    languages: List[Language] = Field(default_factory=list)
    target: Target = Field(default_factory=Target)
    user_additions: List[UserAddition] = Field(default_factory=list, alias="userAdditions")

    @model_validator(mode="before")
    @classmethod
    def _legacy_shapes(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "personalInfo" in data and "personal" not in data:
            data["personal"] = data.pop("personalInfo")
        if "certificates" in data and "certifications" not in data:
            data["certifications"] = data.pop("certificates")
        for section in ("experience", "education", "certifications", "projects", "languages", "userAdditions"):
            if isinstance(data.get(section), list):
                data[section] = [item for item in data[section] if item is not None]
        certs = data.get("certifications")
        if isinstance(certs, list):
            data["certifications"] = [{"name": c} if isinstance(c, str) else c for c in certs]
        skills = data.get("skills")
        if isinstance(skills, (list, str)):
            data["skills"] = {"hard": skills, "soft": []}
        return data

    def to_wire(self) -> Dict[str, Any]:
        """camelCase dict for LLM prompts and renderers."""
        return self.model_dump(by_alias=True, mode="json")


# list section name -> item model
LIST_SECTIONS: Dict[str, Type[CvItem]] = {
    "experience": ExperienceEntry,
    "education": EducationEntry,
    "certifications": Certification,
    "projects": Project,
    "languages": Language,
}

IDENTITY_KEYS: Dict[str, Tuple[str, ...]] = {name: model.IDENTITY_FIELDS for name, model in LIST_SECTIONS.items()}

OBJECT_SECTIONS: Dict[str, Type[CvModel]] = {
    "personal": Personal,
    "skills": Skills,
    "target": Target,
}

# Wire name -> attribute name for top-level fields
FIELD_ALIASES: Dict[str, str] = {
    "userAdditions": "user_additions",
    "personalInfo": "personal",
    "certificates": "certifications",
}

ItemT = TypeVar("ItemT", bound=CvItem)


def unique_by_identity(items: Sequence[ItemT]) -> List[ItemT]:
    """Keep the first occurrence of each identity key, preserving order."""
    seen: set[Tuple[str, ...]] = set()
    result: List[ItemT] = []
    for item in items:
        key = item.identity_key()
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result
