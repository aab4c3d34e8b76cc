"""Validation boundary for CV record data coming from the LLM or the user.

Everything that becomes a CvRecord passes through ``validate_record``: legacy
shapes are normalized, unknown keys dropped, absent optionals defaulted, and
list items without identity fields rejected.
"""

from typing import Any, Dict, List, Mapping, Set, Tuple

from pydantic import ValidationError

from cv_builder_ai.errors import RecordValidationError
from cv_builder_ai.schemas.cv_record import LIST_SECTIONS, CvRecord, unique_by_identity
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)

# Sections reported as missing, in the order questions should target them
TRACKED_SECTIONS: Tuple[str, ...] = (
    "personal.name",
    "personal.email",
    "summary",
    "experience",
    "education",
    "skills",
    "certifications",
    "projects",
    "languages",
    "target.role",
)


def _error_paths(exc: ValidationError) -> List[str]:
    paths: List[str] = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        if path not in paths:
            paths.append(path)
    return paths


def _parse(raw: Any) -> CvRecord:
    if raw is None:
        return CvRecord()
    if isinstance(raw, CvRecord):
        return raw
    if not isinstance(raw, Mapping):
        raise RecordValidationError("CV record must be a JSON object", ["<root>"])
    try:
        return CvRecord.model_validate(dict(raw))
    except ValidationError as e:
        paths = _error_paths(e)
        logger.warning("CV record validation failed: %s", paths)
        raise RecordValidationError("Invalid CV record", paths) from e


def dedupe_sections(record: CvRecord) -> CvRecord:
    """Drop later list items that repeat an earlier identity key."""
    updates: Dict[str, Any] = {}
    for section in LIST_SECTIONS:
        items = getattr(record, section)
        unique = unique_by_identity(items)
        if len(unique) != len(items):
            updates[section] = unique
    return record.model_copy(update=updates) if updates else record


def validate_record(raw: Any) -> CvRecord:
    """
    Validate loosely typed record data and return a total CvRecord.
    Raises RecordValidationError (with failing field paths) for unrecoverable
    shape problems such as an experience entry without position or company.
    """
    return dedupe_sections(_parse(raw))


def validate_patch(raw: Any) -> Tuple[CvRecord, Set[str]]:
    """
    Validate a partial record. Returns the parsed record plus the set of
    top-level fields the patch actually supplied (absent fields are not edits).
    """
    record = _parse(raw)
    return record, set(record.model_fields_set)


def _is_empty(record: CvRecord, section: str) -> bool:
    obj: Any = record
    for part in section.split("."):
        obj = getattr(obj, part)
    if section == "skills":
        return not (obj.hard or obj.soft)
    return not obj


def missing_sections(record: CvRecord) -> List[str]:
    """Sections that are still empty, in TRACKED_SECTIONS order."""
    return [s for s in TRACKED_SECTIONS if _is_empty(record, s)]
