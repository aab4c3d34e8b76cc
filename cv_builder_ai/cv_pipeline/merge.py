"""Merge engine: fold partial updates into a CV record without loss or duplication.

All functions are pure: they return a new CvRecord and never touch the base.

Per-field policy:
- personal, target: shallow overwrite by non-empty patch values (links unioned)
- summary: overwrite only with a non-empty value
- experience, education, certifications, projects, languages: union by
  identity key; first occurrence wins, so a patch item that matches an
  existing item is dropped rather than used to edit it
- skills.hard / skills.soft: case-insensitive set union, first spelling kept
- userAdditions: append-only
"""

from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict

from cv_builder_ai.cv_pipeline.record_model import validate_patch, validate_record
from cv_builder_ai.errors import RecordValidationError
from cv_builder_ai.schemas.cv_record import (
    FIELD_ALIASES,
    LIST_SECTIONS,
    OBJECT_SECTIONS,
    CvModel,
    CvRecord,
    Skills,
    unique_by_identity,
)
from cv_builder_ai.utils.helpers import clean_string_list
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)


class PathUpdate(BaseModel):
    """A single targeted change proposed by the LLM: dot path into the record plus a value."""

    model_config = ConfigDict(frozen=True)

    path: str
    value: Any = None

    def to_patch(self) -> Dict[str, Any]:
        """Normalize into the regular patch shape (see module docstring for policies)."""
        parts = [p.strip() for p in (self.path or "").split(".") if p.strip()]
        if not parts or len(parts) > 2:
            raise RecordValidationError("Unsupported patch path", [self.path])
        top = FIELD_ALIASES.get(parts[0], parts[0])
        if top not in CvRecord.model_fields:
            raise RecordValidationError("Unknown patch path", [self.path])

        if len(parts) == 1:
            value = self.value
            if top in LIST_SECTIONS or top == "user_additions":
                if isinstance(value, Mapping):
                    value = [value]
                elif not isinstance(value, list):
                    raise RecordValidationError("List section patch needs an object or array value", [self.path])
            elif top in OBJECT_SECTIONS and top != "skills" and not isinstance(value, Mapping):
                raise RecordValidationError("Object section patch needs an object value", [self.path])
            return {top: value}

        model = OBJECT_SECTIONS.get(top)
        if model is None:
            raise RecordValidationError("Only object sections accept nested paths", [self.path])
        sub = _field_name(model, parts[1])
        if sub is None:
            raise RecordValidationError("Unknown patch path", [self.path])
        return {top: {sub: self.value}}


def _field_name(model: type, name: str) -> Optional[str]:
    for field_name, info in model.model_fields.items():
        if name in (field_name, info.alias):
            return field_name
    return None


Patch = Union[Mapping[str, Any], CvRecord, PathUpdate]


def merge_strings(base: Sequence[str], patch: Sequence[str]) -> List[str]:
    """Trimmed, case-insensitive union; base order first, first spelling wins."""
    return clean_string_list([*base, *patch])


def merge_items(base: Sequence[Any], patch: Sequence[Any]) -> List[Any]:
    """Union two item lists by identity key, keeping base order then new patch items."""
    return unique_by_identity([*base, *patch])


def _overwrite_object(base: CvModel, patch: CvModel) -> CvModel:
    updates: Dict[str, Any] = {}
    for name in type(base).model_fields:
        new = getattr(patch, name)
        if not new:
            continue
        if isinstance(new, list):
            updates[name] = merge_strings(getattr(base, name), new)
        else:
            updates[name] = new
    return base.model_copy(update=updates) if updates else base


def merge(base: CvRecord, patch: Patch) -> CvRecord:
    """
    Merge a partial record (or a PathUpdate) into base and return the new record.
    Deterministic, no I/O. Destructive values (an empty summary over a filled one)
    are ignored rather than reported. Raises RecordValidationError only when the
    patch itself is malformed (e.g. list item without its identity fields).
    """
    if isinstance(patch, PathUpdate):
        patch = patch.to_patch()
    p, supplied = validate_patch(patch)

    updates: Dict[str, Any] = {}
    if "personal" in supplied:
        updates["personal"] = _overwrite_object(base.personal, p.personal)
    if "summary" in supplied and p.summary:
        updates["summary"] = p.summary
    for section in LIST_SECTIONS:
        if section in supplied:
            updates[section] = merge_items(getattr(base, section), getattr(p, section))
    if "skills" in supplied:
        updates["skills"] = Skills(
            hard=merge_strings(base.skills.hard, p.skills.hard),
            soft=merge_strings(base.skills.soft, p.skills.soft),
        )
    if "target" in supplied:
        updates["target"] = _overwrite_object(base.target, p.target)
    if "user_additions" in supplied:
        updates["user_additions"] = [*base.user_additions, *p.user_additions]

    if not updates:
        return base
    logger.debug("Merged patch fields: %s", sorted(updates))
    return base.model_copy(update=updates)


def apply_path_update(base: CvRecord, update: PathUpdate) -> CvRecord:
    """Apply one path-addressed update through the regular merge policies."""
    return merge(base, update)


def replace_section(base: CvRecord, section: str, value: Any) -> CvRecord:
    """
    Replace a whole top-level section (the path for editing existing items).
    The replacement is validated; an empty summary or name still never erases
    a filled one.
    """
    name = FIELD_ALIASES.get(section, section)
    if name not in CvRecord.model_fields:
        raise RecordValidationError("Unknown section", [section])
    wire = base.to_wire()
    wire[CvRecord.model_fields[name].alias or name] = value
    return keep_protected_fields(base, validate_record(wire))


def keep_protected_fields(base: CvRecord, candidate: CvRecord) -> CvRecord:
    """Carry summary and personal.name over from base when candidate lost them."""
    if not candidate.summary and base.summary:
        candidate = candidate.model_copy(update={"summary": base.summary})
    if not candidate.personal.name and base.personal.name:
        personal = candidate.personal.model_copy(update={"name": base.personal.name})
        candidate = candidate.model_copy(update={"personal": personal})
    return candidate


# ---------------------------------------------------------------------------
# Revision diffing
# ---------------------------------------------------------------------------

ChangeType = Literal["added", "removed", "modified"]


class FieldChange(BaseModel):
    """One flattened difference between two record revisions."""

    model_config = ConfigDict(frozen=True)

    path: str
    change: ChangeType
    old_value: Any = None
    new_value: Any = None


def _flatten(obj: Any, prefix: str = "") -> Dict[str, Any]:
    flat: Dict[str, Any] = {}
    if isinstance(obj, dict):
        for key, value in obj.items():
            flat.update(_flatten(value, f"{prefix}.{key}" if prefix else key))
    elif isinstance(obj, list) and any(isinstance(v, dict) for v in obj):
        for i, item in enumerate(obj):
            flat.update(_flatten(item, f"{prefix}[{i}]"))
    else:
        flat[prefix] = obj
    return flat


def _blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def diff_records(old: CvRecord, new: CvRecord) -> List[FieldChange]:
    """Field-level changes between two records, sorted by path."""
    old_flat = _flatten(old.to_wire())
    new_flat = _flatten(new.to_wire())
    changes: List[FieldChange] = []
    for path in sorted(set(old_flat) | set(new_flat)):
        before, after = old_flat.get(path), new_flat.get(path)
        if _blank(before) and _blank(after):
            continue
        if _blank(before):
            changes.append(FieldChange(path=path, change="added", new_value=after))
        elif _blank(after):
            changes.append(FieldChange(path=path, change="removed", old_value=before))
        elif before != after:
            changes.append(FieldChange(path=path, change="modified", old_value=before, new_value=after))
    return changes
