"""CV record pipeline: validation, merging, question ledger, upload text extraction."""

from cv_builder_ai.cv_pipeline.ledger import QuestionLedger
from cv_builder_ai.cv_pipeline.merge import (
    FieldChange,
    PathUpdate,
    apply_path_update,
    diff_records,
    keep_protected_fields,
    merge,
    replace_section,
)
from cv_builder_ai.cv_pipeline.record_model import missing_sections, validate_record
from cv_builder_ai.cv_pipeline.text_extractor import extract_text_from_file

__all__ = [
    "QuestionLedger",
    "FieldChange",
    "PathUpdate",
    "apply_path_update",
    "diff_records",
    "keep_protected_fields",
    "merge",
    "replace_section",
    "missing_sections",
    "validate_record",
    "extract_text_from_file",
]
