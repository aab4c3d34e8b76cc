"""Utility exports."""

from .helpers import (
    clean_string_list,
    generate_session_id,
    normalize_identity_text,
    parse_llm_json,
)
from .logger import get_logger

__all__ = [
    "get_logger",
    "clean_string_list",
    "generate_session_id",
    "normalize_identity_text",
    "parse_llm_json",
]
