"""Helper utilities for the CV builder."""

import base64
import json
import re
import secrets
from typing import Any, Iterable, List, Optional

from cv_builder_ai.config import SESSION_ID_LENGTH


def normalize_identity_text(value: Any) -> str:
    """Lower-case and trim a value for identity comparison (None -> "")."""
    if value is None:
        return ""
    return str(value).strip().lower()


def clean_string_list(values: Iterable[Any]) -> List[str]:
    """Trim strings, drop empties and duplicates (case-insensitive, first spelling wins)."""
    seen: set[str] = set()
    result: List[str] = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        key = s.lower()
        if s and key not in seen:
            seen.add(key)
            result.append(s)
    return result


def generate_session_id(length: int = SESSION_ID_LENGTH) -> str:
    """Random url-safe id; 22 chars is ~132 bits."""
    raw = secrets.token_bytes((length * 3 + 3) // 4)
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")[:length]


def parse_llm_json(text: str) -> Optional[Any]:
    """Parse JSON from LLM response, stripping markdown code blocks if present."""
    raw = (text or "").strip()
    if raw.startswith("```"):
        raw = re.sub(r"^```(?:json)?\s*", "", raw)
        raw = re.sub(r"\s*```$", "", raw)
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return None
