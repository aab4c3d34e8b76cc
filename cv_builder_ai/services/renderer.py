"""Renderer boundary: finalized record -> document bytes."""

import json
from abc import ABC, abstractmethod

from cv_builder_ai.schemas.cv_record import CvRecord


class Renderer(ABC):
    @abstractmethod
    def render(self, record: CvRecord, template_id: str) -> bytes:
        """Render a finalized record with the given template."""
        ...


class JsonRenderer(Renderer):
    """Renders the wire-shaped record as UTF-8 JSON (templates: json, json-compact)."""

    TEMPLATES = ("json", "json-compact")

    def render(self, record: CvRecord, template_id: str = "json") -> bytes:
        if template_id not in self.TEMPLATES:
            raise ValueError(f"Unknown template: {template_id}")
        indent = None if template_id == "json-compact" else 2
        return json.dumps(record.to_wire(), ensure_ascii=False, indent=indent).encode("utf-8")
