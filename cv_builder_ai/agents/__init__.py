"""Agent exports."""

from cv_builder_ai.agents.session_agent import CvSessionAgent

__all__ = ["CvSessionAgent"]
