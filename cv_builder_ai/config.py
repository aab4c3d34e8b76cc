"""Configuration loaded from environment variables."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env: try package dir then project root
_base = Path(__file__).resolve().parent
for _env_path in (_base / ".env", _base.parent / ".env"):
    if load_dotenv(_env_path):
        break
load_dotenv()  # also allow process env

# API keys – never hardcode
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
MODEL_NAME: str = os.getenv("MODEL_NAME", "gpt-4o-mini")
# Finalization rewrites every string in the record; use the stronger model
FINALIZE_MODEL_NAME: str = os.getenv("FINALIZE_MODEL_NAME", "gpt-4o")

# LLM call settings
LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
LLM_MAX_RETRIES: int = int(os.getenv("LLM_MAX_RETRIES", "2"))
LLM_TEMPERATURE: float = 0.1

# Question loop limits
QUESTIONS_PER_ROUND: int = int(os.getenv("QUESTIONS_PER_ROUND", "4"))
QUESTION_CAP: int = int(os.getenv("QUESTION_CAP", "12"))

# Sessions
SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "86400"))
SESSION_ID_LENGTH: int = 22

# CV text limits
CV_TEXT_MIN_CHARS: int = 50
CV_TEXT_MAX_CHARS: int = int(os.getenv("CV_TEXT_MAX_CHARS", "12000"))
UPLOAD_TEXT_MAX_CHARS: int = 50000

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "en")

# Language code -> name used in prompts (extensible: add new entry per language)
SUPPORTED_LANGUAGES: dict = {
    "en": "English",
    "tr": "Turkish",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
}

# Score-driven improvement loop
SCORE_THRESHOLD: int = int(os.getenv("SCORE_THRESHOLD", "80"))
MAX_IMPROVEMENT_ROUNDS: int = int(os.getenv("MAX_IMPROVEMENT_ROUNDS", "2"))

# Superseded record snapshots kept per session
HISTORY_LIMIT: int = int(os.getenv("HISTORY_LIMIT", "20"))
