"""Language model service: extraction, questions, answer patches, scoring and finalization via OpenAI."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Union

import httpx
import openai
from openai import AsyncOpenAI

from cv_builder_ai.config import (
    CV_TEXT_MAX_CHARS,
    FINALIZE_MODEL_NAME,
    LLM_MAX_RETRIES,
    LLM_TEMPERATURE,
    LLM_TIMEOUT_SECONDS,
    MODEL_NAME,
    OPENAI_API_KEY,
)
from cv_builder_ai.errors import ExternalCallError
from cv_builder_ai.services.prompts import (
    build_extraction_messages,
    build_finalize_messages,
    build_patch_messages,
    build_questions_messages,
    build_score_messages,
)
from cv_builder_ai.utils.helpers import parse_llm_json
from cv_builder_ai.utils.logger import get_logger

logger = get_logger(__name__)

QuestionPayload = Union[str, Dict[str, Any]]


class LanguageModelService(ABC):
    """
    Opaque AI capability used by the session agent. Implementations return raw
    JSON-shaped data; the caller validates it before use.
    """

    @abstractmethod
    async def extract_record(self, cv_text: str, template: Dict[str, Any]) -> Dict[str, Any]:
        """Parse raw CV text into a record-shaped dict."""
        ...

    @abstractmethod
    async def generate_questions(
        self,
        record: Dict[str, Any],
        asked: List[str],
        language: str,
        max_count: int,
        missing: List[str],
    ) -> List[QuestionPayload]:
        """Return at most max_count questions (strings or question dicts)."""
        ...

    @abstractmethod
    async def score_record(self, record: Dict[str, Any], language: str) -> Dict[str, Any]:
        """Score the record 0-100 with strengths, weaknesses and suggestions."""
        ...

    @abstractmethod
    async def finalize_record(self, record: Dict[str, Any], language: str) -> Dict[str, Any]:
        """Rewrite every string of the record in the target language."""
        ...

    async def propose_patches(self, record: Dict[str, Any], question: str, answer: str) -> List[Dict[str, Any]]:
        """Suggest {path, value} changes derived from one answer. Default: none."""
        return []


class OpenAILanguageModelService(LanguageModelService):
    """OpenAI chat completions in JSON mode."""

    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = MODEL_NAME,
        finalize_model: str = FINALIZE_MODEL_NAME,
        timeout_seconds: float = LLM_TIMEOUT_SECONDS,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._model = model
        self._finalize_model = finalize_model
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            max_retries=LLM_MAX_RETRIES,
        )

    async def _complete_json(
        self,
        operation: str,
        model: str,
        messages: List[Dict[str, str]],
    ) -> Dict[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=LLM_TEMPERATURE,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            logger.warning("LLM %s timed out: %s", operation, e)
            raise ExternalCallError(operation, "timed out") from e
        except openai.OpenAIError as e:
            logger.warning("LLM %s failed: %s", operation, e)
            raise ExternalCallError(operation, str(e)) from e

        choice = response.choices[0] if response.choices else None
        if not choice or not choice.message or not choice.message.content:
            raise ExternalCallError(operation, "empty response")
        parsed = parse_llm_json(choice.message.content)
        if not isinstance(parsed, dict):
            logger.warning("LLM %s returned non-object JSON: %.200s", operation, choice.message.content)
            raise ExternalCallError(operation, "response is not a JSON object")
        return parsed

    async def extract_record(self, cv_text: str, template: Dict[str, Any]) -> Dict[str, Any]:
        content = (cv_text or "")[:CV_TEXT_MAX_CHARS].strip()
        data = await self._complete_json("extract", self._model, build_extraction_messages(content, template))
        logger.info("Extracted CV record with sections: %s", sorted(k for k, v in data.items() if v))
        return data

    async def generate_questions(
        self,
        record: Dict[str, Any],
        asked: List[str],
        language: str,
        max_count: int,
        missing: List[str],
    ) -> List[QuestionPayload]:
        data = await self._complete_json(
            "questions",
            self._model,
            build_questions_messages(record, asked, language, max_count, missing),
        )
        questions = data.get("questions", [])
        if not isinstance(questions, list):
            raise ExternalCallError("questions", "'questions' is not a list")
        logger.info("Generated %s questions (language=%s)", len(questions), language)
        return questions

    async def finalize_record(self, record: Dict[str, Any], language: str) -> Dict[str, Any]:
        data = await self._complete_json("finalize", self._finalize_model, build_finalize_messages(record, language))
        # Some models wrap the record in {"cv": {...}}
        if isinstance(data.get("cv"), dict) and len(data) == 1:
            data = data["cv"]
        return data

    async def score_record(self, record: Dict[str, Any], language: str) -> Dict[str, Any]:
        data = await self._complete_json("score", self._model, build_score_messages(record, language))
        logger.info("Scored CV: overall=%s", data.get("overall"))
        return data

    async def propose_patches(self, record: Dict[str, Any], question: str, answer: str) -> List[Dict[str, Any]]:
        data = await self._complete_json("patch", self._model, build_patch_messages(record, question, answer))
        changes = data.get("changes", [])
        if not isinstance(changes, list):
            raise ExternalCallError("patch", "'changes' is not a list")
        return [c for c in changes if isinstance(c, dict) and isinstance(c.get("path"), str) and c["path"].strip()]


def get_llm_service(api_key: Optional[str] = None, model: Optional[str] = None) -> LanguageModelService:
    """
    Build the configured LLM service. Create once per process and inject it into
    CvSessionAgent; there is no module-level client.
    """
    key = api_key or OPENAI_API_KEY
    if not key:
        logger.error("OPENAI_API_KEY is not set; cannot create LLM service")
        raise ExternalCallError("configure", "OPENAI_API_KEY is not set")
    return OpenAILanguageModelService(api_key=key, model=model or MODEL_NAME)
