import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from cv_builder_ai.errors import ExternalCallError
from cv_builder_ai.services import llm_service
from cv_builder_ai.services.llm_service import OpenAILanguageModelService, get_llm_service
from cv_builder_ai.services.prompts import record_template


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _service(content=None, error=None):
    completions = FakeCompletions(content, error)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAILanguageModelService(api_key="test", client=client), completions


@pytest.mark.asyncio
async def test_extract_uses_json_mode_and_strips_fences():
    service, completions = _service('```json\n{"summary": "Engineer"}\n```')
    data = await service.extract_record("raw cv text", record_template())
    assert data == {"summary": "Engineer"}
    assert completions.requests[0]["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_questions_prompt_carries_ledger_and_language():
    service, completions = _service(json.dumps({"questions": ["Q2"]}))
    questions = await service.generate_questions({"summary": ""}, ["Q1"], "de", 2, ["summary"])
    assert questions == ["Q2"]
    system, user = completions.requests[0]["messages"]
    assert "German" in system["content"]
    assert "at most 2 questions" in system["content"]
    assert '"Q1"' in user["content"]


@pytest.mark.asyncio
async def test_finalize_unwraps_cv_key():
    service, _ = _service(json.dumps({"cv": {"summary": "Polished"}}))
    assert await service.finalize_record({"summary": "x"}, "en") == {"summary": "Polished"}


@pytest.mark.asyncio
async def test_patch_suggestions_drop_entries_without_string_path():
    service, _ = _service(json.dumps({"changes": [{"path": "summary", "value": "x"}, {"value": "y"}, "z", {"path": 5}, {"path": "  "}]}))
    assert await service.propose_patches({}, "Q", "A") == [{"path": "summary", "value": "x"}]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
async def test_bad_responses_raise(content):
    service, _ = _service(content)
    with pytest.raises(ExternalCallError):
        await service.finalize_record({}, "en")


@pytest.mark.asyncio
async def test_openai_errors_are_mapped():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    service, _ = _service(error=error)
    with pytest.raises(ExternalCallError) as exc:
        await service.extract_record("text", {})
    assert exc.value.operation == "extract"


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(llm_service, "OPENAI_API_KEY", "")
    with pytest.raises(ExternalCallError):
        get_llm_service()


@pytest.mark.asyncio
async def test_score_prompt_uses_language():
    service, completions = _service(json.dumps({"overall": 72, "suggestions": ["Add metrics"]}))
    data = await service.score_record({"summary": "x"}, "tr")
    assert data["overall"] == 72
    system, _ = completions.requests[0]["messages"]
    assert "Turkish" in system["content"]
