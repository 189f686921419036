# tests/test_llm_client.py

from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from todo_planner.cli.bootstrap import _build_llm
from todo_planner.llm.client import OpenRouterLLMClient, friendly_llm_error_message
from todo_planner.llm.offline import OfflineLLMClient


def _llm_settings(**overrides) -> SimpleNamespace:
    values = {
        "openrouter_api_key": "sk-test",
        "openrouter_base_url": "https://llm.example.test/api/v1",
        "llm_models": ["model-a", "model-b"],
        "extra_headers": {"X-Title": "todo-planner"},
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class _FakeStream:
    def __init__(self, parts: list[str]) -> None:
        self._chunks = [SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))]) for p in parts]
        self.closed = False

    def __iter__(self):
        return iter(self._chunks)

    def close(self) -> None:
        self.closed = True


def test_missing_key_raises_and_bootstrap_falls_back() -> None:
    settings = _llm_settings(openrouter_api_key=None)
    with pytest.raises(RuntimeError) as exc_info:
        OpenRouterLLMClient(settings)

    assert "missing API key" in friendly_llm_error_message(exc_info.value)
    assert isinstance(_build_llm(settings), OfflineLLMClient)


def test_falls_back_to_next_model_on_connection_error() -> None:
    client = OpenRouterLLMClient(_llm_settings())
    tried: list[str] = []
    stream = _FakeStream(['{"title": ', '"dentist"}'])

    def create(*, model, **kwargs):
        tried.append(model)
        if model == "model-a":
            raise openai.APIConnectionError(request=httpx.Request("POST", "https://llm.example.test"))
        return stream

    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    assert "".join(client.stream_chat([{"role": "user", "content": "x"}], "sys")) == '{"title": "dentist"}'
    assert tried == ["model-a", "model-b"]
    assert stream.closed


def test_all_models_failing_raises_friendly_error() -> None:
    client = OpenRouterLLMClient(_llm_settings(llm_models=["model-a"]))

    def create(*, model, **kwargs):
        raise openai.APIConnectionError(request=httpx.Request("POST", "https://llm.example.test"))

    client._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    with pytest.raises(RuntimeError, match="network/timeout"):
        list(client.stream_chat([{"role": "user", "content": "x"}], "sys"))
