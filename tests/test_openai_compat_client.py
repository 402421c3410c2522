from __future__ import annotations

import json

import httpx
import pytest

from llmactions.errors import CompletionError
from llmactions.models import openai_compat
from llmactions.models.openai_compat import OpenAICompatCompletionModel


def test_prompt_is_sent_as_single_user_message():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200, json={"choices": [{"message": {"content": '<Action name="done" />'}}]}
        )

    client = OpenAICompatCompletionModel(
        base_url="https://example.com/v1/",
        api_key="test-key",
        model="gpt-test",
        extra_headers={"X-Test": "yes"},
        transport=httpx.MockTransport(handler),
    )
    answer = client.complete("hello", temperature=0.2)
    assert answer == '<Action name="done" />'
    payload = json.loads(requests[0].content.decode())
    assert payload == {
        "model": "gpt-test",
        "messages": [{"role": "user", "content": "hello"}],
        "temperature": 0.2,
    }
    assert requests[0].url == httpx.URL("https://example.com/v1/chat/completions")
    assert requests[0].headers["Authorization"] == "Bearer test-key"
    assert requests[0].headers["X-Test"] == "yes"


def test_model_override_and_no_temperature():
    payloads = []

    def handler(request: httpx.Request) -> httpx.Response:
        payloads.append(json.loads(request.content.decode()))
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = OpenAICompatCompletionModel(
        base_url="example.com",
        api_key="k",
        model="gpt-test",
        transport=httpx.MockTransport(handler),
    )
    client.complete("hi", model="gpt-4")
    assert payloads[0]["model"] == "gpt-4"
    assert "temperature" not in payloads[0]


@pytest.mark.parametrize(
    ("base_url", "expected"),
    [
        ("http://host:8000", "http://host:8000/v1/chat/completions"),
        ("http://host:8000/v1", "http://host:8000/v1/chat/completions"),
        ("http://host:8000/api/v1", "http://host:8000/api/v1/chat/completions"),
        ("http://host:8000/api/v1/", "http://host:8000/api/v1/chat/completions"),
        ("http://host:8000/v1/chat/completions", "http://host:8000/v1/chat/completions"),
    ],
)
def test_base_url_variants(base_url: str, expected: str):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = OpenAICompatCompletionModel(
        base_url=base_url,
        api_key="test-key",
        model="gpt-test",
        transport=httpx.MockTransport(handler),
    )
    client.complete("hi")
    assert requests[0].url == httpx.URL(expected)


def test_retries_server_errors(monkeypatch):
    monkeypatch.setattr(openai_compat.time, "sleep", lambda seconds: None)
    statuses = iter([503, 429, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status != 200:
            return httpx.Response(status, text="busy")
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = OpenAICompatCompletionModel(
        base_url="http://host",
        api_key="k",
        model="m",
        transport=httpx.MockTransport(handler),
    )
    assert client.complete("hi") == "ok"


def test_gives_up_after_max_attempts(monkeypatch):
    monkeypatch.setattr(openai_compat.time, "sleep", lambda seconds: None)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="boom")

    client = OpenAICompatCompletionModel(
        base_url="http://host",
        api_key="k",
        model="m",
        max_attempts=2,
        transport=httpx.MockTransport(handler),
    )
    with pytest.raises(CompletionError):
        client.complete("hi")
    assert len(calls) == 2


def test_missing_content_is_empty_answer():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": None}}]})

    client = OpenAICompatCompletionModel(
        base_url="http://host", api_key="k", model="m", transport=httpx.MockTransport(handler)
    )
    assert client.complete("hi") == ""


def test_client_errors_are_not_retried(monkeypatch):
    monkeypatch.setattr(openai_compat.time, "sleep", lambda seconds: None)
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, text="bad key")

    client = OpenAICompatCompletionModel(
        base_url="http://host", api_key="k", model="m", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(CompletionError, match="HTTP 401"):
        client.complete("hi")
    assert len(calls) == 1


def test_transport_errors_are_retried_with_backoff(monkeypatch):
    delays = []
    monkeypatch.setattr(openai_compat.time, "sleep", delays.append)
    outcomes = iter([httpx.ConnectError("refused"), httpx.ReadTimeout("slow"), None])

    def handler(request: httpx.Request) -> httpx.Response:
        error = next(outcomes)
        if error is not None:
            raise error
        return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

    client = OpenAICompatCompletionModel(
        base_url="http://host",
        api_key="k",
        model="m",
        backoff_seconds=0.5,
        transport=httpx.MockTransport(handler),
    )
    assert client.complete("hi") == "ok"
    assert delays == [0.5, 1.0]


def test_malformed_json_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    client = OpenAICompatCompletionModel(
        base_url="http://host", api_key="k", model="m", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(CompletionError, match="Malformed JSON"):
        client.complete("hi")


def test_completions_url_drops_query():
    assert (
        openai_compat.completions_url(" https://host/api?x=1 ")
        == "https://host/api/v1/chat/completions"
    )
