"""Tests for analysis backends."""

import random
from types import SimpleNamespace

import pytest
import requests
from openai import OpenAIError

from conftest import make_artifact
from snapsolve.analysis import JsonServerAnalysisClient, parse_result_entry
from snapsolve.config import OpenAIConfig
from snapsolve.errors import AnalysisError
from snapsolve.openai_client import OpenAIAnalysisClient
from snapsolve.types import AnalysisRequest, AnalysisResult

REQUEST = AnalysisRequest(prompt_text="Solve it", artifacts=(make_artifact("a"), make_artifact("b")))


class FakeResponse:
    def __init__(self, payload=None, status_error=None, json_error=None) -> None:
        self.payload = payload
        self.status_error = status_error
        self.json_error = json_error

    def raise_for_status(self) -> None:
        if self.status_error is not None:
            raise self.status_error

    def json(self):
        if self.json_error is not None:
            raise self.json_error
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.urls: list[str] = []

    def get(self, url, timeout):
        self.urls.append(url)
        if self.error is not None:
            raise self.error
        return self.response


def test_stand_in_picks_wrapped_entry() -> None:
    entries = [
        {"id": 1, "response": {"explanation": "one", "solution": "```\nx\n```"}},
        {"id": 2, "response": {"explanation": "two", "explanationDetailed": "more"}},
    ]
    session = FakeSession(FakeResponse(entries))
    client = JsonServerAnalysisClient(
        base_url="http://localhost:3000/", rng=random.Random(7), session=session
    )

    result = client.analyze(REQUEST)

    expected = random.Random(7).choice(entries)["response"]
    assert result == AnalysisResult.from_mapping(expected)
    assert session.urls == ["http://localhost:3000/responses"]


def test_stand_in_accepts_bare_entries() -> None:
    session = FakeSession(FakeResponse([{"solution": "print(1)"}]))
    client = JsonServerAnalysisClient(session=session)

    assert client.analyze(REQUEST).solution == "print(1)"


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(error=requests.ConnectionError("refused")),
        FakeSession(FakeResponse(status_error=requests.HTTPError("500"))),
        FakeSession(FakeResponse(json_error=ValueError("not json"))),
        FakeSession(FakeResponse([])),
        FakeSession(FakeResponse({"responses": []})),
        FakeSession(FakeResponse([{"unrelated": True}])),
        FakeSession(FakeResponse(["plain text"])),
    ],
)
def test_stand_in_failures_raise_analysis_error(session) -> None:
    client = JsonServerAnalysisClient(session=session)

    with pytest.raises(AnalysisError):
        client.analyze(REQUEST)


def test_parse_rejects_non_string_fields() -> None:
    with pytest.raises(AnalysisError):
        parse_result_entry({"solution": 42})


class FakeResponses:
    def __init__(self, reply=None, error=None) -> None:
        self.reply = reply
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.reply


def _openai_client(responses: FakeResponses) -> OpenAIAnalysisClient:
    config = OpenAIConfig(api_key="sk-test", model="gpt-test", max_output_tokens=100, timeout_seconds=5)
    client = OpenAIAnalysisClient(config=config, system_prompt="Reply with JSON.")
    client._client = SimpleNamespace(responses=responses)
    return client


def test_openai_sends_prompt_and_every_image() -> None:
    responses = FakeResponses(
        SimpleNamespace(output_text='{"explanation": "e", "solution": "s", "explanationDetailed": "d"}')
    )

    result = _openai_client(responses).analyze(REQUEST)

    assert result == AnalysisResult("e", "s", "d")
    user_content = responses.kwargs["input"][1]["content"]
    assert user_content[0] == {"type": "input_text", "text": "Solve it"}
    assert [item["type"] for item in user_content[1:]] == ["input_image", "input_image"]
    assert user_content[1]["image_url"].startswith("data:image/png;base64,")
    assert responses.kwargs["model"] == "gpt-test"


def test_openai_unwraps_fenced_json() -> None:
    responses = FakeResponses(SimpleNamespace(output_text='```json\n{"solution": "x = 1"}\n```'))

    assert _openai_client(responses).analyze(REQUEST).solution == "x = 1"


def test_openai_reads_output_items_without_output_text() -> None:
    reply = SimpleNamespace(
        output_text="",
        output=[SimpleNamespace(content=[SimpleNamespace(text='{"explanation": "ok"}')])],
    )

    assert _openai_client(FakeResponses(reply)).analyze(REQUEST).explanation == "ok"


@pytest.mark.parametrize(
    "responses",
    [
        FakeResponses(SimpleNamespace(output_text="Sorry, I cannot help.")),
        FakeResponses(SimpleNamespace(output_text="", output=[])),
        FakeResponses(error=OpenAIError("rate limited")),
    ],
)
def test_openai_failures_raise_analysis_error(responses) -> None:
    with pytest.raises(AnalysisError):
        _openai_client(responses).analyze(REQUEST)
