"""Tests for the HTTP vision adapters, using a stub session."""

import base64

import pytest
import requests
from emoji_cutter.adapters.vision import (
    GeminiVisionAdapter,
    OpenAIVisionAdapter,
    create_vision_model,
)
from emoji_cutter.application.ports.vision_model import VisionModel
from emoji_cutter.domain.value_objects.config import APIStyle, VisionAPIConfig
from emoji_cutter.exceptions import TransportError, TransportErrorKind


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class StubSession:
    """Records the last POST and replays a canned response or exception."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def openai_reply(content):
    return StubResponse(payload={"choices": [{"message": {"content": content}}]})


def gemini_reply(*texts):
    return StubResponse(payload={"candidates": [{"content": {"parts": [{"text": t} for t in texts]}}]})


class TestFactory:
    def test_openai(self):
        model = create_vision_model(VisionAPIConfig(api_key="k"))
        assert isinstance(model, OpenAIVisionAdapter)
        assert isinstance(model, VisionModel)
        assert model.name == "gpt-4o"
        assert model.is_available

    def test_gemini(self):
        model = create_vision_model(VisionAPIConfig(api_key="k", style=APIStyle.GEMINI))
        assert isinstance(model, GeminiVisionAdapter)


class TestOpenAIVisionAdapter:
    """Tests for the chat completions wire format."""

    def test_request_shape(self):
        session = StubSession(openai_reply('{"regions": []}'))
        config = VisionAPIConfig(api_key="sk-1", base_url="https://api.example.com/v1", model="vision-1")
        text = OpenAIVisionAdapter(config, session).describe(b"\x89PNG", "image/png", "find emojis", 7.5)

        assert text == '{"regions": []}'
        request = session.requests[0]
        assert request["url"] == "https://api.example.com/v1/chat/completions"
        assert request["headers"]["Authorization"] == "Bearer sk-1"
        assert request["timeout"] == 7.5
        body = request["json"]
        assert body["model"] == "vision-1"
        content = body["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "find emojis"}
        url = content[1]["image_url"]["url"]
        assert url == "data:image/png;base64," + base64.b64encode(b"\x89PNG").decode()

    def test_content_parts_joined(self):
        session = StubSession(openai_reply([{"type": "text", "text": "{\"re"}, {"type": "text", "text": "gions\": []}"}]))
        text = OpenAIVisionAdapter(VisionAPIConfig(api_key="k"), session).describe(b"x", "image/png", "p", 1)
        assert text == '{"regions": []}'

    @pytest.mark.parametrize("payload", [{}, {"choices": []}, {"choices": [{"message": {"content": ""}}]}])
    def test_empty_answer(self, payload):
        session = StubSession(StubResponse(payload=payload))
        with pytest.raises(TransportError, match="AI 未返回有效响应"):
            OpenAIVisionAdapter(VisionAPIConfig(api_key="k"), session).describe(b"x", "image/png", "p", 1)


class TestGeminiVisionAdapter:
    def test_request_shape(self):
        session = StubSession(gemini_reply("part one, ", "part two"))
        config = VisionAPIConfig(api_key="g-1", style=APIStyle.GEMINI, model="gemini-x")
        text = GeminiVisionAdapter(config, session).describe(b"img", "image/jpeg", "prompt", 3)

        assert text == "part one, part two"
        request = session.requests[0]
        assert request["url"].endswith("/models/gemini-x:generateContent")
        assert request["headers"] == {"x-goog-api-key": "g-1"}
        parts = request["json"]["contents"][0]["parts"]
        assert parts[0] == {"text": "prompt"}
        assert parts[1]["inlineData"] == {"mimeType": "image/jpeg", "data": base64.b64encode(b"img").decode()}

    def test_no_candidates(self):
        session = StubSession(StubResponse(payload={"candidates": []}))
        config = VisionAPIConfig(api_key="g", style=APIStyle.GEMINI)
        with pytest.raises(TransportError):
            GeminiVisionAdapter(config, session).describe(b"img", "image/png", "p", 1)


class TestTransportErrors:
    """Tests for mapping HTTP failures onto error kinds."""

    def _describe(self, session):
        return OpenAIVisionAdapter(VisionAPIConfig(api_key="k"), session).describe(b"x", "image/png", "p", 1)

    @pytest.mark.parametrize("status,kind", [
        (401, TransportErrorKind.UNAUTHORIZED),
        (403, TransportErrorKind.UNAUTHORIZED),
        (429, TransportErrorKind.RATE_LIMITED),
        (504, TransportErrorKind.TIMEOUT),
        (500, TransportErrorKind.UNKNOWN),
    ])
    def test_status_codes(self, status, kind):
        session = StubSession(StubResponse(status_code=status, text="error body"))
        with pytest.raises(TransportError) as exc_info:
            self._describe(session)
        assert exc_info.value.kind == kind
        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("error,kind", [
        (requests.Timeout("slow"), TransportErrorKind.TIMEOUT),
        (requests.ConnectionError("refused"), TransportErrorKind.NETWORK),
        (requests.RequestException("odd"), TransportErrorKind.UNKNOWN),
    ])
    def test_request_exceptions(self, error, kind):
        with pytest.raises(TransportError) as exc_info:
            self._describe(StubSession(error=error))
        assert exc_info.value.kind == kind

    def test_non_json_reply(self):
        with pytest.raises(TransportError):
            self._describe(StubSession(StubResponse(payload=None)))
