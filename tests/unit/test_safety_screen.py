"""Unit tests for the safety screen and Gemini classifier."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from teenskill.config import Settings
from teenskill.safety.classifier import (
    SKIPPED_REASON,
    UNAVAILABLE_REASON,
    BaseSafetyClassifier,
    ClassifierResponseError,
    GeminiClassifier,
    SafetyScreen,
    SafetyVerdict,
    build_safety_screen,
    parse_verdict,
)


class _StaticClassifier(BaseSafetyClassifier):
    def __init__(self, verdict: SafetyVerdict) -> None:
        self.verdict = verdict
        self.calls = 0

    async def classify(self, title: str, description: str) -> SafetyVerdict:
        self.calls += 1
        return self.verdict


class _SlowClassifier(BaseSafetyClassifier):
    async def classify(self, title: str, description: str) -> SafetyVerdict:
        await asyncio.sleep(10)
        return {"safe": False, "reason": "too late"}


class _BrokenClassifier(BaseSafetyClassifier):
    async def classify(self, title: str, description: str) -> SafetyVerdict:
        raise httpx.ConnectError("connection refused")


class TestSafetyScreen:

    @pytest.mark.asyncio
    async def test_no_classifier_skips(self):
        screen = SafetyScreen(None)
        assert await screen.check("Poster", "Design a poster") == {"safe": True, "reason": SKIPPED_REASON}

    @pytest.mark.asyncio
    async def test_returns_classifier_verdict(self):
        classifier = _StaticClassifier({"safe": False, "reason": "Meeting at a private address"})
        screen = SafetyScreen(classifier)
        verdict = await screen.check("Help at my house", "Come over alone")
        assert verdict == {"safe": False, "reason": "Meeting at a private address"}
        assert classifier.calls == 1

    @pytest.mark.asyncio
    async def test_timeout_fails_open(self):
        screen = SafetyScreen(_SlowClassifier(), timeout=0.05)
        verdict = await screen.check("Poster", "Design a poster")
        assert verdict["safe"] is True
        assert verdict["reason"] == UNAVAILABLE_REASON

    @pytest.mark.asyncio
    async def test_error_fails_open(self):
        screen = SafetyScreen(_BrokenClassifier())
        verdict = await screen.check("Poster", "Design a poster")
        assert verdict == {"safe": True, "reason": UNAVAILABLE_REASON}


class TestParseVerdict:

    def test_valid(self):
        assert parse_verdict('{"safe": true, "reason": "ok"}') == {"safe": True, "reason": "ok"}

    def test_missing_reason(self):
        assert parse_verdict('{"safe": false}') == {"safe": False, "reason": ""}

    @pytest.mark.parametrize("text", ["", "not json", "[]", '{"safe": "yes"}', '{"reason": "x"}'])
    def test_malformed(self, text):
        with pytest.raises(ClassifierResponseError):
            parse_verdict(text)


class TestGeminiClassifier:

    @pytest.mark.asyncio
    async def test_posts_generate_content(self, monkeypatch):
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["body"] = json.loads(request.content)
            answer = json.dumps({"safe": False, "reason": "Scam"})
            return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": answer}]}}]})

        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            "teenskill.safety.classifier.httpx.AsyncClient",
            lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw),
        )

        classifier = GeminiClassifier("k-123", "gemini-test", "https://example.test/v1beta/")
        verdict = await classifier.classify("Easy money", "Send 100k to double it")

        assert verdict == {"safe": False, "reason": "Scam"}
        assert captured["url"].startswith("https://example.test/v1beta/models/gemini-test:generateContent")
        assert "key=k-123" in captured["url"]
        assert captured["body"]["generationConfig"]["responseMimeType"] == "application/json"
        assert "Easy money" in captured["body"]["contents"][0]["parts"][0]["text"]

    @pytest.mark.asyncio
    async def test_http_error_raises(self, monkeypatch):
        real_client = httpx.AsyncClient
        monkeypatch.setattr(
            "teenskill.safety.classifier.httpx.AsyncClient",
            lambda **kw: real_client(transport=httpx.MockTransport(lambda r: httpx.Response(503)), **kw),
        )
        classifier = GeminiClassifier("k", "m", "https://example.test")
        with pytest.raises(httpx.HTTPStatusError):
            await classifier.classify("t", "d")

        # ...which the screen turns into a fail-open verdict
        verdict = await SafetyScreen(classifier).check("t", "d")
        assert verdict["safe"] is True


class TestBuildSafetyScreen:

    def test_no_key_disables(self):
        screen = build_safety_screen(Settings(safety_api_key=""))
        assert screen.classifier is None

    def test_key_enables_gemini(self):
        screen = build_safety_screen(Settings(safety_api_key="abc", safety_timeout_seconds=2.5))
        assert isinstance(screen.classifier, GeminiClassifier)
        assert screen.timeout == 2.5
