"""
AI content screening for task postings.

The classifier is advisory and external. ``SafetyScreen`` wraps whichever
classifier was configured at startup, bounds it with a timeout and always
answers: if there is no classifier the check is skipped, and if the
classifier fails or times out the screen fails open.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from typing import Any, TypedDict

import httpx
import structlog

from teenskill.config import Settings, get_settings

logger = structlog.get_logger()

SKIPPED_REASON = "AI check skipped (no API key)"
UNAVAILABLE_REASON = "AI safety service unavailable, posted without screening"

_PROMPT = """\
You review task postings for a freelance platform whose workers are teenagers aged 13-17.

Title: {title}
Description: {description}

Is this task safe and appropriate? It is NOT safe if it involves any of:
- Private physical meetings or visits (predator risk).
- Adult or illegal content.
- Scams or get-rich-quick schemes.

Answer with JSON only: {{"safe": boolean, "reason": "short explanation"}}
"""


class SafetyVerdict(TypedDict):
    safe: bool
    reason: str


class ClassifierResponseError(ValueError):
    """The classifier answered, but not with a usable verdict."""


class BaseSafetyClassifier(ABC):
    """Abstract base class for task safety classifiers."""

    @abstractmethod
    async def classify(self, title: str, description: str) -> SafetyVerdict:
        """Judge a task posting. May raise; SafetyScreen handles failures."""
        ...


def parse_verdict(text: str) -> SafetyVerdict:
    """Parse the model's JSON answer into a verdict."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = "Classifier returned invalid JSON"
        raise ClassifierResponseError(msg) from e

    if not isinstance(data, dict) or not isinstance(data.get("safe"), bool):
        msg = "Classifier verdict has no boolean 'safe' field"
        raise ClassifierResponseError(msg)
    reason = data.get("reason")
    return {"safe": data["safe"], "reason": str(reason) if reason else ""}


class GeminiClassifier(BaseSafetyClassifier):
    """Classify via the Gemini generateContent HTTP API."""

    def __init__(self, api_key: str, model: str, base_url: str) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")

    def _extract_text(self, body: dict[str, Any]) -> str:
        try:
            parts = body["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            msg = "Classifier response has no candidates"
            raise ClassifierResponseError(msg) from e
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    async def classify(self, title: str, description: str) -> SafetyVerdict:
        """Send the posting to Gemini and parse its JSON verdict."""
        async with httpx.AsyncClient() as client:
            response = await client.post(
                f"{self.base_url}/models/{self.model}:generateContent",
                params={"key": self.api_key},
                json={
                    "contents": [
                        {"parts": [{"text": _PROMPT.format(title=title, description=description)}]},
                    ],
                    "generationConfig": {"responseMimeType": "application/json"},
                },
                timeout=10.0,
            )
            response.raise_for_status()
        return parse_verdict(self._extract_text(response.json()))


class SafetyScreen:
    """
    Timeout-bounded, fail-open front for a safety classifier.

    ``check`` never raises. With no classifier configured it returns the
    skip verdict without making any call.
    """

    def __init__(
        self,
        classifier: BaseSafetyClassifier | None = None,
        timeout: float = 5.0,
    ) -> None:
        self.classifier = classifier
        self.timeout = timeout

    async def check(self, title: str, description: str) -> SafetyVerdict:
        if self.classifier is None:
            return {"safe": True, "reason": SKIPPED_REASON}

        try:
            verdict = await asyncio.wait_for(
                self.classifier.classify(title, description),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("safety_check_degraded", cause="timeout", timeout=self.timeout)
            return {"safe": True, "reason": UNAVAILABLE_REASON}
        except Exception:
            logger.exception("safety_check_degraded", cause="error")
            return {"safe": True, "reason": UNAVAILABLE_REASON}

        if not verdict["safe"]:
            logger.info("task_flagged_unsafe", title=title, reason=verdict["reason"])
        return verdict


def build_safety_screen(settings: Settings | None = None) -> SafetyScreen:
    """Create the screen from configuration. No API key means checks are skipped."""
    settings = settings or get_settings()
    classifier: BaseSafetyClassifier | None = None
    if settings.safety_api_key:
        classifier = GeminiClassifier(
            api_key=settings.safety_api_key,
            model=settings.safety_model,
            base_url=settings.safety_api_base_url,
        )
    else:
        logger.warning("safety_classifier_disabled", reason="no API key configured")
    return SafetyScreen(classifier, timeout=settings.safety_timeout_seconds)
