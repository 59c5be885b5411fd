"""Remote daily-advice providers.

Every provider subclasses ``AdviceProvider`` and returns a ``DailyAdvice``
record, or None when no advice could be produced.  Providers never raise for
remote failures: the caller shows an empty state instead.

``GeminiAdviceProvider`` calls the Gemini ``generateContent`` REST endpoint
and asks for a JSON response matching ``_RESPONSE_SCHEMA``.

Environment variables (through ``luna.config.Settings``):
    GEMINI_API_KEY   — API key sent as ``x-goog-api-key``
    GEMINI_MODEL     — model name, e.g. ``gemini-3-flash-preview``
    ADVICE_LANGUAGE  — language the advice is written in
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from luna.config import Settings, get_settings
from luna.models.tracking import DailyAdvice

logger = logging.getLogger("luna.advice.provider")

_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "mood": {"type": "STRING"},
        "menu": {
            "type": "OBJECT",
            "properties": {
                "breakfast": {"type": "STRING"},
                "lunch": {"type": "STRING"},
                "dinner": {"type": "STRING"},
            },
            "required": ["breakfast", "lunch", "dinner"],
        },
        "activities": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "emoji": {"type": "STRING"},
                    "text": {"type": "STRING"},
                },
                "required": ["emoji", "text"],
            },
        },
    },
    "required": ["mood", "menu", "activities"],
}


class AdviceProvider(ABC):
    """Source of one day's wellness advice."""

    @abstractmethod
    async def get_advice(
        self, day_of_cycle: int, is_period: bool, user_name: str
    ) -> DailyAdvice | None:
        """Return advice for the given cycle day, or None on any failure.

        Args:
            day_of_cycle: 1-indexed day of the current cycle.
            is_period:    True while the user is menstruating.
            user_name:    Display name used to personalise the text.
        """


def build_prompt(day_of_cycle: int, is_period: bool, user_name: str, language: str) -> str:
    """Build the advice prompt sent to the model."""
    status = (
        "currently menstruating"
        if is_period
        else "not menstruating (follicular, ovulation or premenstrual phase)"
    )
    return (
        "You are a caring women's health coach. "
        f"The user's name is {user_name}. "
        f"Today is day {day_of_cycle} of their menstrual cycle and they are {status}.\n"
        f"Give short, warm advice written in {language}:\n"
        "1. 2-3 physical or mental activities that suit today, each with one emoji.\n"
        "2. A healthy 3-meal menu (breakfast, lunch, dinner) of local home-style dishes.\n"
        "3. One encouraging mood sentence.\n"
        "Return plain JSON matching the response schema."
    )


class GeminiAdviceProvider(AdviceProvider):
    """Gemini ``generateContent`` advice provider.

    Usage::

        provider = GeminiAdviceProvider(api_key="...")
        advice = await provider.get_advice(3, True, "Mai")
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        language: str | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Gemini provider.

        Args:
            api_key:     Gemini API key (defaults to settings.gemini_api_key).
            model:       Model name (defaults to settings.gemini_model).
            language:    Advice language (defaults to settings.advice_language).
            settings:    Settings override.
            http_client: Optional pre-configured httpx client (for testing).
        """
        s = settings or get_settings()
        self._api_key = api_key if api_key is not None else s.gemini_api_key
        self._model = model or s.gemini_model
        self._language = language or s.advice_language
        self._api_base = s.gemini_api_base.rstrip("/")
        self._timeout = s.advice_timeout_seconds
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self._api_base}/models/{self._model}:generateContent"

    async def get_advice(
        self, day_of_cycle: int, is_period: bool, user_name: str
    ) -> DailyAdvice | None:
        if not self._api_key:
            logger.warning("Gemini API key not configured; no advice available")
            return None

        body = {
            "contents": [
                {"parts": [{"text": build_prompt(day_of_cycle, is_period, user_name, self._language)}]}
            ],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": _RESPONSE_SCHEMA,
            },
        }
        try:
            data = await self._post(body)
            return self.parse_response(data, today=date.today())
        except httpx.HTTPError as exc:
            logger.error("Gemini request failed: %s", exc)
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Gemini returned an unusable response: %s", exc)
        return None

    @staticmethod
    def parse_response(data: dict, today: date) -> DailyAdvice:
        """Extract the advice record from a ``generateContent`` response.

        The model's own date (if any) is replaced with ``today``.

        Raises:
            KeyError / IndexError: If the response has no candidate text.
            ValueError: If the text is not valid JSON or fails validation.
        """
        text = data["candidates"][0]["content"]["parts"][0]["text"]
        payload = json.loads(text)
        if not isinstance(payload, dict):
            raise ValueError("advice payload is not a JSON object")
        payload["date"] = today.isoformat()
        try:
            return DailyAdvice.model_validate(payload)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc

    async def _post(self, body: dict) -> dict:
        """POST to the Gemini endpoint, using the injected client if present."""
        headers = {"x-goog-api-key": self._api_key, "Content-Type": "application/json"}
        if self._http_client is not None:
            response = await self._http_client.post(self.endpoint, json=body, headers=headers)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(self.endpoint, json=body, headers=headers)
            response.raise_for_status()
            return response.json()
