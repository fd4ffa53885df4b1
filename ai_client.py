"""
AI completion adapter (Gemini generateContent over REST) and the strict
decode step every structured AI answer goes through.
"""

import json
import logging
from typing import List, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

import config
from errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class AiDecodeError(ValueError):
    """The model answered, but not with the object we asked for."""


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ``` or ```json fence, if any."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def decode_json_object(text: str, model: Type[M]) -> M:
    """Parse an AI answer into model, or raise AiDecodeError. Never returns partial data."""
    try:
        payload = json.loads(strip_code_fence(text))
    except json.JSONDecodeError as exc:
        raise AiDecodeError(f"AI response is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise AiDecodeError("AI response is not a JSON object")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise AiDecodeError(f"AI response does not match {model.__name__}: {exc}") from exc


class GeminiClient:

    def __init__(self, api_key: str = None, url: str = None,
                 timeout: float = config.AI_TIMEOUT_SECONDS, session: requests.Session = None):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.url)

    def complete(self, parts: List[str], max_tokens: int = 500, temperature: float = 0.7) -> str:
        """Send one user turn made of text parts; return the first candidate's text."""
        if not self.configured:
            raise UpstreamUnavailable("Gemini API key or URL not configured")
        body = {
            "contents": [{"role": "user", "parts": [{"text": p} for p in parts]}],
            "generationConfig": {"maxOutputTokens": max_tokens, "temperature": temperature},
        }
        try:
            resp = self.session.post(
                self.url,
                json=body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise UpstreamUnavailable(f"Gemini request failed: {exc}") from exc

        try:
            text = payload["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamUnavailable("Gemini response carried no text") from exc
        logger.debug(f"AI response: {text}")
        return text
