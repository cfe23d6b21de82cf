"""Gemini ``generateContent`` client used by the analysis endpoints."""
from __future__ import annotations

import json
import logging
import os
from typing import Any

import httpx

from rxlens_core.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_MIME_TYPE = "image/jpeg"
NO_USABLE_RESPONSE = "No usable response from the external model"
PRESCRIPTION_PROMPT = (
    "Analyze this medical prescription image. Extract all medication details, including name, dosage, "
    "frequency, and duration. Identify the medical condition being treated if possible. Provide a "
    "structured analysis with recommendations for the patient."
)


def split_image_payload(image: str) -> tuple[str, str]:
    """Return ``(mime_type, base64_data)`` for a data URI or raw base64 string."""
    raw = image.strip()
    if "," not in raw:
        return DEFAULT_MIME_TYPE, raw
    prefix, data = raw.split(",", 1)
    mime_type = DEFAULT_MIME_TYPE
    if prefix.lower().startswith("data:"):
        declared = prefix[5:].split(";", 1)[0].strip().lower()
        if declared:
            mime_type = declared
    return mime_type, data.strip()


def _provider_error_message(response: httpx.Response) -> str:
    message = response.text.strip()
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict):
            msg = err.get("message")
            if isinstance(msg, str) and msg.strip():
                return msg.strip()
    return message or f"HTTP {response.status_code}"


def _candidate_text(response_json: dict[str, Any]) -> str:
    candidates = response_json.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content") or {}
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
    return "\n".join(texts).strip()


class GeminiClient:
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_API_BASE,
        vision_model: str = DEFAULT_MODEL,
        text_model: str = DEFAULT_MODEL,
        temperature: float = 0.2,
        max_output_tokens: int = 1024,
        timeout_seconds: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.vision_model = vision_model
        self.text_model = text_model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @classmethod
    def from_env(cls) -> GeminiClient:
        return cls(
            base_url=os.getenv("GEMINI_API_BASE_URL", DEFAULT_API_BASE),
            vision_model=(os.getenv("GEMINI_VISION_MODEL") or DEFAULT_MODEL).strip(),
            text_model=(os.getenv("GEMINI_TEXT_MODEL") or DEFAULT_MODEL).strip(),
            temperature=float(os.getenv("GEMINI_TEMPERATURE", "0.2")),
            max_output_tokens=int(os.getenv("GEMINI_MAX_OUTPUT_TOKENS", "1024")),
            timeout_seconds=float(os.getenv("GEMINI_TIMEOUT_SECONDS", "60")),
        )

    def analyze_prescription_image(self, image: str) -> str:
        mime_type, data = split_image_payload(image)
        text = self._generate(
            model=self.vision_model,
            parts=[
                {"text": PRESCRIPTION_PROMPT},
                {"inline_data": {"mime_type": mime_type, "data": data}},
            ],
        )
        if not text:
            raise UpstreamError(NO_USABLE_RESPONSE)
        return text

    def complete(self, *, prompt: str | None, image: str | None = None, vision: bool = False) -> str:
        if vision and image:
            mime_type, data = split_image_payload(image)
            return self._generate(
                model=self.vision_model,
                parts=[
                    {"text": prompt or "Analyze this image"},
                    {"inline_data": {"mime_type": mime_type, "data": data}},
                ],
            )
        return self._generate(model=self.text_model, parts=[{"text": prompt or ""}])

    def _generate(self, *, model: str, parts: list[dict[str, Any]]) -> str:
        # Read at call time so key rotation does not need a restart.
        api_key = (os.getenv("GEMINI_API_KEY") or "").strip()
        if not api_key:
            raise UpstreamError("GEMINI_API_KEY is not configured.")

        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        url = f"{self._base_url}/models/{model}:generateContent"
        try:
            with httpx.Client(
                timeout=httpx.Timeout(self.timeout_seconds, connect=10.0),
                transport=self._transport,
            ) as client:
                response = client.post(
                    url,
                    params={"key": api_key},
                    headers={"Content-Type": "application/json"},
                    json=payload,
                )
        except httpx.TimeoutException as exc:
            logger.error("Gemini request to %s timed out after %ss", model, self.timeout_seconds)
            raise UpstreamError("The external model timed out.") from exc
        except httpx.HTTPError as exc:
            logger.error("Gemini request to %s failed: %s", model, exc)
            raise UpstreamError("Failed to reach the external model.") from exc

        if response.status_code >= 400:
            provider_error = _provider_error_message(response)
            logger.error("Gemini returned HTTP %s: %s", response.status_code, provider_error)
            raise UpstreamError(f"External model error: {provider_error}")

        try:
            completion_payload = response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamError("The external model returned invalid JSON.") from exc
        if not isinstance(completion_payload, dict):
            return ""
        return _candidate_text(completion_payload)
