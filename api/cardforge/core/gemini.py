from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

import httpx

from cardforge.core.config import Settings
from cardforge.core.errors import ModelInvocationError

logger = logging.getLogger("gemini")

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
SAFETY_THRESHOLD = "BLOCK_MEDIUM_AND_ABOVE"


@dataclass(frozen=True)
class SamplingConfig:
    temperature: float = 0.6
    top_k: int = 1
    top_p: float = 1.0
    max_output_tokens: int = 4096

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topK": self.top_k,
            "topP": self.top_p,
            "maxOutputTokens": self.max_output_tokens,
        }


@dataclass(frozen=True)
class ModelReply:
    text: Optional[str]
    block_reason: Optional[str] = None
    finish_reason: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.text and self.text.strip())


class ModelClient(Protocol):
    async def generate_content(self, prompt: str, config: SamplingConfig) -> ModelReply:
        ...


def parse_reply(data: Dict[str, Any]) -> ModelReply:
    """
    Pull text and block/finish reasons out of a generateContent response.
    Missing pieces become None rather than raising.
    """
    feedback = data.get("promptFeedback") or {}
    block_reason = feedback.get("blockReason")

    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ModelReply(text=None, block_reason=block_reason)

    first = candidates[0]
    finish_reason = first.get("finishReason")
    parts = (first.get("content") or {}).get("parts") or []
    texts: List[str] = [
        str(p["text"]) for p in parts if isinstance(p, dict) and p.get("text") is not None
    ]
    text = "".join(texts) if texts else None
    return ModelReply(text=text, block_reason=block_reason, finish_reason=finish_reason)


class GeminiClient:
    """
    Minimal async client for the Generative Language REST API.
    One call per prompt, no retries and no fallback provider.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-1.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_s: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not (api_key or "").strip():
            raise ValueError("GEMINI_API_KEY is not configured")
        self.api_key = api_key.strip()
        self.model = model
        self.url = f"{base_url.rstrip('/')}/models/{model}:generateContent"
        self.timeout_s = timeout_s
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_s)

    async def generate_content(self, prompt: str, config: SamplingConfig) -> ModelReply:
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": config.to_payload(),
            "safetySettings": [
                {"category": c, "threshold": SAFETY_THRESHOLD} for c in SAFETY_CATEGORIES
            ],
        }

        try:
            r = await self._client.post(
                self.url,
                headers={"x-goog-api-key": self.api_key},
                json=payload,
                timeout=self.timeout_s,
            )
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            body = e.response.text[:500]
            logger.error("gemini call failed status=%s model=%s body=%s", status, self.model, body)
            raise ModelInvocationError(
                f"Fehler bei der Kommunikation mit dem KI-Dienst (Status: {status}).",
                context={"status_code": status, "body": body},
            ) from e
        except httpx.HTTPError as e:
            logger.error("gemini request failed model=%s err=%r", self.model, e)
            raise ModelInvocationError(
                "Fehler bei der Kommunikation mit dem KI-Dienst.",
                context={"error": repr(e)},
            ) from e

        try:
            data = r.json()
        except ValueError as e:
            raise ModelInvocationError(
                "Unerwartete Antwort vom KI-Dienst.", context={"body": r.text[:500]}
            ) from e

        reply = parse_reply(data if isinstance(data, dict) else {})
        logger.info(
            "gemini reply model=%s chars=%s finish=%s block=%s",
            self.model,
            len(reply.text or ""),
            reply.finish_reason,
            reply.block_reason,
        )
        return reply

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def build_model_client(cfg: Settings) -> Optional[GeminiClient]:
    """None when no API key is configured; callers treat that as 'AI disabled'."""
    if not cfg.model_configured:
        logger.warning("GEMINI_API_KEY is not set; AI generation is disabled")
        return None
    client = GeminiClient(
        cfg.gemini_api_key or "",
        model=cfg.gemini_model,
        base_url=cfg.gemini_base_url,
        timeout_s=cfg.gemini_timeout_s,
    )
    logger.info("gemini client initialized model=%s", cfg.gemini_model)
    return client
