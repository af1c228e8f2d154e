"""Project Intake LLM client — one prompt in, one free-text reply out.

The client is constructed explicitly and handed to the orchestrator (and to
the API through a FastAPI dependency), so tests substitute a fake instead of
patching a module-level singleton.

Providers supported:
  - anthropic (Claude, default)
  - openai (GPT)
  - google (Gemini)
"""

from __future__ import annotations

import json
import time
from typing import Any

import structlog

from app.core.config import settings
from app.modules.extraction.agents.sanitizer import (
    locate_json_object,
    sanitize_extracted_fields,
)
from app.modules.extraction.errors import MalformedResponse, ServiceError
from app.modules.extraction.schemas import ExtractedFields

logger = structlog.get_logger()

# Default models per provider
DEFAULT_MODELS: dict[str, str] = {
    "anthropic": "claude-3-5-sonnet-20241022",
    "openai": "gpt-4.1",
    "google": "gemini-2.5-flash",
}


class ExtractionServiceClient:
    """Async client for the external text-completion service.

    Provides:
      - Lazy SDK client initialization per provider
      - complete(): raw reply text, transport failures wrapped as ServiceError
      - parse_response(): JSON span location + narrowing to ExtractedFields
    """

    def __init__(
        self,
        provider: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.provider = provider or settings.extraction_provider
        self.model = model or settings.extraction_model or DEFAULT_MODELS.get(self.provider, "")
        self.max_tokens = max_tokens or settings.extraction_max_tokens

        # Lazy-initialized SDK clients
        self._anthropic_client: Any = None
        self._openai_client: Any = None
        self._gemini_client: Any = None

        logger.info("Extraction client initialized", provider=self.provider, model=self.model)

    # ------------------------------------------------------------------
    # SDK client builders (lazy)
    # ------------------------------------------------------------------

    def _get_anthropic_client(self) -> Any:
        if self._anthropic_client is None:
            import anthropic

            self._anthropic_client = anthropic.AsyncAnthropic(
                api_key=settings.anthropic_api_key,
                timeout=settings.extraction_request_timeout_s,
                max_retries=0,
            )
        return self._anthropic_client

    def _get_openai_client(self) -> Any:
        if self._openai_client is None:
            import openai

            self._openai_client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.extraction_request_timeout_s,
                max_retries=0,
            )
        return self._openai_client

    def _get_gemini_client(self) -> Any:
        if self._gemini_client is None:
            from google import genai
            from google.genai import types as genai_types

            self._gemini_client = genai.Client(
                api_key=settings.google_ai_api_key,
                http_options=genai_types.HttpOptions(
                    timeout=int(settings.extraction_request_timeout_s * 1000),
                ),
            )
        return self._gemini_client

    # ------------------------------------------------------------------
    # Provider calls
    # ------------------------------------------------------------------

    async def _call_anthropic(self, prompt: str) -> str:
        client = self._get_anthropic_client()
        response = await client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            getattr(block, "text", "") for block in response.content
        )

    async def _call_openai(self, prompt: str) -> str:
        client = self._get_openai_client()
        response = await client.chat.completions.create(
            model=self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    async def _call_gemini(self, prompt: str) -> str:
        from google.genai import types

        client = self._get_gemini_client()
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(max_output_tokens=self.max_tokens),
        )
        return response.text or ""

    async def complete(self, prompt: str, *, file_name: str = "") -> str:
        """Send one instruction and return the reply text.

        Raises:
            ServiceError: unknown provider, or any SDK / transport failure.
        """
        calls = {
            "anthropic": self._call_anthropic,
            "openai": self._call_openai,
            "google": self._call_gemini,
        }
        call = calls.get(self.provider)
        if call is None:
            raise ServiceError(f"Unsupported provider: {self.provider}")

        start = time.time()
        try:
            raw_text = await call(prompt)
        except Exception as exc:
            logger.error(
                "LLM call failed",
                provider=self.provider,
                model=self.model,
                file=file_name,
                error=str(exc),
            )
            raise ServiceError(
                f"Extraction service request failed: {exc}",
                {"provider": self.provider, "model": self.model},
            ) from exc

        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "LLM call",
            provider=self.provider,
            model=self.model,
            file=file_name,
            prompt_chars=len(prompt),
            reply_chars=len(raw_text),
            duration_ms=duration_ms,
        )
        return raw_text

    # ------------------------------------------------------------------
    # Reply parsing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_response(raw_text: str) -> ExtractedFields:
        """Locate the JSON object in a free-text reply and narrow it.

        Raises:
            MalformedResponse: no "{...}" span, or the span is not valid JSON.
        """
        span = locate_json_object(raw_text or "")
        if span is None:
            raise MalformedResponse("Failed to extract JSON from AI response")

        try:
            data = json.loads(span)
        except json.JSONDecodeError as exc:
            raise MalformedResponse(
                f"Failed to extract JSON from AI response: {exc.msg}",
                {"position": exc.pos},
            ) from exc

        return sanitize_extracted_fields(data)

