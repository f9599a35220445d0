"""
Google (Gemini) Adapter
Queries Gemini with the Google Search grounding tool enabled
"""

from datetime import datetime
from typing import Optional

import httpx

from app.config import get_settings
from .base import (
    BaseLLMAdapter,
    LLMConfig,
    LLMResponse,
    LLMProviderType,
    LLMAdapterError,
    LLMRateLimitError,
    LLMAuthenticationError,
    LLMTimeoutError,
)

settings = get_settings()


class GoogleAdapter(BaseLLMAdapter):
    """Adapter for Google Gemini API"""

    API_BASE = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: Optional[str] = None, config: Optional[LLMConfig] = None):
        super().__init__(api_key or settings.GOOGLE_API_KEY, config)

    @property
    def provider(self) -> LLMProviderType:
        return LLMProviderType.GOOGLE

    @property
    def default_model(self) -> str:
        return settings.GOOGLE_DEFAULT_MODEL

    def _default_config(self) -> LLMConfig:
        return LLMConfig(
            model=self.default_model,
            temperature=settings.LLM_DEFAULT_TEMPERATURE,
            timeout=settings.LLM_REQUEST_TIMEOUT,
        )

    def _build_payload(self, prompt: str, cfg: LLMConfig, system_prompt: Optional[str]) -> dict:
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": prompt}],
                }
            ],
            "generationConfig": {
                "temperature": cfg.temperature,
            },
        }

        if cfg.web_grounding:
            payload["tools"] = [{"google_search": {}}]
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}
        payload["generationConfig"].update(cfg.extra_params)

        return payload

    async def execute(
        self,
        prompt: str,
        config: Optional[LLMConfig] = None,
        system_prompt: Optional[str] = None,
    ) -> LLMResponse:
        """Execute a single grounded prompt"""
        if not self.api_key:
            raise LLMAuthenticationError("GOOGLE_API_KEY is not configured", self.provider)

        cfg = config or self.config or self._default_config()
        request_time = datetime.utcnow()

        url = f"{self.API_BASE}/models/{cfg.model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                response = await client.post(
                    url,
                    json=self._build_payload(prompt, cfg, system_prompt),
                    headers={
                        "Content-Type": "application/json",
                        "x-goog-api-key": self.api_key,
                    },
                )
        except httpx.TimeoutException:
            raise LLMTimeoutError(
                f"Request timed out after {cfg.timeout}s",
                self.provider,
            )
        except httpx.RequestError as e:
            raise LLMAdapterError(
                f"Request failed: {str(e)}",
                self.provider,
            )

        response_time = datetime.utcnow()

        if response.status_code == 401 or response.status_code == 403:
            raise LLMAuthenticationError(
                "Invalid API key",
                self.provider,
                {"status_code": response.status_code}
            )
        elif response.status_code == 429:
            raise LLMRateLimitError(
                "Rate limit exceeded",
                self.provider,
                {"status_code": response.status_code}
            )
        elif response.status_code != 200:
            raise LLMAdapterError(
                f"API error: {response.text}",
                self.provider,
                {"status_code": response.status_code, "response": response.text}
            )

        data = response.json()

        # Check for errors in response
        if "error" in data:
            raise LLMAdapterError(
                data["error"].get("message", "Unknown error"),
                self.provider,
                {"error": data["error"]}
            )

        candidates = data.get("candidates", [])
        if not candidates:
            raise LLMAdapterError(
                "No response candidates returned",
                self.provider,
                {"response": data}
            )

        candidate = candidates[0]
        content = ""
        for part in candidate.get("content", {}).get("parts", []):
            if "text" in part:
                content += part["text"]

        return LLMResponse(
            content=content,
            raw_response=data,
            provider=self.provider,
            model=cfg.model,
            finish_reason=candidate.get("finishReason"),
            grounding_metadata=candidate.get("groundingMetadata") or {},
            request_time=request_time,
            response_time=response_time,
            latency_ms=self._calculate_latency(request_time, response_time),
        )
