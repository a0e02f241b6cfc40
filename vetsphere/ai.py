import logging
from typing import Optional

import httpx

from vetsphere.config import Settings
from vetsphere.errors import InvalidRequest, NotConfigured, UpstreamProviderError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"


def normalize_base_url(raw: Optional[str]) -> str:
    # Most OpenAI-compatible proxies expect the /v1 prefix
    if not raw:
        return DEFAULT_BASE_URL
    if "/v1" in raw:
        return raw.rstrip("/")
    return f"{raw.rstrip('/')}/v1"


def chat_completion(settings: Settings, messages, temperature: float = 0.7,
                    top_p: float = 0.95, response_format: Optional[str] = None) -> dict:
    if not settings.ai_configured:
        raise NotConfigured("AI service not configured")

    if not isinstance(messages, list):
        raise InvalidRequest("Messages array is required")

    payload = {
        "model": settings.ai_model,
        "messages": messages,
        "temperature": temperature,
        "top_p": top_p,
    }
    if response_format == "json":
        payload["response_format"] = {"type": "json_object"}

    try:
        response = httpx.post(
            f"{normalize_base_url(settings.ai_base_url)}/chat/completions",
            json=payload,
            headers={"Authorization": f"Bearer {settings.ai_api_key}"},
            timeout=60.0,
        )
        response.raise_for_status()
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except httpx.HTTPError as e:
        logger.error("AI API error: %s", e)
        details = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
        raise UpstreamProviderError("AI request failed", details=details) from e
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Malformed AI API response: %r", e)
        raise UpstreamProviderError("AI request failed", details=f"Malformed provider response: {e!r}") from e

    return {
        "content": content,
        "model": data.get("model", settings.ai_model),
    }
