"""Chat-completion clients for OpenAI-compatible model providers."""
from __future__ import annotations

from jobfilter.config import Settings
from jobfilter.errors import ConfigError, EvaluationError
from jobfilter.log import get_logger

log = get_logger(__name__)

BASE_URLS: dict[str, str] = {
    "mistral": "https://api.mistral.ai/v1",
    "berget": "https://api.berget.ai/v1",
}


class ChatClient:
    """``complete(messages) -> text`` against one provider/model."""

    def __init__(self, provider: str, model: str, api_key: str, *, timeout: float = 60.0) -> None:
        from openai import OpenAI

        if provider not in BASE_URLS:
            raise ConfigError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.model = model
        # Retries are handled by the cycle's own policy.
        self._client = OpenAI(
            api_key=api_key,
            base_url=BASE_URLS[provider],
            timeout=timeout,
            max_retries=0,
        )

    def complete(self, messages: list[dict[str, str]]) -> str:
        r = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=0,
            response_format={"type": "json_object"},
        )
        content = r.choices[0].message.content if r.choices else None
        if not content or not isinstance(content, str):
            raise EvaluationError(f"Empty response from {self.provider} API")
        return content


def create_chat_client(settings: Settings) -> ChatClient:
    if settings.ai_provider == "berget":
        key = settings.berget_api_key
    else:
        key = settings.mistral_api_key
    if not key:
        raise ConfigError(f"No API key configured for AI provider {settings.ai_provider}")
    log.info("AI provider: %s (%s)", settings.ai_provider, settings.ai_model)
    return ChatClient(settings.ai_provider, settings.ai_model, key)
