"""Claude client for the AI check: one ``messages.create`` call, no retries."""
import logging
from typing import Optional

import anthropic

from debate_backend import config
from debate_backend.services.errors import UpstreamError, UpstreamErrorKind

logger = logging.getLogger(__name__)

OVERLOADED_STATUS = 529


def classify_anthropic_error(error: Exception) -> UpstreamErrorKind:
    """Map an SDK exception onto the upstream error kinds the API reports."""
    if isinstance(error, anthropic.APITimeoutError):
        return UpstreamErrorKind.TIMEOUT
    if isinstance(error, anthropic.AuthenticationError):
        return UpstreamErrorKind.AUTHENTICATION
    if isinstance(error, anthropic.RateLimitError):
        return UpstreamErrorKind.RATE_LIMITED
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code == OVERLOADED_STATUS:
            return UpstreamErrorKind.OVERLOADED
        if error.status_code == 401:
            return UpstreamErrorKind.AUTHENTICATION
        if error.status_code == 429:
            return UpstreamErrorKind.RATE_LIMITED
        return UpstreamErrorKind.UNKNOWN
    if "overloaded" in str(error).lower():
        return UpstreamErrorKind.OVERLOADED
    return UpstreamErrorKind.UNKNOWN


class AnthropicSuggestionClient:
    """
    Thin wrapper over ``anthropic.AsyncAnthropic``.

    The SDK client is built on first use so the app starts without a key;
    a missing key then surfaces as an authentication ``UpstreamError``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else config.ANTHROPIC_API_KEY
        self.model = model or config.AI_CHECK_MODEL
        self.max_tokens = max_tokens or config.AI_CHECK_MAX_TOKENS
        self.timeout_seconds = timeout_seconds or config.AI_CHECK_TIMEOUT_SECONDS
        self._client: Optional[anthropic.AsyncAnthropic] = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self.api_key:
                logger.error("ANTHROPIC_API_KEY is not set")
                raise UpstreamError(UpstreamErrorKind.AUTHENTICATION, "ANTHROPIC_API_KEY is not set")
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=self.timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def generate(self, prompt: str) -> str:
        """Send ``prompt`` as a single user message and return the text reply, stripped."""
        client = self._get_client()
        logger.info("[AI CHECK] model=%s prompt_chars=%d", self.model, len(prompt))
        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.AnthropicError as e:
            kind = classify_anthropic_error(e)
            logger.error("[AI CHECK] request failed (%s): %s", kind.value, e)
            raise UpstreamError(kind, str(e)) from e

        if not message.content or getattr(message.content[0], "type", None) != "text":
            logger.error("[AI CHECK] unexpected response format from AI")
            raise UpstreamError(UpstreamErrorKind.UNKNOWN, "Unexpected response format from AI")

        text = message.content[0].text.strip()
        logger.info("[AI CHECK] response_chars=%d", len(text))
        return text

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
