import time
from typing import Any

import anthropic
import structlog

from prreview.core.config import get_settings
from prreview.core.exceptions import GenerationError, LLMProviderUnavailableError
from prreview.core.metrics import record_llm_request
from prreview.prompts.review import build_review_prompt

logger = structlog.get_logger()

REVIEW_MODEL = "claude-sonnet-4-20250514"
REVIEW_MAX_TOKENS = 4096
REVIEW_TEMPERATURE = 0.7

# Pricing per 1M tokens
ANTHROPIC_PRICING = {
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
}


class AnthropicReviewer:
    """Generates a free-form review of a diff with Claude."""

    provider = "anthropic"

    def __init__(self, api_key: str | None = None, client: Any = None) -> None:
        self._api_key = api_key
        self._client = client

    @property
    def model(self) -> str:
        return REVIEW_MODEL

    def _get_client(self) -> Any:
        """Lazy initialization of the Anthropic client."""
        if self._client is None:
            api_key = self._api_key
            if api_key is None:
                configured = get_settings().anthropic_api_key
                api_key = configured.get_secret_value() if configured else None
            if not api_key:
                raise LLMProviderUnavailableError("Anthropic API key not configured")

            self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        return self._client

    def estimate_cost(self, input_tokens: int, output_tokens: int) -> float:
        pricing = ANTHROPIC_PRICING[self.model]
        input_cost = (input_tokens / 1_000_000) * pricing["input"]
        output_cost = (output_tokens / 1_000_000) * pricing["output"]
        return input_cost + output_cost

    async def review(self, diff_text: str) -> str | None:
        """
        Review a diff.

        Returns:
            The review text, or None when there is nothing to review. No
            request is made for an empty diff.

        Raises:
            GenerationError: The request failed or the response carried no text.
        """
        if not diff_text.strip():
            return None

        try:
            client = self._get_client()
        except LLMProviderUnavailableError as e:
            raise GenerationError(f"Claude API error: {e.message}") from e

        prompt = build_review_prompt(diff_text)

        logger.debug(
            "Sending review request to Anthropic", model=self.model, prompt_chars=len(prompt)
        )

        start_time = time.perf_counter()
        try:
            message = await client.messages.create(
                model=self.model,
                max_tokens=REVIEW_MAX_TOKENS,
                temperature=REVIEW_TEMPERATURE,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            record_llm_request(
                provider=self.provider,
                model=self.model,
                status="error",
                duration_seconds=time.perf_counter() - start_time,
            )
            logger.error("Anthropic API error", error=str(e))
            raise GenerationError(
                f"Claude API error: {e}", details={"payload": getattr(e, "body", None)}
            ) from e

        duration_seconds = time.perf_counter() - start_time
        text = self._extract_text(message)

        input_tokens = getattr(getattr(message, "usage", None), "input_tokens", 0) or 0
        output_tokens = getattr(getattr(message, "usage", None), "output_tokens", 0) or 0

        if text is None:
            record_llm_request(
                provider=self.provider,
                model=self.model,
                status="error",
                duration_seconds=duration_seconds,
            )
            payload = self._dump(message)
            logger.error("Anthropic response has no text", payload=payload)
            raise GenerationError(
                f"Claude API error: API Error: {payload}", details={"payload": payload}
            )

        cost = self.estimate_cost(input_tokens, output_tokens)
        record_llm_request(
            provider=self.provider,
            model=self.model,
            status="success",
            duration_seconds=duration_seconds,
            tokens_input=input_tokens,
            tokens_output=output_tokens,
            cost_usd=cost,
        )
        logger.info(
            "Review generated",
            model=self.model,
            tokens_used=input_tokens + output_tokens,
            cost_usd=round(cost, 6),
            chars=len(text),
        )

        return text

    def _extract_text(self, message: Any) -> str | None:
        """Return the first non-empty text block of a response."""
        for block in getattr(message, "content", None) or []:
            if getattr(block, "type", None) == "text" and getattr(block, "text", None):
                text: str = block.text
                return text
        return None

    def _dump(self, message: Any) -> Any:
        if hasattr(message, "model_dump"):
            return message.model_dump()
        return message
