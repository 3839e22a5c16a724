"""
OpenAI Service for daily health insights.
Sends the recent day window to the chat completions API and returns the
raw text of the model's JSON answer. Parsing happens in insights_payload.
"""

import json
from typing import Any

import openai
from openai import AsyncOpenAI

from mhp.errors import InsightsUpstreamError
from mhp.infrastructure.observability.logging import get_logger
from mhp.models.domain.insights_domain import INSIGHT_SECTIONS

logger = get_logger(__name__)

SYSTEM_MESSAGE = """### Role
You are a supportive health coach. You read up to 14 days of a person's tracked
health metrics and write short, practical insights about the most recent day.

### Output Requirements
- Return ONLY valid JSON (no backticks, no prose, no markdown formatting)
- Output structure: {"overall": {...}, "sleep": {...}, "stress": {...}, "exercise": {...},
  "nutrition": {...}, "bp": {...}, "weight": {...}}
- Every section is {"title": "string", "body": "string"}; both must be non-empty
- Titles are at most 8 words; bodies are 1-3 sentences

### Rules
- Base every statement on the provided days only; compare the target day with
  the earlier days when that helps
- Missing fields mean the metric was not tracked that day. Never treat them as zero
- When a section has no data, say so briefly and suggest what to track
- Do not diagnose conditions or recommend medication
"""


class InsightsLLMService:
    """
    Service for OpenAI API integration focused on daily insight generation.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout_seconds: float = 60.0,
        max_retries: int = 1,
        max_output_tokens: int = 1800,
    ):
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_output_tokens = max_output_tokens
        self.client: AsyncOpenAI | None = None

        if api_key and api_key.strip():
            self.client = AsyncOpenAI(
                api_key=api_key.strip(),
                timeout=timeout_seconds,
                max_retries=max_retries,
            )
            logger.info("OpenAI client initialized", model=model, timeout=timeout_seconds)
        else:
            logger.warning("OPENAI_API_KEY not configured; insight generation disabled")

    @property
    def configured(self) -> bool:
        return self.client is not None

    def build_user_message(
        self,
        day_key: str,
        days: list[dict[str, Any]],
        time_zone: str,
        profile_name: str | None = None,
    ) -> str:
        document = {
            "profileName": profile_name,
            "dayKey": day_key,
            "timeZone": time_zone,
            "sections": list(INSIGHT_SECTIONS),
            "days": days,
        }
        return "### Data\n" + json.dumps(document, ensure_ascii=False, separators=(",", ":"))

    async def generate(
        self,
        day_key: str,
        days: list[dict[str, Any]],
        time_zone: str,
        profile_name: str | None = None,
    ) -> str:
        """
        Make the single upstream call and return the raw response text.

        Raises:
            InsightsUpstreamError: If the client is not configured, the call
                fails, or the response is empty
        """
        if not self.client:
            raise InsightsUpstreamError("OpenAI client not configured")

        logger.info("Calling OpenAI for insights", model=self.model, day_key=day_key, days=len(days))

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {
                        "role": "user",
                        "content": self.build_user_message(day_key, days, time_zone, profile_name),
                    },
                ],
                max_completion_tokens=self.max_output_tokens,
                response_format={"type": "json_object"},
            )
        except openai.APITimeoutError as e:
            logger.warning("OpenAI API timeout", timeout=self.timeout_seconds, error=str(e))
            raise InsightsUpstreamError("AI request timed out") from e
        except openai.RateLimitError as e:
            logger.warning("OpenAI rate limit hit", error=str(e))
            raise InsightsUpstreamError("AI service is busy, try again shortly") from e
        except openai.APIError as e:
            logger.error("OpenAI API error", error=str(e), error_type=type(e).__name__)
            raise InsightsUpstreamError(f"AI request failed: {e}") from e

        if not response.choices or not response.choices[0].message.content:
            raise InsightsUpstreamError("Empty response from OpenAI API")

        result = response.choices[0].message.content.strip()

        logger.info(
            "OpenAI API call successful",
            response_length=len(result),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return result
