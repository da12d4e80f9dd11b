"""
AI summary of a grievance for the admin reviewing it.

This sits outside the workflow: it never gates a transition and it fails
open. A missing key, a timeout or an upstream error all come back as a
readable fallback string instead of an exception.
"""
import asyncio
from typing import Optional

from anthropic import AsyncAnthropic

from grievance_portal import config
from grievance_portal.logging_config import get_logger

log = get_logger("GrievanceSummarizer")

NOT_CONFIGURED_MESSAGE = "API Key not configured. Unable to perform AI analysis."
ERROR_MESSAGE = "Error connecting to AI service."
EMPTY_MESSAGE = "Could not generate analysis."

SYSTEM_PROMPT = "You are an expert academic administrator assistant."

PROMPT_TEMPLATE = """Analyze the following student grievance description regarding the subject "{subject}".

Description: "{description}"

Please provide a concise summary (max 2 sentences) and a recommended initial action for the administrator.
Format: "Summary: [Summary]. Recommendation: [Action]."
"""


class GrievanceSummarizer:
    """Wraps the Anthropic client. Pass ``client`` to substitute a fake in tests."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client=None
    ):
        self.api_key = config.ANTHROPIC_API_KEY if api_key is None else api_key
        self.model = model or config.AI_SUMMARY_MODEL
        self.timeout = timeout or config.AI_SUMMARY_TIMEOUT
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def summarize(self, description: str, subject: str) -> str:
        if not self.api_key and self._client is None:
            return NOT_CONFIGURED_MESSAGE

        prompt = PROMPT_TEMPLATE.format(subject=subject, description=description)
        try:
            response = await asyncio.wait_for(
                self.client.messages.create(
                    model=self.model,
                    max_tokens=300,
                    system=SYSTEM_PROMPT,
                    messages=[{"role": "user", "content": prompt}]
                ),
                timeout=self.timeout
            )
        except Exception as e:
            log.error("ai_summary_failed", subject=subject, error_type=type(e).__name__, error=str(e))
            return ERROR_MESSAGE

        text = "".join(
            getattr(block, "text", "") for block in (response.content or [])
        ).strip()
        return text or EMPTY_MESSAGE


async def summarize(description: str, subject: str) -> str:
    """Summarize with the configured key and model."""
    return await GrievanceSummarizer().summarize(description, subject)
