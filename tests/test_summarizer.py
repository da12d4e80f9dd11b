"""Tests for the AI summary collaborator. It must fail open."""
import asyncio
from types import SimpleNamespace

from grievance_portal.api.deps import get_summarizer
from grievance_portal.services.summarizer import (
    EMPTY_MESSAGE,
    ERROR_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    GrievanceSummarizer
)


class FakeMessages:
    def __init__(self, text=None, error=None, delay=0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        content = [SimpleNamespace(type="text", text=self.text)] if self.text is not None else []
        return SimpleNamespace(content=content)


class FakeClient:
    def __init__(self, **kwargs):
        self.messages = FakeMessages(**kwargs)


def run(coro):
    return asyncio.run(coro)


class TestSummarizer:

    def test_missing_key_returns_fallback(self):
        summarizer = GrievanceSummarizer(api_key="")
        assert run(summarizer.summarize("Q4 marked wrong", "Data Structures")) == NOT_CONFIGURED_MESSAGE

    def test_returns_model_text(self):
        client = FakeClient(text="Summary: Q4 dispute. Recommendation: Assign to the subject faculty.")
        summarizer = GrievanceSummarizer(api_key="test-key", model="test-model", client=client)

        result = run(summarizer.summarize("Q4 marked wrong", "Data Structures"))

        assert result.startswith("Summary: Q4 dispute.")
        call = client.messages.calls[0]
        assert call["model"] == "test-model"
        assert "Data Structures" in call["messages"][0]["content"]
        assert "Q4 marked wrong" in call["messages"][0]["content"]

    def test_upstream_error_returns_fallback(self):
        client = FakeClient(error=RuntimeError("503 from upstream"))
        summarizer = GrievanceSummarizer(api_key="test-key", client=client)

        assert run(summarizer.summarize("Q4 marked wrong", "Data Structures")) == ERROR_MESSAGE

    def test_timeout_returns_fallback(self):
        client = FakeClient(text="too late", delay=1)
        summarizer = GrievanceSummarizer(api_key="test-key", timeout=0.05, client=client)

        assert run(summarizer.summarize("Q4 marked wrong", "Data Structures")) == ERROR_MESSAGE

    def test_empty_response_returns_fallback(self):
        client = FakeClient(text=None)
        summarizer = GrievanceSummarizer(api_key="test-key", client=client)

        assert run(summarizer.summarize("Q4 marked wrong", "Data Structures")) == EMPTY_MESSAGE

    def test_app_shares_one_summarizer(self):
        assert get_summarizer() is get_summarizer()
