import asyncio
import json
import threading
from datetime import date, timedelta

import pytest

from mhp.config import Settings
from mhp.models.domain.insights_domain import INSIGHT_SECTIONS


def valid_insights_payload() -> dict:
    return {
        section: {"title": f"{section.title()} summary", "body": f"Notes about {section}."}
        for section in INSIGHT_SECTIONS
    }


def build_days(end_day_key: str, count: int, **metrics) -> list[dict]:
    """`count` consecutive daily records ending at `end_day_key`."""
    end = date.fromisoformat(end_day_key)
    days = []
    for offset in range(count - 1, -1, -1):
        record = {"dayKey": (end - timedelta(days=offset)).isoformat()}
        record.update(metrics)
        days.append(record)
    return days


class FakeLLMService:
    """Stands in for InsightsLLMService; optionally waits for `gate` before answering."""

    def __init__(self, response: str | None = None, error: Exception | None = None, configured: bool = True):
        self.model = "test-model"
        self.configured = configured
        self.response = response if response is not None else json.dumps(valid_insights_payload())
        self.error = error
        self.gate: threading.Event | None = None
        self.calls: list[dict] = []

    async def generate(self, day_key, days, time_zone, profile_name=None) -> str:
        self.calls.append(
            {"day_key": day_key, "days": days, "time_zone": time_zone, "profile_name": profile_name}
        )
        if self.gate is not None:
            while not self.gate.is_set():
                await asyncio.sleep(0.01)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_llm():
    return FakeLLMService()


@pytest.fixture
def make_settings():
    def _make(**overrides) -> Settings:
        values = {
            "environment": "development",
            "OPENAI_API_KEY": "test-key",
            "OPENAI_MODEL": "test-model",
            "MHP_PROXY_SECRET": None,
            "INSIGHTS_JOB_PRUNE_INTERVAL_SECONDS": 3600,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def days_builder():
    return build_days


@pytest.fixture
def insights_payload():
    return valid_insights_payload()
