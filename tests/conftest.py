"""
Shared test doubles.
"""

import json
from typing import List, Optional

import pytest

from suggestion_engine.storage.models import Provider


def suggestions_reply(count: int = 3, category: Optional[str] = None) -> str:
    """Provider reply carrying `count` well-formed suggestions."""
    items = []
    for index in range(count):
        item = {
            "title": f"Idea {index}",
            "description": f"Description {index}",
            "prompt": f"Write something useful number {index}",
            "tags": ["idea", f"tag{index}"],
            "complexity": 2,
        }
        if category:
            item["category"] = category
        items.append(item)
    return json.dumps({"suggestions": items})


class FakeClient:
    """LLMClient that returns canned replies and records prompts."""

    def __init__(self, name: Provider, reply="", error: Optional[Exception] = None):
        self.name = name
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def openai_client():
    return FakeClient(Provider.OPENAI, suggestions_reply())


@pytest.fixture
def anthropic_client():
    return FakeClient(Provider.ANTHROPIC, suggestions_reply())


@pytest.fixture
def clients(openai_client, anthropic_client):
    return {Provider.OPENAI: openai_client, Provider.ANTHROPIC: anthropic_client}
