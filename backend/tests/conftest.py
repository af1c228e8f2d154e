"""Shared test fixtures for the Project Intake backend test suite."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Iterable

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.modules.extraction.agents.service_client import ExtractionServiceClient
from app.modules.extraction.errors import ServiceError
from app.modules.extraction.router import get_service_client


class FakeServiceClient(ExtractionServiceClient):
    """Scripted LLM client: returns (or raises) the queued replies in order."""

    def __init__(self, replies: Iterable[str | Exception] = ()) -> None:
        super().__init__(provider="anthropic", model="fake-model")
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def complete(self, prompt: str, *, file_name: str = "") -> str:
        self.prompts.append(prompt)
        if not self.replies:
            raise ServiceError("No scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def fake_llm() -> FakeServiceClient:
    return FakeServiceClient()


@pytest.fixture
async def client(fake_llm: FakeServiceClient) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client that talks directly to the FastAPI ASGI app."""
    app.dependency_overrides[get_service_client] = lambda: fake_llm
    transport = ASGITransport(app=app)  # type: ignore[arg-type]
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_service_client, None)
