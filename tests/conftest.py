"""Pytest configuration and shared fixtures."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.api.container import Container, reset_container, set_container
from src.domain.entities.stream_events import Finish, TextDelta
from src.domain.ports.config import AppConfig, PersistenceConfig, WorkspaceConfig
from src.domain.ports.llm import LLMResponse
from src.main import app


class FakeLLM:
    """Offline model: streams ``reply`` in small pieces."""

    def __init__(self, reply: str = "Done.<chat-summary>Test turn</chat-summary>"):
        self.reply = reply
        self.calls = []

    async def generate(self, messages, model=None, temperature=0.7):
        return LLMResponse(content="general", model=model or "fake")

    async def stream_events(self, messages, model=None, tools=None, provider_options=None, signal=None):
        self.calls.append(list(messages))
        for i in range(0, len(self.reply), 8):
            yield TextDelta(self.reply[i : i + 8])
        yield Finish()

    async def is_available(self) -> bool:
        return False


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def container(tmp_path, fake_llm):
    """Container wired to the fake model and a temporary output dir."""
    config = AppConfig(
        persistence=PersistenceConfig(output_dir=str(tmp_path / "output")),
        workspace=WorkspaceConfig(project_root=str(tmp_path / "project")),
    )
    test_container = Container(config=config, llm=fake_llm)
    set_container(test_container)
    yield test_container
    reset_container()


@pytest_asyncio.fixture
async def client(container):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
