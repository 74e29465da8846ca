import os
import tempfile

# Settings are read at import time; point everything at throwaway locations
_TMP_DIR = tempfile.mkdtemp(prefix="wardrobe-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/wardrobe.db")
os.environ.setdefault("LOCAL_STORAGE_PATH", f"{_TMP_DIR}/storage")
os.environ.setdefault("PUBLIC_BASE_URL", "http://test")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT_JSON", "false")

import pytest
from typing import AsyncGenerator, List, Optional
from httpx import AsyncClient, ASGITransport

from src.main import app
from src.api.dependencies import get_background_removal, get_completion
from src.core.database import engine


class FakeBackgroundRemoval:
    """Stands in for remove.bg: returns fixed PNG bytes and records calls."""

    def __init__(self, result: bytes = b"\x89PNG-clean", error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[str] = []

    async def remove_background(self, image_url: str) -> bytes:
        self.calls.append(image_url)
        if self.error:
            raise self.error
        return self.result

    async def aclose(self):
        pass


class FakeCompletion:
    """Stands in for the completion provider with canned answers."""

    def __init__(self, vision_raw: str = "", chat_answer: Optional[str] = "ok"):
        self.vision_raw = vision_raw
        self.chat_answer = chat_answer
        self.vision_calls = []
        self.chat_calls = []

    async def describe_image(self, prompt: str, image_url: str, temperature: float = 0.0) -> str:
        self.vision_calls.append({"prompt": prompt, "image_url": image_url, "temperature": temperature})
        return self.vision_raw

    async def complete(self, messages, temperature: float, operation: str = "chat"):
        self.chat_calls.append({"messages": messages, "temperature": temperature})
        return self.chat_answer

    async def aclose(self):
        pass


@pytest.fixture
def fake_background_removal() -> FakeBackgroundRemoval:
    return FakeBackgroundRemoval()


@pytest.fixture
def fake_completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
async def client(fake_background_removal, fake_completion) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_background_removal] = lambda: fake_background_removal
    app.dependency_overrides[get_completion] = lambda: fake_completion

    # Trigger lifespan events (startup/shutdown)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac

    app.dependency_overrides.clear()
    await engine.dispose()
