"""Shared test fixtures for pet-vision-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import pytest


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit real Gemini API."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/pet-vision-mcp/.env."""
    monkeypatch.setattr(
        "pet_vision_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config singleton between tests."""
    import pet_vision_mcp.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _clear_result_store():
    from pet_vision_mcp.handoff import result_store

    result_store.clear()
    yield
    result_store.clear()


@pytest.fixture()
def mock_gemini_client():
    """Patch GeminiClient.get() and .generate() for unit tests."""
    with (
        patch("pet_vision_mcp.client.GeminiClient.get") as mock_get,
        patch(
            "pet_vision_mcp.client.GeminiClient.generate", new_callable=AsyncMock
        ) as mock_gen,
    ):
        client = MagicMock()
        mock_get.return_value = client
        yield {
            "get": mock_get,
            "generate": mock_gen,
            "client": client,
        }


class FakeCapture:
    """Stand-in for ``cv2.VideoCapture`` serving solid-colour frames.

    Records every seek so tests can assert on sampling order. Seeks listed
    in *fail_at_ms* yield a failed read.
    """

    def __init__(
        self,
        *,
        fps: float = 30.0,
        frame_total: float = 300.0,
        width: int = 1280,
        height: int = 720,
        opened: bool = True,
        fail_at_ms: set[float] | None = None,
    ) -> None:
        self.fps = fps
        self.frame_total = frame_total
        self.width = width
        self.height = height
        self.opened = opened
        self.fail_at_ms = fail_at_ms or set()
        self.seeks: list[float] = []
        self.released = False
        self._pos_ms = 0.0

    def isOpened(self) -> bool:  # noqa: N802 - mirrors cv2 API
        return self.opened

    def get(self, prop: int) -> float:
        import cv2

        if prop == cv2.CAP_PROP_FPS:
            return self.fps
        if prop == cv2.CAP_PROP_FRAME_COUNT:
            return self.frame_total
        return 0.0

    def set(self, prop: int, value: float) -> bool:
        import cv2

        if prop == cv2.CAP_PROP_POS_MSEC:
            self._pos_ms = value
            self.seeks.append(value)
        return True

    def read(self):
        if any(abs(self._pos_ms - ms) < 1e-6 for ms in self.fail_at_ms):
            return False, None
        return True, np.full((self.height, self.width, 3), 127, dtype=np.uint8)

    def release(self) -> None:
        self.released = True


@pytest.fixture()
def fake_capture(monkeypatch):
    """Install a FakeCapture factory in place of cv2.VideoCapture.

    Call the returned function with FakeCapture kwargs; it returns the
    capture instance the code under test will open.
    """
    import cv2

    def install(**kwargs: Any) -> FakeCapture:
        capture = FakeCapture(**kwargs)
        monkeypatch.setattr(cv2, "VideoCapture", lambda *_args, **_kw: capture)
        return capture

    return install
