from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))


@pytest.fixture
def backend_module(tmp_path, monkeypatch):
    db_path = tmp_path / "rxlens-test.sqlite"
    monkeypatch.setenv("RXLENS_DB_PATH", str(db_path))
    monkeypatch.setenv("RXLENS_IDENTITY_PROVIDER", "trusted")
    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-key")

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    return module


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _make(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {user_id}"}

    return _make


@pytest.fixture
def fake_model_text(backend_module, monkeypatch) -> Callable[[str], list[str]]:
    """Replace the Gemini call with canned text; returns the list of images it received."""

    def _install(text: str) -> list[str]:
        calls: list[str] = []

        def fake_analyze(image: str) -> str:
            calls.append(image)
            return text

        monkeypatch.setattr(backend_module.container.gemini, "analyze_prescription_image", fake_analyze)
        return calls

    return _install
