"""Shared pytest fixtures."""

from unittest.mock import MagicMock

import pytest
import yaml

from formbuilder.settings import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Run each test from an empty directory with a fresh settings cache."""
    monkeypatch.chdir(tmp_path)
    for var in ("FORMBUILDER_CSRF_FIELD", "FORMBUILDER_INPUT_CLASS", "FORMBUILDER_ERROR_CLASS"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings_file(tmp_path):
    """Write a formbuilder.yaml into the working directory."""
    def _create(config: dict):
        path = tmp_path / "formbuilder.yaml"
        with open(path, "w") as f:
            yaml.safe_dump(config, f)
        get_settings.cache_clear()
        return path

    return _create


@pytest.fixture
def mock_request_factory():
    """Factory fixture that returns mock requests with a session dict."""
    def _make(session=None, form_data=None, method="POST"):
        request = MagicMock()
        request.method = method
        request.session = session if session is not None else {}

        async def _form():
            return form_data or {}

        request.form = _form
        return request
    return _make
