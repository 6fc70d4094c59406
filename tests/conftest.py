# tests/conftest.py
from pathlib import Path

import pytest

from script_src_generator.core.managers.config_manager import config_manager
from script_src_generator.core.utils.path_utils import PathUtils

FIXTURES_DIR = Path(__file__).parent / "fixtures"

BUNDLED_SETTINGS = PathUtils.get_settings_file()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keeps every test on the bundled settings.json, ignoring the developer's home directory."""
    monkeypatch.setattr(PathUtils, "get_settings_file", staticmethod(lambda: BUNDLED_SETTINGS))
    monkeypatch.setattr(PathUtils, "get_user_settings_file", staticmethod(lambda: tmp_path / "no-user-settings.json"))
    config_manager.reset()
    yield config_manager
    monkeypatch.undo()
    config_manager.reset()


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR
