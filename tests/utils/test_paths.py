"""Tests for data directory resolution."""

from pathlib import Path

from agentsquare.utils import paths


class TestDataDir:
    def test_source_checkout_uses_project_root(self, monkeypatch):
        monkeypatch.setattr(paths, "is_source_checkout", lambda: True)
        assert paths.get_data_dir() == paths._PROJECT_ROOT

    def test_installed_uses_platform_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(paths, "is_source_checkout", lambda: False)
        monkeypatch.setattr(
            paths.platformdirs, "user_data_dir", lambda name, appauthor: str(tmp_path / name)
        )
        assert paths.get_data_dir() == tmp_path / "agentsquare"

    def test_default_db_path(self, monkeypatch, tmp_path):
        monkeypatch.setattr(paths, "get_data_dir", lambda: tmp_path)
        assert paths.get_default_db_path() == tmp_path / "agentsquare.db"

    def test_ensure_data_dir_creates(self, monkeypatch, tmp_path):
        target = tmp_path / "nested" / "data"
        monkeypatch.setattr(paths, "get_data_dir", lambda: target)
        assert paths.ensure_data_dir() == target
        assert Path(target).is_dir()
