"""Tests for configuration loading."""

from pathlib import Path

import pytest

from tt_cli.config import Config, ConfigModel, get_config, load_config, save_config


class TestConfigModel:
    """Test the configuration model."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TT_DATA_DIR", raising=False)
        config = ConfigModel()
        assert config.data_dir == str(Path("~/.tt").expanduser())
        assert config.default_view == "today"
        assert config.sort == ""
        assert config.log_level == "WARNING"
        assert config.strict_regeneration is False

    def test_env_data_dir(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TT_DATA_DIR", str(tmp_path / "env"))
        assert ConfigModel().data_dir == str(tmp_path / "env")

    def test_yaml_round_trip(self, tmp_path):
        config = ConfigModel(data_dir=str(tmp_path), sort="due,title",
                             view_sort={"upcoming": "planned"}, strict_regeneration=True)
        restored = ConfigModel.from_yaml(config.to_yaml())
        assert restored == config

    def test_unknown_keys_are_ignored(self, tmp_path):
        config = ConfigModel.from_yaml(f"data_dir: {tmp_path}\ntheme: dark\n")
        assert config.data_dir == str(tmp_path)
        assert not hasattr(config, "theme")

    def test_non_mapping_is_rejected(self):
        with pytest.raises(ValueError):
            ConfigModel.from_yaml("- a\n- b\n")

    def test_get_sort(self):
        config = ConfigModel(sort="title", view_sort={"upcoming": "planned"})
        assert config.get_sort("upcoming") == "planned"
        assert config.get_sort("today") == "title"
        assert ConfigModel().get_sort("today") == ""

    def test_paths(self, tmp_path):
        config = ConfigModel(data_dir=str(tmp_path))
        assert config.get_tasks_dir() == tmp_path / "tasks"
        assert config.get_areas_path() == tmp_path / "areas.yaml"
        assert config.get_config_path() == tmp_path / "config.yaml"


class TestConfigManager:
    """Test loading and saving the config file."""

    def test_load_creates_default_file(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TT_DATA_DIR", str(tmp_path))
        path = tmp_path / "config.yaml"

        config = load_config(path)

        assert path.exists()
        assert config.data_dir == str(tmp_path)
        assert get_config() is config

    def test_load_existing_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(f"data_dir: {tmp_path}\ndefault_view: inbox\n", encoding="utf-8")

        assert load_config(path).default_view == "inbox"

    def test_broken_file_falls_back_to_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("default_view: [unclosed\n", encoding="utf-8")

        assert load_config(path).default_view == "today"

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "config.yaml"
        save_config(ConfigModel(data_dir=str(tmp_path), sort="due"), path)

        assert Config.reload(path).sort == "due"
