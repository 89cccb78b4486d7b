from pathlib import Path

import pytest
import yaml

from bwenv.config.settings import (
    DEFAULT_FOLDER,
    Settings,
    SettingsError,
    default_config_path,
    load_settings,
    resolve_folder,
)


def test_missing_config_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.yaml", environ={})
    assert settings == Settings()


def test_config_file_values_are_loaded(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump({"folder": "secrets", "log_level": "info", "rbw": {"command": "/opt/rbw"}}),
        encoding="utf-8",
    )
    settings = load_settings(path, environ={})
    assert settings.folder == "secrets"
    assert settings.log_level == "INFO"
    assert settings.rbw_command == "/opt/rbw"


def test_config_rejects_invalid_log_level(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("log_level: LOUD\n", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(path, environ={})


def test_config_rejects_non_object_root(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(path, environ={})


def test_config_path_prefers_explicit_env(tmp_path: Path) -> None:
    assert default_config_path({"BWENV_CONFIG": str(tmp_path / "c.yaml")}) == tmp_path / "c.yaml"
    assert default_config_path({"XDG_CONFIG_HOME": str(tmp_path)}) == tmp_path / "bwenv" / "config.yaml"


def test_folder_resolution_order() -> None:
    settings = Settings(folder="from-config")
    env = {"BWENV_FOLDER": "from-env"}
    assert resolve_folder("from-flag", settings, env) == "from-flag"
    assert resolve_folder(None, settings, env) == "from-env"
    assert resolve_folder(None, settings, {"BWENV_FOLDER": "  "}) == "from-config"
    assert resolve_folder(None, Settings(), {}) == DEFAULT_FOLDER
