"""Tests for settings loading and validation (pharmacy_config)."""

import pytest
import yaml

from pharmacy_config import CONFIG_ENV_VAR, EngineSettings, get_settings, load_settings
from pharmacy_config.loader import load_yaml_file, parse_settings


def _write(path, data):
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaults:

    def test_packaged_defaults_match_dataclass(self):
        assert get_settings() == EngineSettings()

    def test_default_values(self):
        settings = get_settings()
        assert settings.currency == "INR"
        assert settings.money_places == 2
        assert settings.cas_max_attempts == 5
        assert settings.invoice_number_prefix == "INV"
        assert settings.reject_empty_state_tax is True

    def test_no_path_no_env_returns_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert load_settings() is get_settings()


class TestLoadSettings:

    def test_file_overrides_some_keys(self, tmp_path):
        path = _write(tmp_path / "engine.yaml", {"cas_max_attempts": 8, "invoice_number_prefix": "PK"})

        settings = load_settings(path)

        assert settings.cas_max_attempts == 8
        assert settings.invoice_number_prefix == "PK"
        assert settings.invoice_number_width == 6

    def test_env_var_used_when_no_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "engine.yaml", {"money_places": 3})
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_settings().money_places == 3

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path) == get_settings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_unknown_key_rejected(self, tmp_path):
        path = _write(tmp_path / "engine.yaml", {"cas_retries": 3})
        with pytest.raises(ValueError, match="cas_retries"):
            load_settings(path)

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_logs_loaded_settings(self, tmp_path, captured_logs):
        path = _write(tmp_path / "engine.yaml", {"cas_max_attempts": 3})
        load_settings(path)

        [entry] = [r for r in captured_logs() if r["message"] == "settings_loaded"]
        assert entry["cas_max_attempts"] == 3


class TestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"cas_max_attempts": 0},
            {"cas_max_attempts": 11},
            {"cas_max_attempts": True},
            {"money_places": 7},
            {"currency": "RUPEE"},
            {"invoice_number_prefix": ""},
            {"invoice_number_width": 0},
            {"reject_empty_state_tax": "yes"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            parse_settings(overrides)

    @pytest.mark.parametrize("attempts", [1, 10])
    def test_attempt_bounds_inclusive(self, attempts):
        assert parse_settings({"cas_max_attempts": attempts}).cas_max_attempts == attempts

    def test_settings_are_frozen(self):
        with pytest.raises(AttributeError):
            EngineSettings().cas_max_attempts = 2
