"""Unit tests for configuration management."""

import logging
from pathlib import Path

import pytest

from tidyvault.config import (
    ConfigError,
    ConfigManager,
    TidyVaultConfig,
    resolve_with_precedence,
)
from tidyvault.config.models import (
    DEFAULT_ATTACHMENT_FOLDER,
    DEFAULT_CUSTOM_PATTERN,
    OrganizerSettings,
)
from tidyvault.config.resolver import expand_dotted


def _fresh_manager(tmp_path: Path) -> ConfigManager:
    vault = tmp_path / "vault"
    vault.mkdir(exist_ok=True)
    return ConfigManager(vault, env={})


def test_ensure_exists_creates_default_file(tmp_path: Path) -> None:
    manager = _fresh_manager(tmp_path)

    path = manager.ensure_exists()

    assert path == tmp_path / "vault" / ".tidyvault" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "tidyvault configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert isinstance(config, TidyVaultConfig)
    assert config.organizer.attachment_folder == DEFAULT_ATTACHMENT_FOLDER


def test_resolve_with_precedence_respects_order(tmp_path: Path) -> None:
    manager = _fresh_manager(tmp_path)
    manager.ensure_exists()

    manager.save({"organizer": {"organize_mode": "date"}, "ocr": {"batch_size": 2}})

    env = {"TIDYVAULT__OCR__BATCH_SIZE": "7", "TIDYVAULT__UNLINKED__MATCH_MODE": "strict"}
    cli = {"ocr.batch_size": 3}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.organizer.organize_mode == "date"
    assert config.unlinked.match_mode == "strict"
    # CLI overrides take precedence over environment
    assert config.ocr.batch_size == 3


def test_env_mapping_passed_to_manager_is_used(tmp_path: Path) -> None:
    vault = tmp_path / "vault"
    vault.mkdir()
    manager = ConfigManager(vault, env={"TIDYVAULT__ORGANIZER__ORGANIZE_BY_NOTE": "true"})

    config = manager.load()

    assert config.organizer.organize_by_note is True


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    manager = _fresh_manager(tmp_path)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=TidyVaultConfig(),
            file_overrides={"organizer": {"organize_mode": "alphabetical"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=TidyVaultConfig(),
            file_overrides={"organizer": {"attachement_folder": "Files"}},
        )


def test_update_persists_dotted_changes(tmp_path: Path) -> None:
    manager = _fresh_manager(tmp_path)
    manager.ensure_exists()

    manager.update({"organizer.has_confirmed_first_run": True})

    assert manager.load_file_overrides()["organizer"]["has_confirmed_first_run"] is True
    assert manager.load().organizer.has_confirmed_first_run is True


def test_update_rejects_invalid_values_without_writing(tmp_path: Path) -> None:
    manager = _fresh_manager(tmp_path)
    manager.ensure_exists()
    before = manager.load_file_overrides()

    with pytest.raises(ConfigError):
        manager.update({"organizer.interval_minutes": -5})

    assert manager.load_file_overrides() == before


@pytest.mark.parametrize("value", ["", "/abs/path", "../outside", "a/../../b"])
def test_invalid_attachment_folder_falls_back_to_default(
    value: str, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger="tidyvault"):
        settings = OrganizerSettings(attachment_folder=value)

    assert settings.attachment_folder == DEFAULT_ATTACHMENT_FOLDER
    if value:
        assert "falling back" in caplog.text


@pytest.mark.parametrize("value", ["", "  ", "/{{type}}", "../{{type}}", "{{type}}\\..\\up"])
def test_invalid_custom_pattern_falls_back_to_default(
    value: str, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger="tidyvault"):
        settings = OrganizerSettings(custom_pattern=value)

    assert settings.custom_pattern == DEFAULT_CUSTOM_PATTERN
    if value.strip():
        assert "falling back" in caplog.text


def test_custom_pattern_is_normalized() -> None:
    settings = OrganizerSettings(custom_pattern="  {{type}}\\{{year}}/ ")

    assert settings.custom_pattern == "{{type}}/{{year}}"


def test_list_settings_accept_comma_separated_strings() -> None:
    settings = OrganizerSettings(
        attachment_extensions=".PNG, pdf,png",
        excluded_folders="Templates/, Archive\\Old",
        attachment_folder="/Files/",
    )

    assert settings.attachment_extensions == ["png", "pdf"]
    assert settings.excluded_folders == ["Templates", "Archive/Old"]
    # A leading slash marks an absolute path and falls back to the default.
    assert settings.attachment_folder == DEFAULT_ATTACHMENT_FOLDER


def test_expand_dotted_merges_keys_into_shared_sections() -> None:
    tree = expand_dotted(
        {"ocr.batch_size": 2, "ocr": {"max_attempts": 4}, "organizer.organize_mode": "date"},
        label="CLI",
    )

    assert tree == {
        "ocr": {"batch_size": 2, "max_attempts": 4},
        "organizer": {"organize_mode": "date"},
    }


def test_dotted_key_below_a_scalar_is_rejected() -> None:
    with pytest.raises(ConfigError, match="not a section"):
        resolve_with_precedence(
            defaults=TidyVaultConfig(),
            cli_overrides={"ocr": 5, "ocr.batch_size": 2},
        )
