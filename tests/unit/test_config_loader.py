from pathlib import Path

import pytest

from src.config.loader import load_settings, resolve_config_path

VALID_CONFIG = """
application:
  port: 8123
  base_url: https://newsletter.example.com/
database:
  path: ./data/newsletter.db
email_client:
  sender_email: newsletter@example.com
  timeout_milliseconds: 2500
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "configuration.yaml"
    path.write_text(VALID_CONFIG)
    return path


def test_load_valid_config(config_file: Path) -> None:
    settings = load_settings(config_file, environ={})

    assert settings.application.port == 8123
    assert settings.application.base_url == "https://newsletter.example.com"
    assert settings.email_client.sender_email == "newsletter@example.com"
    assert settings.email_client.timeout_seconds == 2.5
    assert settings.email_client.enabled is False
    assert settings.logging.level == "INFO"
    assert settings.newsletter.token_length == 20


def test_repo_configuration_file_is_valid() -> None:
    path = Path(__file__).resolve().parents[2] / "configuration.yaml"

    settings = load_settings(path, environ={})

    assert settings.email_client.sender_email


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml", environ={})


def test_invalid_yaml_raises(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("application: [unclosed")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_settings(path, environ={})


def test_non_mapping_raises(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- one\n- two\n")

    with pytest.raises(ValueError, match="mapping"):
        load_settings(path, environ={})


def test_missing_sender_fails_validation(tmp_path: Path) -> None:
    path = tmp_path / "nosender.yaml"
    path.write_text("application:\n  port: 8000\n")

    with pytest.raises(ValueError, match="validation failed"):
        load_settings(path, environ={})


def test_unknown_section_rejected(config_file: Path) -> None:
    config_file.write_text(VALID_CONFIG + "surprise:\n  key: value\n")

    with pytest.raises(ValueError):
        load_settings(config_file, environ={})


def test_invalid_log_level_rejected(config_file: Path) -> None:
    config_file.write_text(VALID_CONFIG + "logging:\n  level: chatty\n")

    with pytest.raises(ValueError):
        load_settings(config_file, environ={})


def test_env_overrides(config_file: Path, tmp_path: Path) -> None:
    settings = load_settings(
        config_file,
        environ={
            "NEWSLETTER_BASE_URL": "https://override.example.com",
            "NEWSLETTER_PORT": "9000",
            "NEWSLETTER_EMAIL_AUTHORIZATION_TOKEN": "secret-token",
            "NEWSLETTER_LOG_LEVEL": "debug",
            "NEWSLETTER_DATA_DIR": str(tmp_path / "data"),
        },
    )

    assert settings.application.base_url == "https://override.example.com"
    assert settings.application.port == 9000
    assert settings.email_client.authorization_token.get_secret_value() == "secret-token"
    assert settings.logging.level == "DEBUG"
    assert settings.database.path == str(tmp_path / "data" / "newsletter.db")


def test_authorization_token_not_exposed_in_repr(config_file: Path) -> None:
    settings = load_settings(
        config_file, environ={"NEWSLETTER_EMAIL_AUTHORIZATION_TOKEN": "secret-token"}
    )

    assert "secret-token" not in repr(settings)


def test_resolve_config_path_prefers_explicit(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NEWSLETTER_CONFIG", str(tmp_path / "from-env.yaml"))

    assert resolve_config_path(tmp_path / "explicit.yaml") == tmp_path / "explicit.yaml"
    assert resolve_config_path() == tmp_path / "from-env.yaml"


def test_resolve_config_path_default(monkeypatch) -> None:
    monkeypatch.delenv("NEWSLETTER_CONFIG", raising=False)

    assert resolve_config_path() == Path("configuration.yaml")
