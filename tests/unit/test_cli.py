import os
import sqlite3
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

import pytest

from src.app_shell import cli


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    path = tmp_path / "configuration.yaml"
    path.write_text(
        "database:\n"
        f"  path: {tmp_path / 'data' / 'newsletter.db'}\n"
        "email_client:\n"
        "  sender_email: newsletter@example.com\n"
    )
    return path


@pytest.fixture
def issue_files(tmp_path: Path) -> tuple[Path, Path]:
    html = tmp_path / "issue.html"
    text = tmp_path / "issue.txt"
    html.write_text("<p>Issue</p>")
    text.write_text("Issue")
    return html, text


def test_parser_requires_command() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_bad_config_exits_1(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--config", str(tmp_path / "missing.yaml"), "migrate"])

    assert exc_info.value.code == 1


def test_migrate_creates_database(config_path: Path, tmp_path: Path, capsys) -> None:
    cli.main(["--config", str(config_path), "migrate"])

    assert (tmp_path / "data" / "newsletter.db").exists()
    assert "Applied 2 migration(s)" in capsys.readouterr().out


def test_publish_reports_summary(
    config_path: Path, tmp_path: Path, issue_files: tuple[Path, Path], capsys
) -> None:
    cli.main(["--config", str(config_path), "migrate"])
    conn = sqlite3.connect(tmp_path / "data" / "newsletter.db")
    conn.execute(
        "INSERT INTO subscriptions (id, email, name, status, subscribed_at) "
        "VALUES (?, 'reader@example.com', 'reader', 'confirmed', ?)",
        (str(uuid4()), datetime.now(UTC).isoformat()),
    )
    conn.commit()
    conn.close()

    html, text = issue_files
    cli.main([
        "--config", str(config_path),
        "publish", "--title", "Issue #1",
        "--html-file", str(html), "--text-file", str(text),
    ])

    assert "Attempted 1, delivered 1, skipped 0, failed 0." in capsys.readouterr().out


def test_publish_without_tables_exits_1(
    config_path: Path, issue_files: tuple[Path, Path]
) -> None:
    html, text = issue_files
    (config_path.parent / "data").mkdir()

    with pytest.raises(SystemExit) as exc_info:
        cli.main([
            "--config", str(config_path),
            "publish", "--title", "Issue #1",
            "--html-file", str(html), "--text-file", str(text),
        ])

    assert exc_info.value.code == 1


def test_serve_passes_settings_to_uvicorn(config_path: Path, monkeypatch) -> None:
    calls = {}

    def fake_run(app_path, **kwargs):
        calls["app"] = app_path
        calls.update(kwargs)

    monkeypatch.setattr("uvicorn.run", fake_run)
    monkeypatch.setenv("NEWSLETTER_CONFIG", "unused.yaml")

    cli.main(["--config", str(config_path), "serve", "--port", "8765"])

    assert calls["app"] == "src.api.main:app"
    assert calls["port"] == 8765
    assert calls["host"] == "127.0.0.1"
    assert os.environ["NEWSLETTER_CONFIG"] == str(config_path.resolve())
