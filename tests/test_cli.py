from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

import main
from fakes import FakeMailbox
from services.gmail_service import GmailService


@pytest.fixture
def env_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("GOOGLE_CLIENT_SECRETS", str(tmp_path / "credentials.json"))
    monkeypatch.setenv("GOOGLE_TOKEN_PATH", str(tmp_path / "token.json"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STATS_FILE", str(tmp_path / "stats.json"))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "replies.db"))
    monkeypatch.setattr(main, "configure_logging", lambda log_dir, level="INFO": log_dir / "test.log")
    return tmp_path / ".env"


def test_stats_without_history(env_file: Path) -> None:
    result = CliRunner().invoke(main.cli, ["--env-file", str(env_file), "stats"])

    assert result.exit_code == 0
    assert "No stats recorded yet." in result.output


def test_poll_replies_and_records_stats(env_file: Path, monkeypatch) -> None:
    mailbox = FakeMailbox()
    message_id = mailbox.deliver("Bob <bob@x.com>", "Question")
    monkeypatch.setattr(main.AppContext, "gmail", lambda self: GmailService(mailbox))
    runner = CliRunner()

    result = runner.invoke(main.cli, ["--env-file", str(env_file), "poll"])

    assert result.exit_code == 0, result.output
    assert message_id in result.output
    assert len(mailbox.sent) == 1

    stats = runner.invoke(main.cli, ["--env-file", str(env_file), "stats"])
    assert "Replies sent" in stats.output


def test_send_without_credentials_fails_cleanly(env_file: Path) -> None:
    result = CliRunner().invoke(main.cli, ["--env-file", str(env_file), "send"])

    assert result.exit_code == 1
    assert "client secrets" in result.output


def test_blast_requires_recipients(env_file: Path, monkeypatch) -> None:
    monkeypatch.delenv("BLAST_RECIPIENTS", raising=False)

    result = CliRunner().invoke(main.cli, ["--env-file", str(env_file), "blast"])

    assert result.exit_code == 2
    assert "BLAST_RECIPIENTS" in result.output
