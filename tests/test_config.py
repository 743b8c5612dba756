from __future__ import annotations

import json
from pathlib import Path

import pytest

from utils.config import load_config

DOTENV_KEYS = (
    "POLL_MIN_SECONDS",
    "POLL_MAX_SECONDS",
    "FAILURE_POLICY",
    "REPLY_BODY",
    "REPLY_SIGNATURE",
    "BLAST_RECIPIENTS",
    "GOOGLE_TOKEN_JSON",
    "GOOGLE_TOKEN_B64",
    "GOOGLE_CLIENT_SECRETS_JSON",
    "GOOGLE_CLIENT_SECRETS_B64",
)


@pytest.fixture
def env(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("GOOGLE_CLIENT_SECRETS", str(tmp_path / "credentials.json"))
    monkeypatch.setenv("GOOGLE_TOKEN_PATH", str(tmp_path / "token.json"))
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("STATS_FILE", str(tmp_path / "data" / "stats.json"))
    monkeypatch.setenv("DB_PATH", str(tmp_path / "data" / "replies.db"))
    # load_dotenv writes into os.environ; register every key so teardown removes it
    for key in DOTENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    return tmp_path / "missing.env"


def test_defaults(env: Path, tmp_path: Path) -> None:
    config = load_config(env)

    assert config.label_name == "PENDING"
    assert (config.poll_min_seconds, config.poll_max_seconds) == (45, 120)
    assert config.failure_policy == "abort"
    assert config.http_port == 3001
    assert config.account.user_id == "me"
    assert config.blast.recipients == []
    assert config.reply_body.startswith("Dear,\n\nWe have received your mail")
    assert (tmp_path / "logs").is_dir()


def test_env_file_values_are_used(tmp_path: Path, env: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "POLL_MIN_SECONDS=10\nPOLL_MAX_SECONDS=20\nFAILURE_POLICY=Skip\n"
        "REPLY_SIGNATURE=Support Desk\nBLAST_RECIPIENTS=a@x.com, b@x.com,\n",
        encoding="utf-8",
    )

    config = load_config(env_file)

    assert (config.poll_min_seconds, config.poll_max_seconds) == (10, 20)
    assert config.failure_policy == "skip"
    assert config.reply_body.endswith("Regards,\nSupport Desk")
    assert config.blast.recipients == ["a@x.com", "b@x.com"]


def test_inline_token_is_written(env: Path, tmp_path: Path, monkeypatch) -> None:
    token = {"token": "t", "refresh_token": "r", "client_id": "c", "client_secret": "s"}
    monkeypatch.setenv("GOOGLE_TOKEN_JSON", json.dumps(token))

    config = load_config(env)

    assert json.loads(config.account.token_file.read_text(encoding="utf-8")) == token


@pytest.mark.parametrize(
    ("key", "value"),
    [("POLL_MIN_SECONDS", "soon"), ("POLL_MAX_SECONDS", "10"), ("FAILURE_POLICY", "retry")],
)
def test_invalid_values_are_rejected(env: Path, monkeypatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(ValueError):
        load_config(env)
