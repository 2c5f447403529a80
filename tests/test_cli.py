# tests/test_cli.py
import json

import pytest

from medialib import cli
from medialib.core.config import settings
from medialib.core.security import decode_access_token


@pytest.fixture()
def cli_settings(tmp_path, monkeypatch):
    media_root = tmp_path / "media"
    media_root.mkdir()
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setattr(settings, "MEDIA_ROOT", str(media_root))
    return media_root


def test_token_command_prints_a_valid_token(capsys):
    assert cli.main(["token", "alice", "--role", "viewer"]) == 0
    claims = decode_access_token(capsys.readouterr().out.strip())
    assert claims["sub"] == "alice"
    assert claims["role"] == "viewer"


def test_init_db_then_jobs(cli_settings, capsys):
    assert cli.main(["init-db"]) == 0
    capsys.readouterr()

    assert cli.main(["check-tags"]) == 0
    assert json.loads(capsys.readouterr().out)["checkedCount"] == 0

    assert cli.main(["populate-tags", "--start-id", "5"]) == 0
    assert json.loads(capsys.readouterr().out)["createdCount"] == 0


def test_scan_outside_the_root_fails_cleanly(cli_settings, capsys):
    cli.main(["init-db"])
    assert cli.main(["scan", "../"]) == 1


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])
