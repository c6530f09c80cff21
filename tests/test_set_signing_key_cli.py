from __future__ import annotations

import json
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from alembic import command
from alembic.config import Config
from apps.api.app.db.models import App, Organization
from apps.api.app.scripts import set_signing_key as cli
from apps.api.app.services.key_encryption import decrypt_secret

PK_SECRET = "cli-test-secret"


def _prepare_db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    db_url = f"sqlite:///{tmp_path / 'signing_key.sqlite'}"
    config = Config("alembic.ini")
    config.set_main_option("sqlalchemy.url", db_url)
    command.upgrade(config, "head")
    with Session(create_engine(db_url)) as session:
        session.add(Organization(id="org-1", name="Org"))
        session.add(App(id="app-1", organization_id="org-1", title="App", slug="app"))
        session.commit()

    monkeypatch.setenv("OTA_SERVER_DATABASE_URL", db_url)
    monkeypatch.setenv("OTA_SERVER_APP_PK_SECRET", PK_SECRET)
    return db_url


def _write_pem(tmp_path: Path) -> tuple[Path, str]:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    path = tmp_path / "private-key.pem"
    path.write_text(pem, encoding="utf-8")
    return path, pem


def test_cli_stores_encrypted_signing_key(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    db_url = _prepare_db(tmp_path, monkeypatch)
    key_path, pem = _write_pem(tmp_path)

    exit_code = cli.main(["--app-id", "app-1", "--key-file", str(key_path)])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out) == {"app_id": "app-1", "signing_key": "stored"}
    with Session(create_engine(db_url)) as session:
        stored = session.get(App, "app-1").signing_key
    assert stored is not None
    assert "BEGIN" not in stored
    assert decrypt_secret(stored, secret=PK_SECRET) == pem


def test_cli_rejects_non_pem_input(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _prepare_db(tmp_path, monkeypatch)
    key_path = tmp_path / "key.txt"
    key_path.write_text("not a key", encoding="utf-8")

    exit_code = cli.main(["--app-id", "app-1", "--key-file", str(key_path)])

    assert exit_code == 2
    assert "Invalid private key format" in capsys.readouterr().err


def test_cli_reports_unknown_app(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    _prepare_db(tmp_path, monkeypatch)
    key_path, _ = _write_pem(tmp_path)

    exit_code = cli.main(["--app-id", "missing", "--key-file", str(key_path)])

    assert exit_code == 2
    assert "app not found: missing" in capsys.readouterr().err


def test_cli_reports_missing_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = cli.main(["--app-id", "app-1", "--key-file", str(tmp_path / "absent.pem")])

    assert exit_code == 2
    assert "file not found" in capsys.readouterr().err
