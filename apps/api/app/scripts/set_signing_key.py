"""CLI for storing an app's code-signing private key, encrypted at rest."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from sqlalchemy.orm import Session

from apps.api.app.core.config import get_settings
from apps.api.app.db.models import App
from apps.api.app.db.session import get_session_factory
from apps.api.app.services.audit import log_structured_event
from apps.api.app.services.key_encryption import SecretDecryptionError, encrypt_secret


def store_signing_key(db: Session, *, app_id: str, private_key_pem: str, secret: str) -> App:
    """Encrypt ``private_key_pem`` and attach it to the app; raises ``ValueError``."""
    if "-----BEGIN" not in private_key_pem:
        raise ValueError("Invalid private key format")
    app = db.get(App, app_id)
    if app is None:
        raise ValueError(f"app not found: {app_id}")
    try:
        app.signing_key = encrypt_secret(private_key_pem, secret=secret)
    except SecretDecryptionError as exc:
        raise ValueError(str(exc)) from exc
    db.commit()
    log_structured_event("app.signing_key_set", app_id=app.id)
    return app


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Example\n"
            "    python -m apps.api.app.scripts.set_signing_key "
            "--app-id <app id> --key-file private-key.pem"
        ),
    )
    parser.add_argument("--app-id", required=True, help="Target app id")
    parser.add_argument("--key-file", required=True, help="Path to a PEM encoded RSA private key")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    key_path = Path(args.key_file).expanduser().resolve()
    if not key_path.exists():
        print(f"error: file not found: {key_path}", file=sys.stderr)
        return 2

    settings = get_settings()
    session_factory = get_session_factory()
    with session_factory() as db:
        try:
            app = store_signing_key(
                db,
                app_id=args.app_id,
                private_key_pem=key_path.read_text(encoding="utf-8"),
                secret=settings.app_pk_secret,
            )
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            return 2
        print(json.dumps({"app_id": app.id, "signing_key": "stored"}, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
