from pathlib import Path

import pytest
from sqlalchemy import text

from apps.api.app.core.config import get_settings
from apps.api.app.db.session import get_db_session, get_engine


def test_engine_is_shared_until_database_url_changes(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("OTA_SERVER_DATABASE_URL", f"sqlite:///{tmp_path / 'first.sqlite'}")
    get_settings.cache_clear()
    first = get_engine()
    assert get_engine() is first

    monkeypatch.setenv("OTA_SERVER_DATABASE_URL", f"sqlite:///{tmp_path / 'second.sqlite'}")
    get_settings.cache_clear()
    second = get_engine()

    assert second is not first
    assert str(second.url).endswith("second.sqlite")


def test_db_session_dependency_closes_session(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("OTA_SERVER_DATABASE_URL", f"sqlite:///{tmp_path / 'session.sqlite'}")
    get_settings.cache_clear()

    dependency = get_db_session()
    session = next(dependency)
    assert session.execute(text("select 1")).scalar_one() == 1
    assert session.bind is get_engine()

    with pytest.raises(StopIteration):
        next(dependency)
    assert not session.in_transaction()
