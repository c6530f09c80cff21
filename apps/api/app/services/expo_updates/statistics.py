"""Best-effort recording of manifest requests for download statistics."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Protocol

from sqlalchemy.orm import Session, sessionmaker

from apps.api.app.db.models import AppStatsEntry
from apps.api.app.db.session import get_session_factory

logger = logging.getLogger("ota.statistics")


@dataclass(frozen=True)
class StatsRecord:
    app_id: str
    build_id: str | None
    current_update_id: str | None
    embedded_update_id: str | None
    runtime_version: str
    platform: str
    channel: str


class StatisticsSink(Protocol):
    def record(self, entry: StatsRecord) -> None: ...


def persist_stats_record(db: Session, entry: StatsRecord) -> AppStatsEntry:
    row = AppStatsEntry(**asdict(entry))
    db.add(row)
    return row


class BackgroundStatisticsRecorder:
    """Bounded queue drained by one daemon thread.

    ``record`` never blocks: when the queue is full the entry is dropped with
    a warning. Write failures are logged and otherwise ignored.
    """

    def __init__(
        self,
        *,
        max_queue_size: int = 1000,
        session_factory_provider: Callable[[], sessionmaker[Session]] = get_session_factory,
    ) -> None:
        self._queue: queue.Queue[StatsRecord] = queue.Queue(maxsize=max_queue_size)
        self._session_factory_provider = session_factory_provider
        self._worker: threading.Thread | None = None
        self._lock = threading.Lock()

    def record(self, entry: StatsRecord) -> None:
        self._ensure_worker()
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            logger.warning("statistics queue full, dropping entry for app %s", entry.app_id)

    def flush(self) -> None:
        """Block until every queued entry has been processed."""
        self._queue.join()

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(
                target=self._drain,
                daemon=True,
                name="stats-recorder",
            )
            self._worker.start()

    def _drain(self) -> None:
        while True:
            entry = self._queue.get()
            try:
                self._write(entry)
            except Exception:
                logger.exception("failed to save statistics for app %s", entry.app_id)
            finally:
                self._queue.task_done()

    def _write(self, entry: StatsRecord) -> None:
        session_factory = self._session_factory_provider()
        with session_factory() as db:
            persist_stats_record(db, entry)
            db.commit()
