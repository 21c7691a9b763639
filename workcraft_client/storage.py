"""Direct database backend for the stronghold's ``peon`` and ``bountyboard`` tables.

An alternative to the HTTP endpoints for deployments that share the
stronghold's database. Every operation verifies the required tables exist
before querying.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Final

from sqlalchemy import DateTime, Engine, bindparam, create_engine, inspect, text

from .errors import StorageUnavailableError
from .models import Peon, Task, TaskPayload, TaskStatus

_LOGGER = logging.getLogger(__name__)

REQUIRED_TABLES: Final = ("peon", "bountyboard")


def utc_now() -> datetime:
    """Current UTC timestamp."""
    return datetime.now(tz=UTC)


class StrongholdDatabase:
    """SQLAlchemy-backed access to stronghold tasks and peons."""

    def __init__(
        self,
        engine: Engine,
        *,
        id_factory: Callable[[], uuid.UUID] = uuid.uuid4,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.engine = engine
        self._id_factory = id_factory
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> StrongholdDatabase:
        """Build a backend from a URL such as ``mysql+pymysql://user:pw@host/workcraft``."""
        return cls(create_engine(url, pool_pre_ping=True), **kwargs)

    def close(self) -> None:
        self.engine.dispose()

    def missing_tables(self) -> list[str]:
        existing = set(inspect(self.engine).get_table_names())
        return [table for table in REQUIRED_TABLES if table not in existing]

    def assert_tables_setup(self) -> None:
        """Raise StorageUnavailableError if a required table is missing."""
        missing = self.missing_tables()
        if missing:
            _LOGGER.error("Missing tables: %s", ", ".join(missing))
            raise StorageUnavailableError(missing)

    def get_task_by_id(self, task_id: str) -> Task | None:
        self.assert_tables_setup()
        with self.engine.connect() as connection:
            row = (
                connection.execute(
                    text("SELECT * FROM bountyboard WHERE id = :id"), {"id": task_id}
                )
                .mappings()
                .first()
            )
        return Task.from_dict(dict(row)) if row is not None else None

    def get_peon_by_id(self, peon_id: str) -> Peon | None:
        self.assert_tables_setup()
        with self.engine.connect() as connection:
            row = (
                connection.execute(
                    text("SELECT * FROM peon WHERE id = :id"), {"id": peon_id}
                )
                .mappings()
                .first()
            )
        return Peon.from_dict(dict(row)) if row is not None else None

    def create_task(
        self,
        task_name: str,
        task_payload: dict[str, Any] | None = None,
        *,
        queue: str = "DEFAULT",
        retry_on_failure: bool = False,
        retry_limit: int = 0,
    ) -> Task | None:
        """Insert a PENDING task and return it as stored."""
        self.assert_tables_setup()
        task_id = str(self._id_factory())
        now = self._clock()
        row = {
            "id": task_id,
            "task_name": task_name,
            "status": TaskStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
            "worker_id": None,
            "queue": queue,
            "payload": json.dumps(TaskPayload.from_partial(task_payload).to_dict()),
            "retry_on_failure": retry_on_failure,
            "retry_count": 0,
            "retry_limit": retry_limit,
        }
        columns = ", ".join(row)
        placeholders = ", ".join(f":{name}" for name in row)
        with self.engine.begin() as connection:
            connection.execute(
                text(
                    f"INSERT INTO bountyboard ({columns}) VALUES ({placeholders})"
                ).bindparams(
                    bindparam("created_at", type_=DateTime(timezone=True)),
                    bindparam("updated_at", type_=DateTime(timezone=True)),
                ),
                row,
            )
        _LOGGER.info("Task %s (%s) created on queue %s", task_id, task_name, queue)
        return self.get_task_by_id(task_id)

    def cancel_task(self, task_id: str) -> bool:
        """Delete a task that has not started yet.

        Returns:
            True if a PENDING task was removed
        """
        self.assert_tables_setup()
        with self.engine.begin() as connection:
            result = connection.execute(
                text("DELETE FROM bountyboard WHERE id = :id AND status = :status"),
                {"id": task_id, "status": TaskStatus.PENDING.value},
            )
        return result.rowcount > 0
