"""Task, peon and realtime update models for the Workcraft stronghold."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .errors import DecodeError


class TaskStatus(Enum):
    """Lifecycle states of a task on the bountyboard."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    INVALID = "INVALID"
    CANCELLED = "CANCELLED"


class PeonStatus(Enum):
    """Lifecycle states of a worker peon."""

    IDLE = "IDLE"
    PREPARING = "PREPARING"
    WORKING = "WORKING"
    OFFLINE = "OFFLINE"


class UpdateKind(Enum):
    """Realtime update discriminator."""

    TASK_UPDATE = "TaskUpdate"
    PEON_UPDATE = "PeonUpdate"

    @classmethod
    def _missing_(cls, value: object) -> UpdateKind | None:
        # Older strongholds send snake_case discriminators
        aliases = {"task_update": cls.TASK_UPDATE, "peon_update": cls.PEON_UPDATE}
        if isinstance(value, str):
            return aliases.get(value.lower())
        return None


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Unsupported timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(frozen=True)
class TaskPayload:
    """Arguments for a task's run step and its optional pre/post-run hooks."""

    task_args: list[Any] = field(default_factory=list)
    task_kwargs: dict[str, Any] = field(default_factory=dict)
    prerun_handler_args: list[Any] = field(default_factory=list)
    prerun_handler_kwargs: dict[str, Any] = field(default_factory=dict)
    postrun_handler_args: list[Any] = field(default_factory=list)
    postrun_handler_kwargs: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_partial(cls, partial: dict[str, Any] | None = None) -> TaskPayload:
        """Build a payload, filling every missing field with an empty collection."""
        partial = partial or {}
        unknown = set(partial) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown payload fields: {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in partial.items() if value is not None})

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str | None) -> TaskPayload:
        if isinstance(data, str):
            data = json.loads(data)
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("Task payload is not a JSON object")
        return cls.from_partial(
            {key: data.get(key) for key in cls.__dataclass_fields__}
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Task:
    """Snapshot of a bountyboard task."""

    id: str
    status: TaskStatus
    name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    peon_id: str | None = None
    queue: str = "DEFAULT"
    payload: TaskPayload = field(default_factory=TaskPayload)
    result: Any | None = None
    retry_on_failure: bool = False
    retry_count: int = 0
    retry_limit: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        """Build a task from its JSON/row representation.

        The stronghold has used both ``peon_id`` and ``worker_id`` for the
        assigned worker, and both ``task_name`` and ``name`` for the name.
        """
        return cls(
            id=str(data["id"]),
            status=TaskStatus(data["status"]),
            name=data.get("task_name", data.get("name")),
            created_at=_parse_timestamp(data.get("created_at")),
            updated_at=_parse_timestamp(data.get("updated_at")),
            peon_id=data.get("peon_id", data.get("worker_id")),
            queue=data.get("queue") or "DEFAULT",
            payload=TaskPayload.from_dict(data.get("payload")),
            result=data.get("result"),
            retry_on_failure=bool(data.get("retry_on_failure", False)),
            retry_count=int(data.get("retry_count") or 0),
            retry_limit=int(data.get("retry_limit") or 0),
        )


@dataclass(frozen=True)
class Peon:
    """Snapshot of a worker peon."""

    id: str
    status: PeonStatus
    last_heartbeat: datetime | None = None
    current_task: str | None = None
    queues: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Peon:
        queues = data.get("queues") or ()
        if isinstance(queues, str):
            # Stored as a JSON list or a single queue name in the peon table
            queues = json.loads(queues) if queues.startswith("[") else [queues]
        return cls(
            id=str(data["id"]),
            status=PeonStatus(data["status"]),
            last_heartbeat=_parse_timestamp(data.get("last_heartbeat")),
            current_task=data.get("current_task"),
            queues=tuple(queues),
        )


@dataclass(frozen=True)
class Update:
    """Realtime update pushed by the chieftain endpoint."""

    kind: UpdateKind
    task: Task | None = None
    peon: Peon | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Update:
        kind = UpdateKind(data.get("kind", data.get("type")))
        if kind is UpdateKind.TASK_UPDATE:
            return cls(kind=kind, task=Task.from_dict(data["task"]))
        return cls(kind=kind, peon=Peon.from_dict(data["peon"]))


def decode_update(raw: str | bytes) -> Update:
    """Decode a raw realtime event body into an Update.

    Raises:
        DecodeError: If the body is not JSON or not a known update shape.
    """
    try:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("Update body is not a JSON object")
        return Update.from_dict(data)
    except (ValueError, KeyError, TypeError, AttributeError) as err:
        raise DecodeError(f"Malformed update: {err}") from err
