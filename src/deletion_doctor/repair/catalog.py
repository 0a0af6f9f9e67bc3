"""Collect delete-modules tasks from the queue and resolve their targets."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterator, Mapping
from typing import Any

from deletion_doctor.repair.models import InvalidTaskError, TargetDescriptor, TaskRecord
from deletion_doctor.repair.ports import RecordStore, TaskQueue

logger = logging.getLogger(__name__)


class TaskCatalog:
    """Read-only view of the queued delete-modules tasks."""

    def __init__(self, *, queue: TaskQueue, store: RecordStore, classname: str) -> None:
        self.queue = queue
        self.store = store
        self.classname = classname

    def load(
        self,
        *,
        task_ids: Collection[int] = (),
        min_fail_delay: int | None = None,
    ) -> dict[int, TaskRecord]:
        """Return matching tasks keyed by task id; empty ``task_ids`` means all."""

        jobs = self.queue.list_jobs(
            self.classname,
            task_ids=task_ids or None,
            min_fail_delay=min_fail_delay,
        )
        tasks: dict[int, TaskRecord] = {}
        for job in jobs:
            if job.task_id is None:
                continue
            try:
                tasks[job.task_id] = self.build_task(job.task_id, job.payload)
            except InvalidTaskError as error:
                logger.warning("Skipping task %s: %s", job.task_id, error)
        return tasks

    def build_task(self, task_id: int, payload: Mapping[str, Any]) -> TaskRecord:
        """Decode a queue payload into a task record with resolved targets.

        Entries naming the same course module (or none) collapse into one
        target; the collision is logged.
        """

        if not isinstance(payload, Mapping):
            raise InvalidTaskError(f"Task {task_id} payload is not a mapping.")
        targets: dict[int | None, TargetDescriptor] = {}
        for entry in _payload_entries(payload):
            target = self.resolve_target(entry)
            if target.cm_id in targets:
                logger.warning(
                    "Task %s lists course module %s more than once; keeping the first entry",
                    task_id,
                    "without id" if target.cm_id is None else target.cm_id,
                )
                continue
            targets[target.cm_id] = target
        return TaskRecord(task_id=task_id, payload=dict(payload), targets=targets)

    def resolve_target(self, entry: Mapping[str, Any]) -> TargetDescriptor:
        """Fill a payload entry from the live course module record where possible.

        The module type is only resolved through the live record; a payload
        cannot vouch for a type the store no longer knows.
        """

        cm_id = _as_int(entry.get("id"))
        live = self.store.get("course_modules", {"id": cm_id}) if cm_id is not None else None

        module_id = _as_int(live.get("module_id")) if live else None
        module_name = None
        if module_id is not None:
            module = self.store.get("modules", {"id": module_id})
            if module is not None:
                module_name = module["name"]

        return TargetDescriptor(
            cm_id=cm_id,
            course_id=_first_int(entry.get("course_id"), live, "course_id"),
            module_id=module_id,
            module_name=module_name,
            section_id=_first_int(entry.get("section_id"), live, "section_id"),
            instance_id=_first_int(entry.get("instance_id"), live, "instance_id"),
        )


def _payload_entries(payload: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    raw = payload.get("targets")
    if isinstance(raw, Mapping):
        for key, value in raw.items():
            entry = dict(value) if isinstance(value, Mapping) else {}
            entry.setdefault("id", key)
            yield entry
    elif isinstance(raw, list):
        for value in raw:
            if isinstance(value, Mapping):
                yield value


def _first_int(value: Any, live: Mapping[str, Any] | None, field: str) -> int | None:
    resolved = _as_int(value)
    if resolved is None and live is not None:
        resolved = _as_int(live.get(field))
    return resolved


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
