"""Controllers for the check/fix CLI command and the report page actions."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from deletion_doctor.config import Settings
from deletion_doctor.repair.catalog import TaskCatalog
from deletion_doctor.repair.diagnoser import Diagnoser
from deletion_doctor.repair.models import Outcome
from deletion_doctor.repair.reporter import (
    DeletionReporter,
    TaskReport,
    render_diagnoses,
    render_outcomes,
)
from deletion_doctor.repair.surgeon import Surgeon
from deletion_doctor.storage.notifications import SQLNotificationSink
from deletion_doctor.storage.records import SQLRecordStore
from deletion_doctor.storage.task_queue import TaskQueueRepository

ACTION_FIX_MODULE = "fix_module"
ACTION_SEPARATE_MODULE = "separate_module"


@dataclass(slots=True)
class CheckTasksCommand:
    """CLI inputs for the check (and optional fix) command.

    Empty ``task_ids`` selects every queued delete-modules task.
    """

    db_path: Path | None
    task_ids: tuple[int, ...]
    min_fail_delay: int | None
    fix: bool


@dataclass(slots=True)
class ModuleActionCommand:
    """Inputs posted by a report page action button."""

    db_path: Path | None
    action: str
    task_id: int
    cm_id: int | None = None


@dataclass(slots=True)
class _Services:
    queue: TaskQueueRepository
    catalog: TaskCatalog
    surgeon: Surgeon
    reporter: DeletionReporter


class DeletionDoctorController:
    """Coordinates delete-modules task checks and repairs."""

    def check(self, command: CheckTasksCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        min_fail_delay = (
            settings.repair.min_fail_delay_seconds
            if command.min_fail_delay is None
            else command.min_fail_delay
        )
        with _services(settings) as services:
            classname = settings.repair.task_classname
            total = len(services.queue.list_jobs(classname))
            selected = len(services.queue.list_jobs(classname, task_ids=command.task_ids or None))
            lines = [f"Checking {selected}/{total} delete-module tasks...", ""]
            if total == 0:
                lines.append("...No delete-module tasks found.")
                return lines
            if command.task_ids and selected == 0:
                requested = ", ".join(str(task_id) for task_id in command.task_ids)
                raise ValueError(f"No delete-module tasks found for task ids: {requested}")

            reports = services.reporter.diagnose_tasks(
                task_ids=command.task_ids,
                min_fail_delay=min_fail_delay,
            )
            diagnosis_lines = render_diagnoses(reports)
            if not diagnosis_lines and not command.fix:
                lines.append(
                    "... No issues found "
                    f"(minimum fail delay filter: {min_fail_delay} seconds)",
                )
                return lines
            lines.extend(diagnosis_lines)

            if command.fix:
                fixed = services.reporter.fix_tasks(
                    task_ids=command.task_ids,
                    min_fail_delay=min_fail_delay,
                )
                outcome_lines = render_outcomes(fixed)
                lines.extend(outcome_lines or ["Results", "  Nothing to fix."])
        return lines

    def handle_action(self, command: ModuleActionCommand) -> list[str]:
        """Run one report page action against a single task."""

        if command.action not in {ACTION_FIX_MODULE, ACTION_SEPARATE_MODULE}:
            raise ValueError(f"Unknown action: {command.action!r}")

        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        with _services(settings) as services:
            task = services.catalog.load(task_ids=(command.task_id,)).get(command.task_id)
            if task is None:
                return [f"Delete-modules task {command.task_id} could not be found."]
            if command.cm_id is not None and command.cm_id not in task.targets:
                return [
                    f"Course module {command.cm_id} is not targeted by task {command.task_id}.",
                ]

            if command.action == ACTION_SEPARATE_MODULE:
                if not task.is_multi_module_task:
                    return [
                        f"Task {command.task_id} targets a single course module; "
                        "nothing to separate.",
                    ]
                report = TaskReport(
                    task=task,
                    outcome=Outcome(
                        task=task,
                        messages=tuple(services.surgeon.separate_multi_module_task(task)),
                    ),
                )
            else:
                report = services.reporter.fix_task(task)

        lines = render_outcomes([report])
        return lines or [f"Task {command.task_id}: no issues found."]


@contextmanager
def _services(settings: Settings) -> Iterator[_Services]:
    store = SQLRecordStore(settings.db_path, sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    queue = TaskQueueRepository(
        settings.db_path,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    try:
        store.init_schema()
        catalog = TaskCatalog(queue=queue, store=store, classname=settings.repair.task_classname)
        surgeon = Surgeon(
            queue=queue,
            store=store,
            notifier=SQLNotificationSink(store.engine),
            classname=settings.repair.task_classname,
            component=settings.repair.task_component,
            admin_user_id=settings.repair.admin_user_id,
        )
        yield _Services(
            queue=queue,
            catalog=catalog,
            surgeon=surgeon,
            reporter=DeletionReporter(
                catalog=catalog,
                diagnoser=Diagnoser(queue=queue, store=store),
                surgeon=surgeon,
            ),
        )
    finally:
        queue.close()
        store.close()
