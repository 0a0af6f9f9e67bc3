"""Batch diagnosis and repair with per-task error isolation."""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from deletion_doctor.repair.catalog import TaskCatalog
from deletion_doctor.repair.diagnoser import Diagnoser
from deletion_doctor.repair.messages import describe_outcome, describe_symptom
from deletion_doctor.repair.models import (
    Diagnosis,
    InvalidTaskError,
    Outcome,
    StoreUnavailableError,
    SymptomKey,
    SymptomKind,
    TaskRecord,
)
from deletion_doctor.repair.surgeon import Surgeon

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskReport:
    """What happened to one task during a batch run."""

    task: TaskRecord
    diagnosis: Diagnosis | None = None
    outcome: Outcome | None = None
    error: str | None = None

    @property
    def needs_attention(self) -> bool:
        return self.error is not None or (
            self.diagnosis is not None and not self.diagnosis.is_healthy
        )


class DeletionReporter:
    """Facade running the catalog, diagnoser and surgeon over many tasks.

    A task whose diagnosis or repair fails is reported with its error and
    the batch moves on to the next task.
    """

    def __init__(self, *, catalog: TaskCatalog, diagnoser: Diagnoser, surgeon: Surgeon) -> None:
        self.catalog = catalog
        self.diagnoser = diagnoser
        self.surgeon = surgeon

    def diagnose_tasks(
        self,
        *,
        task_ids: Collection[int] = (),
        min_fail_delay: int | None = None,
    ) -> list[TaskReport]:
        tasks = self.catalog.load(task_ids=task_ids, min_fail_delay=min_fail_delay)
        return [self.diagnose_task(task) for task in tasks.values()]

    def fix_tasks(
        self,
        *,
        task_ids: Collection[int] = (),
        min_fail_delay: int | None = None,
    ) -> list[TaskReport]:
        """Diagnose every selected task and repair the unhealthy ones."""

        tasks = self.catalog.load(task_ids=task_ids, min_fail_delay=min_fail_delay)
        return [self.fix_task(task) for task in tasks.values()]

    def diagnose_task(self, task: TaskRecord) -> TaskReport:
        report = TaskReport(task=task)
        try:
            report.diagnosis = self.diagnoser.diagnose(task)
        except (StoreUnavailableError, InvalidTaskError) as error:
            logger.warning("Diagnosis of task %s failed: %s", task.task_id, error)
            report.error = str(error)
        return report

    def fix_task(self, task: TaskRecord) -> TaskReport:
        report = self.diagnose_task(task)
        if report.diagnosis is None or report.diagnosis.is_healthy:
            return report
        try:
            report.outcome = self.surgeon.operate(report.diagnosis)
        except (StoreUnavailableError, InvalidTaskError) as error:
            logger.warning("Repair of task %s failed: %s", task.task_id, error)
            report.error = str(error)
        return report


def render_diagnoses(reports: Iterable[TaskReport]) -> list[str]:
    """Plain-text symptom listing; empty when no task needs attention."""

    lines: list[str] = []
    for report in reports:
        if not report.needs_attention:
            continue
        lines.append(_task_heading(report.task))
        if report.diagnosis is not None:
            lines.append("  Symptoms:")
            for key, kinds in report.diagnosis.symptoms.items():
                prefix = _symptom_prefix(key)
                lines.extend(f"    - {prefix}{describe_symptom(kind)}" for kind in kinds)
        if report.error is not None:
            lines.append(f"  Error: {report.error}")
    if lines:
        lines.insert(0, "Diagnosis")
    return lines


def render_outcomes(reports: Iterable[TaskReport]) -> list[str]:
    lines: list[str] = []
    for report in reports:
        if report.outcome is None and report.error is None:
            continue
        lines.append(_task_heading(report.task))
        if report.outcome is not None:
            lines.append("  Result messages:")
            lines.extend(
                f"    - {describe_outcome(message)}" for message in report.outcome.messages
            )
            lines.append(f"  Status: {'fixed' if report.outcome.succeeded else 'not fixed'}")
        if report.error is not None:
            lines.append(f"  Error: {report.error}")
    if lines:
        lines.insert(0, "Results")
    return lines


def _task_heading(task: TaskRecord) -> str:
    cm_ids = ", ".join("-" if cm_id is None else str(cm_id) for cm_id in task.targets)
    return f"Task {task.task_id} (course modules: {cm_ids})"


def _symptom_prefix(key: SymptomKey) -> str:
    if isinstance(key, SymptomKind):
        return ""
    if key is None:
        return "[course module without id] "
    return f"[course module {key}] "
