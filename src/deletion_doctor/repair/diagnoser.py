"""Detect the symptoms left behind by a failed course module deletion."""

from __future__ import annotations

import logging

from deletion_doctor.repair.models import (
    CONTEXT_LEVEL_MODULE,
    Diagnosis,
    SymptomKind,
    Symptoms,
    TargetDescriptor,
    TaskRecord,
    merge_symptoms,
)
from deletion_doctor.repair.ports import RecordStore, TaskQueue

logger = logging.getLogger(__name__)


class Diagnoser:
    """Read-only symptom detection for delete-modules tasks.

    Task-level symptoms short-circuit everything after them: a task whose
    queue record is gone is not checked for multiple modules, and a task with
    either symptom gets no per-module checks. Store failures propagate.
    """

    def __init__(self, *, queue: TaskQueue, store: RecordStore) -> None:
        self.queue = queue
        self.store = store

    def diagnose(self, task: TaskRecord) -> Diagnosis:
        symptoms: Symptoms = {}
        merge_symptoms(symptoms, self.missing_task_record(task))
        if not symptoms:
            merge_symptoms(symptoms, self.multi_module_status(task))

        if not symptoms:
            for target in task.targets.values():
                if target.cm_id is None:
                    logger.warning("Task %s has a target without course module id", task.task_id)
                    merge_symptoms(symptoms, self.unidentified_course_module(target))
                    continue
                merge_symptoms(symptoms, self.missing_module_record(target))
                merge_symptoms(symptoms, self.missing_course_module_record(target))
                merge_symptoms(symptoms, self.missing_context_record(target))
                merge_symptoms(symptoms, self.missing_section_listing(target))

        logger.info("Diagnosed task %s: %d symptom key(s)", task.task_id, len(symptoms))
        return Diagnosis(task=task, symptoms=symptoms)

    def missing_task_record(self, task: TaskRecord) -> Symptoms:
        if self.queue.get_job(task.task_id) is None:
            kind = SymptomKind.ADHOC_TASK_RECORD_MISSING
            return {kind: [kind]}
        return {}

    def multi_module_status(self, task: TaskRecord) -> Symptoms:
        if task.is_multi_module_task:
            kind = SymptomKind.MULTI_MODULE_TASK
            return {kind: [kind]}
        return {}

    def unidentified_course_module(self, target: TargetDescriptor) -> Symptoms:
        # Without an id the course module cannot be looked up, so it counts as missing.
        return _target_symptom(target.cm_id, SymptomKind.COURSE_MODULE_RECORD_MISSING)

    def missing_module_record(self, target: TargetDescriptor) -> Symptoms:
        # An unresolved module name counts as missing: the type is unknown.
        if target.module_name is None or not self.store.exists(
            target.module_name,
            {"id": target.instance_id},
        ):
            return _target_symptom(target.cm_id, SymptomKind.MODULE_RECORD_MISSING)
        return {}

    def missing_course_module_record(self, target: TargetDescriptor) -> Symptoms:
        if not self.store.exists("course_modules", {"id": target.cm_id}):
            return _target_symptom(target.cm_id, SymptomKind.COURSE_MODULE_RECORD_MISSING)
        return {}

    def missing_context_record(self, target: TargetDescriptor) -> Symptoms:
        if not self.store.exists(
            "contexts",
            {"context_level": CONTEXT_LEVEL_MODULE, "instance_id": target.cm_id},
        ):
            return _target_symptom(target.cm_id, SymptomKind.CONTEXT_RECORD_MISSING)
        return {}

    def missing_section_listing(self, target: TargetDescriptor) -> Symptoms:
        if target.section_id is None or target.cm_id is None:
            return {}
        if not self.store.section_lists_module(target.section_id, target.cm_id):
            return _target_symptom(target.cm_id, SymptomKind.COURSE_SECTION_RECORD_MISSING)
        return {}


def _target_symptom(cm_id: int | None, kind: SymptomKind) -> Symptoms:
    return {cm_id: [kind]}
