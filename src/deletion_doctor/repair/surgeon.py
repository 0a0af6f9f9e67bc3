"""Repair protocols for diagnosed delete-modules tasks."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime

from deletion_doctor.repair.models import (
    COMPLETION_CRITERIA_TYPE_ACTIVITY,
    CONTEXT_LEVEL_COURSE,
    CONTEXT_LEVEL_MODULE,
    Diagnosis,
    ModuleDeletedEvent,
    Outcome,
    OutcomeMessage,
    RawJobRecord,
    Record,
    SectionRemoval,
    SymptomKind,
    TargetDescriptor,
    TaskRecord,
)
from deletion_doctor.repair.ports import NotificationSink, RecordStore, TaskQueue

logger = logging.getLogger(__name__)

DEFAULT_TASK_COMPONENT = "core_course"


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Surgeon:
    """Executes the repair protocol matching a diagnosis.

    Only the first matching branch runs: a missing queue record gets advice
    only, a multi-module task is split into one task per module, anything
    else gets the single-module cleanup. Every cleanup step is skipped when
    its precondition record is gone, so the cleanup is safe to re-run.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        queue: TaskQueue,
        store: RecordStore,
        notifier: NotificationSink,
        classname: str,
        admin_user_id: int,
        component: str = DEFAULT_TASK_COMPONENT,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.queue = queue
        self.store = store
        self.notifier = notifier
        self.classname = classname
        self.component = component
        self.admin_user_id = admin_user_id
        self.clock = clock

    def operate(self, diagnosis: Diagnosis) -> Outcome:
        """Fix the diagnosed task and return the ordered action log."""

        task = diagnosis.task
        messages: list[OutcomeMessage] = []
        if diagnosis.has_task_symptom(SymptomKind.ADHOC_TASK_RECORD_MISSING):
            logger.info("Task %s has no queue record; advising manual requeue", task.task_id)
            messages.append(OutcomeMessage.ADHOC_TASK_RECORD_ADVICE)
        elif diagnosis.has_task_symptom(SymptomKind.MULTI_MODULE_TASK):
            logger.info("Separating multi-module task %s", task.task_id)
            messages.extend(self.separate_multi_module_task(task))
        else:
            target = task.first_target()
            if SymptomKind.COURSE_SECTION_RECORD_MISSING in diagnosis.symptoms_for(target.cm_id):
                if self.fix_course_sequence(target):
                    messages.append(OutcomeMessage.COURSE_SECTION_DATA_FIXED)
            messages.extend(self.delete_module_cleanly(task))
        return Outcome(task=task, messages=tuple(messages))

    def separate_multi_module_task(self, task: TaskRecord) -> list[OutcomeMessage]:
        """Queue one single-module task per target, then drop the multi-module task."""

        messages: list[OutcomeMessage] = []
        now = self.clock()
        for cm_id, target in task.targets.items():
            course_module = self.store.get("course_modules", {"id": cm_id}) if cm_id else None
            if course_module is None:
                entry = target.to_payload_entry()
            else:
                if not course_module.get("deletion_in_progress"):
                    course_module["deletion_in_progress"] = True
                    course_module = self.store.insert_or_update("course_modules", course_module)
                entry = _payload_entry(course_module)

            job = self.queue.enqueue(
                RawJobRecord(
                    task_id=None,
                    classname=self.classname,
                    component=self.component,
                    user_id=self.admin_user_id,
                    payload={
                        "targets": [entry],
                        "user_id": self.admin_user_id,
                        "real_user_id": self.admin_user_id,
                    },
                    next_run_at=now,
                ),
            )
            logger.info(
                "Course module %s of task %s moved to task %s",
                cm_id,
                task.task_id,
                job.task_id,
            )
            messages.append(OutcomeMessage.SEPARATED_INTO_INDIVIDUAL_TASK)

        if not self.queue.delete_job(task.task_id):
            logger.warning("Could not delete multi-module task %s", task.task_id)
            messages.append(OutcomeMessage.OLD_TASK_DELETE_FAILED)
            messages.append(OutcomeMessage.TASK_FIX_FAILED)
            return messages
        messages.append(OutcomeMessage.OLD_TASK_DELETED)
        messages.append(OutcomeMessage.TASK_FIX_SUCCESSFUL)
        return messages

    def fix_course_sequence(self, target: TargetDescriptor) -> bool:
        if target.course_id is None:
            return False
        self.store.rebuild_course_cache(target.course_id)
        return True

    def delete_module_cleanly(  # noqa: C901, PLR0912, PLR0915
        self,
        task: TaskRecord,
    ) -> list[OutcomeMessage]:
        """Remove every remnant of the task's course module and requeue the task."""

        if task.is_multi_module_task:
            logger.warning("Refusing single-module cleanup of multi-module task %s", task.task_id)
            return [OutcomeMessage.MULTI_MODULE_TASK_REFUSED, OutcomeMessage.MODULE_FIX_FAILED]

        target = task.first_target()
        if target.cm_id is None:
            return [OutcomeMessage.COURSE_MODULE_ID_NOT_FOUND, OutcomeMessage.MODULE_FIX_FAILED]
        cm_id = target.cm_id

        messages: list[OutcomeMessage] = []
        course_module = self.store.get("course_modules", {"id": cm_id})
        if course_module is None:
            messages.append(OutcomeMessage.COURSE_MODULE_RECORD_NOT_FOUND)
            course_module = {
                "id": cm_id,
                "course_id": target.course_id,
                "module_id": target.module_id,
                "instance_id": target.instance_id,
                "section_id": target.section_id,
            }
        course_id = course_module.get("course_id")
        instance_id = course_module.get("instance_id")

        context = self.store.get(
            "contexts",
            {"context_level": CONTEXT_LEVEL_MODULE, "instance_id": cm_id},
        )
        if context is None:
            logger.info("No module context for course module %s", cm_id)
        module_name = self.resolve_module_name(course_module, target)

        if context is not None:
            self.store.purge_files(context["id"])
            messages.append(OutcomeMessage.FILE_RECORDS_DELETED)

        if module_name and course_id is not None:
            events = self.store.get_all(
                "events",
                {"instance_id": instance_id, "module_name": module_name},
            )
            if events:
                course_context = self.store.get(
                    "contexts",
                    {"context_level": CONTEXT_LEVEL_COURSE, "instance_id": course_id},
                )
                for event in events:
                    self.store.delete_calendar_event(
                        event,
                        context_id=course_context["id"] if course_context else None,
                    )
                    messages.append(OutcomeMessage.CALENDAR_EVENT_DELETED)

        if (
            module_name
            and course_id is not None
            and self.store.exists(module_name, {"id": instance_id})
        ):
            grade_items = self.store.get_all(
                "grade_items",
                {
                    "item_type": "mod",
                    "item_module": module_name,
                    "item_instance": instance_id,
                    "course_id": course_id,
                },
            )
            for grade_item in grade_items:
                self.store.delete_grade_item(grade_item)
                messages.append(OutcomeMessage.GRADE_RECORDS_DELETED)

        if context is not None:
            self.store.purge_blog_associations(context["id"])
            messages.append(OutcomeMessage.BLOG_RECORDS_DELETED)

            if self.store.delete("course_modules_completion", {"cm_id": cm_id}):
                messages.append(OutcomeMessage.COMPLETION_RECORDS_DELETED)
            if self.store.delete(
                "course_completion_criteria",
                {
                    "module_instance": cm_id,
                    "course_id": course_id,
                    "criteria_type": COMPLETION_CRITERIA_TYPE_ACTIVITY,
                },
            ):
                messages.append(OutcomeMessage.COMPLETION_CRITERIA_RECORDS_DELETED)

            self.store.purge_tags(module_name=module_name, context_id=context["id"], cm_id=cm_id)
            messages.append(OutcomeMessage.TAG_RECORDS_DELETED)

        self.notifier.course_module_deleted(course_module)

        if context is not None:
            self.store.delete_context(context["id"])
            messages.append(OutcomeMessage.CONTEXT_RECORD_DELETED)

        if self.store.delete("course_modules", {"id": cm_id}):
            messages.append(OutcomeMessage.COURSE_MODULE_RECORD_DELETED)
        else:
            messages.append(OutcomeMessage.COURSE_MODULE_RECORD_DELETE_FAILED)

        removal = SectionRemoval.from_return_code(
            self.store.remove_from_section(cm_id, course_module.get("section_id")),
        )
        if removal is SectionRemoval.REMOVED:
            messages.append(OutcomeMessage.COURSE_SECTION_DATA_DELETED)
        else:
            messages.append(OutcomeMessage.COURSE_SECTION_DATA_DELETE_FAILED)

        if context is not None and module_name:
            self.notifier.raise_module_deleted(
                ModuleDeletedEvent(
                    course_id=course_id,
                    context_id=context["id"],
                    cm_id=cm_id,
                    instance_id=instance_id,
                    module_name=module_name,
                    snapshot=dict(course_module),
                ),
            )
            if course_id is not None:
                self.store.purge_course_module_cache(course_id, cm_id)
                self.store.rebuild_course_cache(course_id)

        if self.reschedule_task(task):
            messages.append(OutcomeMessage.TASK_RESCHEDULED)
        else:
            logger.warning("Task %s not found in queue; not rescheduled", task.task_id)
            messages.append(OutcomeMessage.TASK_RESCHEDULE_FAILED)

        messages.append(OutcomeMessage.MODULE_FIX_SUCCESSFUL)
        return messages

    def resolve_module_name(self, course_module: Record, target: TargetDescriptor) -> str | None:
        """Module type from the descriptor, else via the course module's ``module_id``."""

        if target.module_name is not None:
            return target.module_name
        module_id = course_module.get("module_id")
        if module_id is None:
            live = self.store.get("course_modules", {"id": target.cm_id})
            module_id = live.get("module_id") if live else None
        if module_id is None:
            return None
        module = self.store.get("modules", {"id": module_id})
        return module["name"] if module else None

    def reschedule_task(self, task: TaskRecord) -> bool:
        """Reset the task to run as soon as possible; best effort, one attempt."""

        job = self.queue.get_job(task.task_id)
        if job is None or job.classname != self.classname:
            return False
        self.queue.reschedule_or_enqueue(replace(job, fail_delay=0, next_run_at=self.clock()))
        return True


def _payload_entry(course_module: Record) -> dict[str, int]:
    entry = {
        "id": course_module.get("id"),
        "course_id": course_module.get("course_id"),
        "module_id": course_module.get("module_id"),
        "instance_id": course_module.get("instance_id"),
        "section_id": course_module.get("section_id"),
    }
    return {key: value for key, value in entry.items() if value is not None}
