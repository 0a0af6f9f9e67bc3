"""Value objects for delete-task diagnosis and repair."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

CONTEXT_LEVEL_COURSE = 50
CONTEXT_LEVEL_MODULE = 70
COMPLETION_CRITERIA_TYPE_ACTIVITY = 4

Record = dict[str, Any]


class StoreUnavailableError(RuntimeError):
    """Raised when the record store or task queue cannot be read or written."""


class StoreWriteError(StoreUnavailableError):
    """Raised when the record store rejects a statement, e.g. a constraint violation."""


class InvalidTaskError(ValueError):
    """Raised for a task payload that does not target any course module."""


class SymptomKind(str, Enum):
    """Closed set of anomalies left behind by a failed module deletion."""

    ADHOC_TASK_RECORD_MISSING = "adhoc_task_record_missing"
    MULTI_MODULE_TASK = "multi_module_task"
    MODULE_RECORD_MISSING = "module_record_missing"
    COURSE_MODULE_RECORD_MISSING = "course_module_record_missing"
    CONTEXT_RECORD_MISSING = "context_record_missing"
    COURSE_SECTION_RECORD_MISSING = "course_section_record_missing"

    @property
    def is_task_level(self) -> bool:
        return self in {SymptomKind.ADHOC_TASK_RECORD_MISSING, SymptomKind.MULTI_MODULE_TASK}


class OutcomeMessage(str, Enum):
    """One corrective action (or its failure) performed by the surgeon."""

    ADHOC_TASK_RECORD_ADVICE = "adhoc_task_record_advice"
    SEPARATED_INTO_INDIVIDUAL_TASK = "separated_into_individual_task"
    OLD_TASK_DELETED = "old_task_deleted"
    OLD_TASK_DELETE_FAILED = "old_task_delete_failed"
    TASK_FIX_FAILED = "task_fix_failed"
    TASK_FIX_SUCCESSFUL = "task_fix_successful"
    MULTI_MODULE_TASK_REFUSED = "multi_module_task_refused"
    COURSE_MODULE_ID_NOT_FOUND = "course_module_id_not_found"
    MODULE_FIX_FAILED = "module_fix_failed"
    COURSE_SECTION_DATA_FIXED = "course_section_data_fixed"
    COURSE_MODULE_RECORD_NOT_FOUND = "course_module_record_not_found"
    FILE_RECORDS_DELETED = "file_records_deleted"
    CALENDAR_EVENT_DELETED = "calendar_event_deleted"
    GRADE_RECORDS_DELETED = "grade_records_deleted"
    BLOG_RECORDS_DELETED = "blog_records_deleted"
    COMPLETION_RECORDS_DELETED = "completion_records_deleted"
    COMPLETION_CRITERIA_RECORDS_DELETED = "completion_criteria_records_deleted"
    TAG_RECORDS_DELETED = "tag_records_deleted"
    CONTEXT_RECORD_DELETED = "context_record_deleted"
    COURSE_MODULE_RECORD_DELETED = "course_module_record_deleted"
    COURSE_MODULE_RECORD_DELETE_FAILED = "course_module_record_delete_failed"
    COURSE_SECTION_DATA_DELETED = "course_section_data_deleted"
    COURSE_SECTION_DATA_DELETE_FAILED = "course_section_data_delete_failed"
    TASK_RESCHEDULED = "task_rescheduled"
    TASK_RESCHEDULE_FAILED = "task_reschedule_failed"
    MODULE_FIX_SUCCESSFUL = "module_fix_successful"


class SectionRemoval(str, Enum):
    """Normalized result of removing a course module from its section sequence."""

    REMOVED = "removed"
    FAILED = "failed"

    @classmethod
    def from_return_code(cls, code: int) -> SectionRemoval:
        # Falsy return means the module was removed.
        return cls.FAILED if code else cls.REMOVED


SymptomKey = SymptomKind | int | None
Symptoms = dict[SymptomKey, list[SymptomKind]]


@dataclass(slots=True)
class RawJobRecord:
    """One queued job as stored by the task queue."""

    task_id: int | None
    classname: str
    component: str
    user_id: int | None
    payload: dict[str, Any]
    next_run_at: datetime
    fail_delay: int = 0
    blocking: bool = False
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """One course module targeted for deletion, resolved against the store.

    ``module_name`` is ``None`` exactly when the module type could not be
    resolved from the live course module record.
    """

    cm_id: int | None
    course_id: int | None = None
    module_id: int | None = None
    module_name: str | None = None
    section_id: int | None = None
    instance_id: int | None = None

    def to_payload_entry(self) -> dict[str, int]:
        """Best-known identifiers, omitting the unresolved ones."""

        entry = {
            "id": self.cm_id,
            "course_id": self.course_id,
            "module_id": self.module_id,
            "instance_id": self.instance_id,
            "section_id": self.section_id,
        }
        return {key: value for key, value in entry.items() if value is not None}


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """A delete-modules task with its per-target descriptors."""

    task_id: int
    payload: Mapping[str, Any]
    targets: Mapping[int | None, TargetDescriptor]

    def __post_init__(self) -> None:
        if not self.targets:
            raise InvalidTaskError(f"Task {self.task_id} does not target any course module.")

    @property
    def is_multi_module_task(self) -> bool:
        return len(self.targets) > 1

    def first_target(self) -> TargetDescriptor:
        return next(iter(self.targets.values()))


def merge_symptoms(main: Symptoms, new: Mapping[SymptomKey, list[SymptomKind]]) -> Symptoms:
    """Merge ``new`` into ``main`` by appending per key; nothing is overwritten."""

    for key, kinds in new.items():
        main.setdefault(key, []).extend(kinds)
    return main


@dataclass(slots=True)
class Diagnosis:
    """A task and the symptoms found for it, in detection order."""

    task: TaskRecord
    symptoms: Symptoms = field(default_factory=dict)

    @property
    def is_healthy(self) -> bool:
        return not self.symptoms

    @property
    def is_multi_module_task(self) -> bool:
        return self.task.is_multi_module_task

    def has_task_symptom(self, kind: SymptomKind) -> bool:
        return kind in self.symptoms

    def task_symptoms(self) -> list[SymptomKind]:
        return [key for key in self.symptoms if isinstance(key, SymptomKind)]

    def symptoms_for(self, cm_id: int | None) -> list[SymptomKind]:
        return list(self.symptoms.get(cm_id, []))


@dataclass(frozen=True, slots=True)
class Outcome:
    """A task and the ordered log of repair actions taken for it."""

    task: TaskRecord
    messages: tuple[OutcomeMessage, ...]

    @property
    def succeeded(self) -> bool:
        return bool(self.messages) and self.messages[-1] in {
            OutcomeMessage.TASK_FIX_SUCCESSFUL,
            OutcomeMessage.MODULE_FIX_SUCCESSFUL,
        }


@dataclass(frozen=True, slots=True)
class ModuleDeletedEvent:
    """Structured notification raised after a course module is cleaned up."""

    course_id: int | None
    context_id: int
    cm_id: int
    instance_id: int | None
    module_name: str
    snapshot: Record = field(default_factory=dict)
