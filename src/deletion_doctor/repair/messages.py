"""Human-readable text for symptoms and outcome messages."""

from __future__ import annotations

from deletion_doctor.repair.models import OutcomeMessage, SymptomKind

SYMPTOM_TEXT: dict[SymptomKind, str] = {
    SymptomKind.ADHOC_TASK_RECORD_MISSING: "Adhoc task record missing from the task queue",
    SymptomKind.MULTI_MODULE_TASK: "Multiple modules in one delete task",
    SymptomKind.MODULE_RECORD_MISSING: "Module instance record missing",
    SymptomKind.COURSE_MODULE_RECORD_MISSING: "Course module record missing",
    SymptomKind.CONTEXT_RECORD_MISSING: "Context record missing",
    SymptomKind.COURSE_SECTION_RECORD_MISSING: "Course module missing from its course section",
}

OUTCOME_TEXT: dict[OutcomeMessage, str] = {
    OutcomeMessage.ADHOC_TASK_RECORD_ADVICE: (
        "The adhoc task record is missing. Re-run the delete-task split/requeue tooling "
        "for this task manually, then check again."
    ),
    OutcomeMessage.SEPARATED_INTO_INDIVIDUAL_TASK: "Separated module into an individual task",
    OutcomeMessage.OLD_TASK_DELETED: "Old multi-module task deleted",
    OutcomeMessage.OLD_TASK_DELETE_FAILED: "Failed to delete the old multi-module task",
    OutcomeMessage.TASK_FIX_FAILED: "Task fix failed",
    OutcomeMessage.TASK_FIX_SUCCESSFUL: "Task fix successful",
    OutcomeMessage.MULTI_MODULE_TASK_REFUSED: (
        "Multiple modules in one delete task; separate the task before fixing modules"
    ),
    OutcomeMessage.COURSE_MODULE_ID_NOT_FOUND: "Course module id not found",
    OutcomeMessage.MODULE_FIX_FAILED: "Module fix failed",
    OutcomeMessage.COURSE_SECTION_DATA_FIXED: "Course section data fixed",
    OutcomeMessage.COURSE_MODULE_RECORD_NOT_FOUND: "Course module record not found",
    OutcomeMessage.FILE_RECORDS_DELETED: "File records deleted",
    OutcomeMessage.CALENDAR_EVENT_DELETED: "Calendar event deleted",
    OutcomeMessage.GRADE_RECORDS_DELETED: "Grade records deleted",
    OutcomeMessage.BLOG_RECORDS_DELETED: "Blog association records deleted",
    OutcomeMessage.COMPLETION_RECORDS_DELETED: "Completion records deleted",
    OutcomeMessage.COMPLETION_CRITERIA_RECORDS_DELETED: "Completion criteria records deleted",
    OutcomeMessage.TAG_RECORDS_DELETED: "Tag records deleted",
    OutcomeMessage.CONTEXT_RECORD_DELETED: "Context record deleted",
    OutcomeMessage.COURSE_MODULE_RECORD_DELETED: "Course module record deleted",
    OutcomeMessage.COURSE_MODULE_RECORD_DELETE_FAILED: "Failed to delete course module record",
    OutcomeMessage.COURSE_SECTION_DATA_DELETED: "Course module removed from course section",
    OutcomeMessage.COURSE_SECTION_DATA_DELETE_FAILED: (
        "Failed to remove course module from course section"
    ),
    OutcomeMessage.TASK_RESCHEDULED: "Adhoc task rescheduled to run as soon as possible",
    OutcomeMessage.TASK_RESCHEDULE_FAILED: "Adhoc task could not be found to reschedule",
    OutcomeMessage.MODULE_FIX_SUCCESSFUL: "Module fix successful",
}


def describe_symptom(kind: SymptomKind) -> str:
    return SYMPTOM_TEXT[kind]


def describe_outcome(message: OutcomeMessage) -> str:
    return OUTCOME_TEXT[message]
