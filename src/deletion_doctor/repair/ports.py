"""Collaborator interfaces consumed by the catalog, diagnoser and surgeon."""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from typing import Any, Protocol

from deletion_doctor.repair.models import ModuleDeletedEvent, RawJobRecord, Record


class TaskQueue(Protocol):
    """Job queue holding delete-modules tasks."""

    def list_jobs(
        self,
        classname: str,
        *,
        task_ids: Collection[int] | None = None,
        min_fail_delay: int | None = None,
    ) -> list[RawJobRecord]:
        """List queued jobs of one class, optionally filtered."""
        raise NotImplementedError

    def get_job(self, task_id: int) -> RawJobRecord | None:
        """Return one queued job by id."""
        raise NotImplementedError

    def get_next_job(self, before: datetime) -> RawJobRecord | None:
        """Return the earliest job due at or before ``before``."""
        raise NotImplementedError

    def enqueue(self, job: RawJobRecord) -> RawJobRecord:
        """Insert a new job and return it with its assigned id."""
        raise NotImplementedError

    def reschedule_or_enqueue(self, job: RawJobRecord) -> RawJobRecord:
        """Update the matching queued job's schedule, or enqueue ``job``."""
        raise NotImplementedError

    def delete_job(self, task_id: int) -> bool:
        """Remove a job; ``False`` when nothing was deleted."""
        raise NotImplementedError

    def mark_complete(self, job: RawJobRecord) -> None:
        """Record a successful run."""
        raise NotImplementedError

    def mark_failed(self, job: RawJobRecord) -> None:
        """Record a failed run and back off the next attempt."""
        raise NotImplementedError


class RecordStore(Protocol):
    """Key-indexed record storage plus the domain cleanup sinks."""

    def exists(self, table: str, filters: dict[str, Any]) -> bool:
        raise NotImplementedError

    def get(self, table: str, filters: dict[str, Any]) -> Record | None:
        raise NotImplementedError

    def get_all(self, table: str, filters: dict[str, Any]) -> list[Record]:
        raise NotImplementedError

    def insert_or_update(self, table: str, record: Record) -> Record:
        raise NotImplementedError

    def delete(self, table: str, filters: dict[str, Any]) -> bool:
        """Delete matching rows; ``True`` when at least one row was removed."""
        raise NotImplementedError

    def purge_files(self, context_id: int) -> int:
        raise NotImplementedError

    def delete_calendar_event(self, event: Record, *, context_id: int | None) -> None:
        """Rebind ``event`` to ``context_id`` and delete it."""
        raise NotImplementedError

    def delete_grade_item(self, item: Record) -> None:
        """Delete a grade item together with its grades."""
        raise NotImplementedError

    def purge_blog_associations(self, context_id: int) -> int:
        raise NotImplementedError

    def purge_tags(self, *, module_name: str | None, context_id: int, cm_id: int) -> int:
        raise NotImplementedError

    def delete_context(self, context_id: int) -> bool:
        raise NotImplementedError

    def rebuild_course_cache(self, course_id: int) -> None:
        """Repair section sequences and regenerate the course structure cache."""
        raise NotImplementedError

    def purge_course_module_cache(self, course_id: int, cm_id: int) -> None:
        raise NotImplementedError

    def section_lists_module(self, section_id: int, cm_id: int) -> bool:
        """Whether the section exists and its sequence lists ``cm_id``."""
        raise NotImplementedError

    def remove_from_section(self, cm_id: int, section_id: int | None) -> int:
        """Remove a course module from its section sequence.

        Returns ``0`` on success and a non-zero code when nothing was removed.
        """
        raise NotImplementedError


class NotificationSink(Protocol):
    """Subsystems that must hear about a deleted course module."""

    def course_module_deleted(self, course_module: Record) -> None:
        """Fire-and-forget competency hook."""
        raise NotImplementedError

    def raise_module_deleted(self, event: ModuleDeletedEvent) -> None:
        """Publish the structured module-deleted event."""
        raise NotImplementedError
