"""Record store adapter backed by SQLModel + SQLite."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import Session, SQLModel, col, select

from deletion_doctor.repair.models import Record
from deletion_doctor.storage.alembic_runner import upgrade_head
from deletion_doctor.storage.common import (
    build_sqlite_engine,
    translate_store_errors,
    utc_now,
)
from deletion_doctor.storage.sqlmodel_models import (
    BlogAssociation,
    CalendarEvent,
    CompletionCriteria,
    Context,
    Course,
    CourseCacheState,
    CourseModule,
    CourseSection,
    GradeGrade,
    GradeItem,
    ModinfoCacheEntry,
    ModuleCompetency,
    ModuleCompletion,
    ModuleInstance,
    ModuleType,
    StoredFile,
    TagInstance,
)

logger = logging.getLogger(__name__)

TABLES: dict[str, type[SQLModel]] = {
    "courses": Course,
    "course_sections": CourseSection,
    "modules": ModuleType,
    "course_modules": CourseModule,
    "contexts": Context,
    "files": StoredFile,
    "events": CalendarEvent,
    "grade_items": GradeItem,
    "grade_grades": GradeGrade,
    "blog_associations": BlogAssociation,
    "course_modules_completion": ModuleCompletion,
    "course_completion_criteria": CompletionCriteria,
    "tag_instances": TagInstance,
    "competency_modulecomp": ModuleCompetency,
    "course_modinfo_cache": ModinfoCacheEntry,
    "course_cache_state": CourseCacheState,
}

SECTION_NOT_FOUND = 1
NOT_IN_SEQUENCE = 2


class SQLRecordStore:
    """Record store facade backed by SQLModel + SQLite.

    Table names outside ``TABLES`` are module type names (``page``,
    ``quiz``...). They address the matching partition of ``module_instances``.
    """

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    def exists(self, table: str, filters: dict[str, Any]) -> bool:
        return self.get(table, filters) is not None

    def get(self, table: str, filters: dict[str, Any]) -> Record | None:
        model, conditions = _resolve(table, filters)
        with translate_store_errors(f"get {table}"), Session(self.engine) as session:
            row = session.exec(select(model).where(*conditions).limit(1)).first()
            return _to_record(row) if row is not None else None

    def get_all(self, table: str, filters: dict[str, Any]) -> list[Record]:
        model, conditions = _resolve(table, filters)
        with translate_store_errors(f"get_all {table}"), Session(self.engine) as session:
            rows = session.exec(select(model).where(*conditions)).all()
            return [_to_record(row) for row in rows]

    def insert_or_update(self, table: str, record: Record) -> Record:
        model = TABLES.get(table, ModuleInstance)
        values = dict(record)
        if model is ModuleInstance and table != "module_instances":
            values["module_name"] = table
        with translate_store_errors(f"insert_or_update {table}"), Session(self.engine) as session:
            row = session.merge(model(**values))
            session.commit()
            session.refresh(row)
            return _to_record(row)

    def delete(self, table: str, filters: dict[str, Any]) -> bool:
        model, conditions = _resolve(table, filters)
        with translate_store_errors(f"delete {table}"), Session(self.engine) as session:
            result = session.exec(
                sa_delete(model).where(*conditions),  # type: ignore[call-overload]
            )
            session.commit()
            return result.rowcount > 0

    def purge_files(self, context_id: int) -> int:
        """Delete every stored file attached to a context."""

        return self._delete_count(StoredFile, col(StoredFile.context_id) == context_id)

    def delete_calendar_event(self, event: Record, *, context_id: int | None) -> None:
        with translate_store_errors("delete calendar event"), Session(self.engine) as session:
            session.exec(
                sa_update(CalendarEvent)  # type: ignore[call-overload]
                .where(col(CalendarEvent.id) == event["id"])
                .values(context_id=context_id),
            )
            session.exec(
                sa_delete(CalendarEvent).where(  # type: ignore[call-overload]
                    col(CalendarEvent.id) == event["id"],
                ),
            )
            session.commit()

    def delete_grade_item(self, item: Record) -> None:
        with translate_store_errors("delete grade item"), Session(self.engine) as session:
            session.exec(
                sa_delete(GradeGrade).where(  # type: ignore[call-overload]
                    col(GradeGrade.item_id) == item["id"],
                ),
            )
            session.exec(
                sa_delete(GradeItem).where(  # type: ignore[call-overload]
                    col(GradeItem.id) == item["id"],
                ),
            )
            session.commit()

    def purge_blog_associations(self, context_id: int) -> int:
        return self._delete_count(BlogAssociation, col(BlogAssociation.context_id) == context_id)

    def purge_tags(self, *, module_name: str | None, context_id: int, cm_id: int) -> int:
        """Remove tags of the module instance (by context) and of the course module itself."""

        removed = 0
        if module_name:
            removed += self._delete_count(
                TagInstance,
                col(TagInstance.component) == f"mod_{module_name}",
                col(TagInstance.context_id) == context_id,
            )
        removed += self._delete_count(
            TagInstance,
            col(TagInstance.component) == "core",
            col(TagInstance.item_type) == "course_modules",
            col(TagInstance.item_id) == cm_id,
        )
        return removed

    def delete_context(self, context_id: int) -> bool:
        return self._delete_count(Context, col(Context.id) == context_id) > 0

    def rebuild_course_cache(self, course_id: int) -> None:
        """Re-list orphaned modules in their sections and regenerate modinfo cache."""

        with translate_store_errors("rebuild course cache"), Session(self.engine) as session:
            modules = session.exec(
                select(CourseModule)
                .where(CourseModule.course_id == course_id)
                .order_by(col(CourseModule.id).asc()),
            ).all()
            sections = {
                section.id: section
                for section in session.exec(
                    select(CourseSection).where(CourseSection.course_id == course_id),
                ).all()
            }
            for module in modules:
                section = sections.get(module.section_id)
                if section is None or module.id is None:
                    continue
                sequence = _parse_sequence(section.sequence)
                if module.id not in sequence:
                    sequence.append(module.id)
                    section.sequence = _format_sequence(sequence)
                    session.add(section)
                    logger.info(
                        "Re-listed course module %s in section %s of course %s",
                        module.id,
                        section.id,
                        course_id,
                    )

            session.exec(
                sa_delete(ModinfoCacheEntry).where(  # type: ignore[call-overload]
                    col(ModinfoCacheEntry.course_id) == course_id,
                ),
            )
            for module in modules:
                session.add(
                    ModinfoCacheEntry(
                        course_id=course_id,
                        cm_id=module.id or 0,
                        section_id=module.section_id,
                    ),
                )

            state = session.get(CourseCacheState, course_id)
            if state is None:
                state = CourseCacheState(course_id=course_id, revision=0, rebuilt_at=utc_now())
            state.revision += 1
            state.rebuilt_at = utc_now()
            session.add(state)
            session.commit()

    def purge_course_module_cache(self, course_id: int, cm_id: int) -> None:
        self._delete_count(
            ModinfoCacheEntry,
            col(ModinfoCacheEntry.course_id) == course_id,
            col(ModinfoCacheEntry.cm_id) == cm_id,
        )

    def remove_from_section(self, cm_id: int, section_id: int | None) -> int:
        """Drop ``cm_id`` from the section sequence; ``0`` means it was removed."""

        if section_id is None:
            return SECTION_NOT_FOUND
        with translate_store_errors("remove from section"), Session(self.engine) as session:
            section = session.get(CourseSection, section_id)
            if section is None:
                return SECTION_NOT_FOUND
            sequence = _parse_sequence(section.sequence)
            if cm_id not in sequence:
                return NOT_IN_SEQUENCE
            section.sequence = _format_sequence([item for item in sequence if item != cm_id])
            session.add(section)
            session.commit()
            return 0

    def section_lists_module(self, section_id: int, cm_id: int) -> bool:
        """Whether the section exists and its sequence contains ``cm_id``."""

        section = self.get("course_sections", {"id": section_id})
        if section is None:
            return False
        return cm_id in _parse_sequence(section["sequence"])

    def _delete_count(self, model: type[SQLModel], *conditions: Any) -> int:
        with translate_store_errors(f"delete {model.__name__}"), Session(self.engine) as session:
            result = session.exec(
                sa_delete(model).where(*conditions),  # type: ignore[call-overload]
            )
            session.commit()
            return int(result.rowcount or 0)


def _resolve(table: str, filters: dict[str, Any]) -> tuple[type[SQLModel], list[Any]]:
    model = TABLES.get(table)
    conditions: list[Any] = []
    if model is None:
        model = ModuleInstance
        if table != "module_instances":
            conditions.append(col(ModuleInstance.module_name) == table)
    for name, value in filters.items():
        column = getattr(model, name, None)
        if column is None:
            raise KeyError(f"Unknown column {name!r} for table {table!r}")
        conditions.append(col(column) == value)
    return model, conditions


def _to_record(row: SQLModel) -> Record:
    return row.model_dump()


def _parse_sequence(value: str | None) -> list[int]:
    if not value:
        return []
    return [int(part) for part in value.split(",") if part.strip()]


def _format_sequence(values: list[int]) -> str:
    return ",".join(str(value) for value in values)
