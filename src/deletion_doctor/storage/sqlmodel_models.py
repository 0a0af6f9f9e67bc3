"""SQLModel ORM tables for the record store and the task queue.

Tables carry no foreign keys: a partially executed deletion leaves exactly the
dangling references this tool has to find.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class TaskQueueRow(SQLModel, table=True):
    __tablename__ = "task_queue"  # type: ignore[bad-override]

    task_id: int | None = Field(default=None, primary_key=True)
    classname: str = Field(index=True)
    component: str
    user_id: int | None = None
    custom_data: str = Field(sa_column=Column(Text, nullable=False))
    next_run_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    fail_delay: int = 0
    blocking: bool = False
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class Course(SQLModel, table=True):
    __tablename__ = "courses"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    short_name: str


class CourseSection(SQLModel, table=True):
    __tablename__ = "course_sections"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    course_id: int = Field(index=True)
    section_no: int = 0
    sequence: str = ""


class ModuleType(SQLModel, table=True):
    __tablename__ = "modules"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)


class CourseModule(SQLModel, table=True):
    __tablename__ = "course_modules"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    course_id: int = Field(index=True)
    module_id: int
    instance_id: int
    section_id: int | None = None
    deletion_in_progress: bool = False


class ModuleInstance(SQLModel, table=True):
    """Type-specific module rows, partitioned by ``module_name``."""

    __tablename__ = "module_instances"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    module_name: str = Field(index=True)
    course_id: int = Field(index=True)
    name: str = ""


class Context(SQLModel, table=True):
    __tablename__ = "contexts"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("context_level", "instance_id", name="uq_contexts_level_instance"),
    )

    id: int | None = Field(default=None, primary_key=True)
    context_level: int = Field(index=True)
    instance_id: int = Field(index=True)


class StoredFile(SQLModel, table=True):
    __tablename__ = "files"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    context_id: int = Field(index=True)
    component: str = ""
    filename: str = ""


class CalendarEvent(SQLModel, table=True):
    __tablename__ = "events"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    name: str = ""
    module_name: str = Field(index=True)
    instance_id: int = Field(index=True)
    course_id: int
    context_id: int | None = None


class GradeItem(SQLModel, table=True):
    __tablename__ = "grade_items"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    course_id: int = Field(index=True)
    item_type: str = "mod"
    item_module: str | None = None
    item_instance: int | None = None


class GradeGrade(SQLModel, table=True):
    __tablename__ = "grade_grades"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    item_id: int = Field(index=True)
    user_id: int
    final_grade: float | None = None


class BlogAssociation(SQLModel, table=True):
    __tablename__ = "blog_associations"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    context_id: int = Field(index=True)
    blog_id: int


class ModuleCompletion(SQLModel, table=True):
    __tablename__ = "course_modules_completion"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    cm_id: int = Field(index=True)
    user_id: int
    completion_state: int = 0


class CompletionCriteria(SQLModel, table=True):
    __tablename__ = "course_completion_criteria"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    course_id: int = Field(index=True)
    criteria_type: int
    module_instance: int | None = None


class TagInstance(SQLModel, table=True):
    __tablename__ = "tag_instances"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    tag_id: int
    component: str = Field(index=True)
    item_type: str
    item_id: int
    context_id: int | None = Field(default=None, index=True)


class ModuleCompetency(SQLModel, table=True):
    __tablename__ = "competency_modulecomp"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    cm_id: int = Field(index=True)
    competency_id: int


class ModinfoCacheEntry(SQLModel, table=True):
    __tablename__ = "course_modinfo_cache"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    course_id: int = Field(index=True)
    cm_id: int
    section_id: int | None = None


class CourseCacheState(SQLModel, table=True):
    __tablename__ = "course_cache_state"  # type: ignore[bad-override]

    course_id: int = Field(primary_key=True)
    revision: int = 0
    rebuilt_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class EventLogEntry(SQLModel, table=True):
    __tablename__ = "event_log"  # type: ignore[bad-override]

    id: int | None = Field(default=None, primary_key=True)
    event_name: str = Field(index=True)
    course_id: int | None = None
    context_id: int | None = None
    object_id: int | None = None
    other_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    snapshot_json: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
