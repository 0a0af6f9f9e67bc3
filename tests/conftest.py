"""Shared test fixtures: a course whose module deletions failed halfway."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from sqlmodel import Session

from deletion_doctor.repair.catalog import TaskCatalog
from deletion_doctor.repair.diagnoser import Diagnoser
from deletion_doctor.repair.models import (
    COMPLETION_CRITERIA_TYPE_ACTIVITY,
    CONTEXT_LEVEL_COURSE,
    CONTEXT_LEVEL_MODULE,
    RawJobRecord,
)
from deletion_doctor.repair.reporter import DeletionReporter
from deletion_doctor.repair.surgeon import Surgeon
from deletion_doctor.storage.common import to_db_datetime
from deletion_doctor.storage.notifications import SQLNotificationSink
from deletion_doctor.storage.records import SQLRecordStore
from deletion_doctor.storage.sqlmodel_models import TaskQueueRow
from deletion_doctor.storage.task_queue import TaskQueueRepository

FIXED_NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
CLASSNAME = "course_delete_modules"
COMPONENT = "core_course"
ADMIN_USER_ID = 2
INSTRUCTOR_USER_ID = 3
MODULE_NAMES = ("page", "url", "book", "assign", "quiz", "label")
GRADED_MODULES = ("assign", "quiz", "book")


@dataclass(slots=True)
class SeededModule:
    name: str
    module_id: int
    instance_id: int
    cm_id: int
    context_id: int

    def payload_entry(self, *, course_id: int, section_id: int) -> dict[str, int]:
        return {
            "id": self.cm_id,
            "course_id": course_id,
            "module_id": self.module_id,
            "instance_id": self.instance_id,
            "section_id": section_id,
        }


@dataclass(slots=True)
class CourseWorld:
    course_id: int
    course_context_id: int
    section_id: int
    modules: dict[str, SeededModule] = field(default_factory=dict)
    task_ids: dict[str, int] = field(default_factory=dict)

    def payload_for(self, *names: str) -> dict[str, object]:
        return {
            "targets": [
                self.modules[name].payload_entry(
                    course_id=self.course_id,
                    section_id=self.section_id,
                )
                for name in names
            ],
            "user_id": INSTRUCTOR_USER_ID,
            "real_user_id": INSTRUCTOR_USER_ID,
        }


@dataclass(slots=True)
class Doctor:
    catalog: TaskCatalog
    diagnoser: Diagnoser
    surgeon: Surgeon
    reporter: DeletionReporter


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "deletion-doctor.db"


@pytest.fixture()
def store(db_path: Path) -> Iterator[SQLRecordStore]:
    repository = SQLRecordStore(db_path)
    repository.init_schema()
    yield repository
    repository.close()


@pytest.fixture()
def queue(db_path: Path, store: SQLRecordStore) -> Iterator[TaskQueueRepository]:
    repository = TaskQueueRepository(db_path)
    yield repository
    repository.close()


@pytest.fixture()
def doctor(store: SQLRecordStore, queue: TaskQueueRepository) -> Doctor:
    catalog = TaskCatalog(queue=queue, store=store, classname=CLASSNAME)
    diagnoser = Diagnoser(queue=queue, store=store)
    surgeon = Surgeon(
        queue=queue,
        store=store,
        notifier=SQLNotificationSink(store.engine),
        classname=CLASSNAME,
        component=COMPONENT,
        admin_user_id=ADMIN_USER_ID,
        clock=lambda: FIXED_NOW,
    )
    return Doctor(
        catalog=catalog,
        diagnoser=diagnoser,
        surgeon=surgeon,
        reporter=DeletionReporter(catalog=catalog, diagnoser=diagnoser, surgeon=surgeon),
    )


@pytest.fixture()
def healthy_world(store: SQLRecordStore) -> CourseWorld:
    """One course with a fully intact module of every type."""

    return seed_course(store)


@pytest.fixture()
def course_world(store: SQLRecordStore, queue: TaskQueueRepository) -> CourseWorld:
    """The seeded course after several module deletions died partway.

    * page, quiz: module instance gone
    * url: course module record gone
    * label: no longer listed in its section
    * assign: instance, course module, context and listing all gone
    * book: intact and not queued

    Queued: one task for assign+page+quiz and one task each for page, url and label.
    """

    world = seed_course(store)
    modules = world.modules

    store.delete("page", {"id": modules["page"].instance_id})
    store.delete("quiz", {"id": modules["quiz"].instance_id})
    store.delete("course_modules", {"id": modules["url"].cm_id})
    store.remove_from_section(modules["label"].cm_id, world.section_id)

    assign = modules["assign"]
    store.delete("assign", {"id": assign.instance_id})
    store.delete("course_modules", {"id": assign.cm_id})
    store.delete_context(assign.context_id)
    store.remove_from_section(assign.cm_id, world.section_id)

    world.task_ids["multi"] = enqueue_task(queue, world.payload_for("assign", "page", "quiz"))
    world.task_ids["page"] = enqueue_task(queue, world.payload_for("page"))
    world.task_ids["url"] = enqueue_task(queue, world.payload_for("url"))
    # Keyed by course module id, as older queue payloads are.
    label = modules["label"]
    world.task_ids["label"] = enqueue_task(
        queue,
        {
            "targets": {
                str(label.cm_id): label.payload_entry(
                    course_id=world.course_id,
                    section_id=world.section_id,
                ),
            },
            "user_id": INSTRUCTOR_USER_ID,
            "real_user_id": INSTRUCTOR_USER_ID,
        },
    )
    return world


def enqueue_task(
    queue: TaskQueueRepository,
    payload: dict[str, object],
    *,
    fail_delay: int = 60,
) -> int:
    job = queue.enqueue(
        RawJobRecord(
            task_id=None,
            classname=CLASSNAME,
            component=COMPONENT,
            user_id=INSTRUCTOR_USER_ID,
            payload=payload,
            next_run_at=FIXED_NOW + timedelta(days=1),
            fail_delay=fail_delay,
        ),
    )
    assert job.task_id is not None
    return job.task_id


def insert_raw_job(
    queue: TaskQueueRepository,
    custom_data: str,
    *,
    fail_delay: int = 60,
) -> int:
    """Store a job row with ``custom_data`` exactly as given, bypassing payload encoding."""

    with Session(queue.engine) as session:
        row = TaskQueueRow(
            classname=CLASSNAME,
            component=COMPONENT,
            user_id=INSTRUCTOR_USER_ID,
            custom_data=custom_data,
            next_run_at=to_db_datetime(FIXED_NOW + timedelta(days=1)),
            fail_delay=fail_delay,
            created_at=to_db_datetime(FIXED_NOW),
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        assert row.task_id is not None
        return row.task_id


def seed_course(store: SQLRecordStore) -> CourseWorld:
    course = store.insert_or_update("courses", {"short_name": "TC1"})
    course_id = course["id"]
    course_context = store.insert_or_update(
        "contexts",
        {"context_level": CONTEXT_LEVEL_COURSE, "instance_id": course_id},
    )
    section = store.insert_or_update(
        "course_sections",
        {"course_id": course_id, "section_no": 0, "sequence": ""},
    )
    world = CourseWorld(
        course_id=course_id,
        course_context_id=course_context["id"],
        section_id=section["id"],
    )

    for index, name in enumerate(MODULE_NAMES):
        module_type = store.insert_or_update("modules", {"name": name})
        instance = store.insert_or_update(name, {"course_id": course_id, "name": f"{name} 1"})
        course_module = store.insert_or_update(
            "course_modules",
            {
                "course_id": course_id,
                "module_id": module_type["id"],
                "instance_id": instance["id"],
                "section_id": section["id"],
            },
        )
        cm_id = course_module["id"]
        context = store.insert_or_update(
            "contexts",
            {"context_level": CONTEXT_LEVEL_MODULE, "instance_id": cm_id},
        )
        context_id = context["id"]

        for filename in ("intro.txt", "."):
            store.insert_or_update(
                "files",
                {"context_id": context_id, "component": f"mod_{name}", "filename": filename},
            )
        store.insert_or_update(
            "events",
            {
                "name": f"{name} due",
                "module_name": name,
                "instance_id": instance["id"],
                "course_id": course_id,
                "context_id": context_id,
            },
        )
        store.insert_or_update("blog_associations", {"context_id": context_id, "blog_id": index})
        store.insert_or_update(
            "course_modules_completion",
            {"cm_id": cm_id, "user_id": INSTRUCTOR_USER_ID, "completion_state": 1},
        )
        store.insert_or_update(
            "course_completion_criteria",
            {
                "course_id": course_id,
                "criteria_type": COMPLETION_CRITERIA_TYPE_ACTIVITY,
                "module_instance": cm_id,
            },
        )
        store.insert_or_update(
            "tag_instances",
            {
                "tag_id": 1,
                "component": f"mod_{name}",
                "item_type": name,
                "item_id": instance["id"],
                "context_id": context_id,
            },
        )
        store.insert_or_update(
            "tag_instances",
            {
                "tag_id": 2,
                "component": "core",
                "item_type": "course_modules",
                "item_id": cm_id,
                "context_id": context_id,
            },
        )
        store.insert_or_update("competency_modulecomp", {"cm_id": cm_id, "competency_id": 1})
        if name in GRADED_MODULES:
            grade_item = store.insert_or_update(
                "grade_items",
                {
                    "course_id": course_id,
                    "item_type": "mod",
                    "item_module": name,
                    "item_instance": instance["id"],
                },
            )
            store.insert_or_update(
                "grade_grades",
                {"item_id": grade_item["id"], "user_id": INSTRUCTOR_USER_ID, "final_grade": 7.5},
            )

        world.modules[name] = SeededModule(
            name=name,
            module_id=module_type["id"],
            instance_id=instance["id"],
            cm_id=cm_id,
            context_id=context_id,
        )

    store.insert_or_update(
        "course_sections",
        {
            "id": section["id"],
            "course_id": course_id,
            "section_no": 0,
            "sequence": ",".join(str(module.cm_id) for module in world.modules.values()),
        },
    )
    store.rebuild_course_cache(course_id)
    return world
