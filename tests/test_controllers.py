from __future__ import annotations

from pathlib import Path

import allure
import pytest

from deletion_doctor.repair.controllers import DeletionDoctorController, ModuleActionCommand

pytestmark = [
    allure.epic("Delete Task Repair"),
    allure.feature("Report Page Actions"),
]


def _action(db_path: Path, action: str, task_id: int, cm_id: int | None = None) -> list[str]:
    return DeletionDoctorController().handle_action(
        ModuleActionCommand(db_path=db_path, action=action, task_id=task_id, cm_id=cm_id),
    )


def test_separate_module_splits_multi_module_task(db_path: Path, course_world, queue) -> None:
    multi_id = course_world.task_ids["multi"]

    lines = _action(db_path, "separate_module", multi_id)

    assert lines[0] == "Results"
    assert lines.count("    - Separated module into an individual task") == 3
    assert "    - Old multi-module task deleted" in lines
    assert queue.get_job(multi_id) is None


def test_separate_module_leaves_single_module_task(db_path: Path, course_world, queue) -> None:
    page_id = course_world.task_ids["page"]

    lines = _action(db_path, "separate_module", page_id)

    assert lines == [f"Task {page_id} targets a single course module; nothing to separate."]
    assert queue.get_job(page_id) is not None


def test_fix_module_runs_full_repair(db_path: Path, course_world, store) -> None:
    label = course_world.modules["label"]

    lines = _action(db_path, "fix_module", course_world.task_ids["label"], label.cm_id)

    assert "    - Course section data fixed" in lines
    assert "  Status: fixed" in lines
    assert not store.exists("course_modules", {"id": label.cm_id})


def test_fix_module_rejects_foreign_course_module(db_path: Path, course_world) -> None:
    page_id = course_world.task_ids["page"]
    book_cm = course_world.modules["book"].cm_id

    lines = _action(db_path, "fix_module", page_id, book_cm)

    assert lines == [f"Course module {book_cm} is not targeted by task {page_id}."]


def test_action_on_unknown_task(db_path: Path, course_world) -> None:
    assert _action(db_path, "fix_module", 999_999) == [
        "Delete-modules task 999999 could not be found.",
    ]


def test_unknown_action_is_rejected(db_path: Path, course_world) -> None:
    with pytest.raises(ValueError, match="Unknown action"):
        _action(db_path, "delete_everything", course_world.task_ids["page"])
