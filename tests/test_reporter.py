from __future__ import annotations

import json

import allure
from conftest import enqueue_task, insert_raw_job

from deletion_doctor.repair.diagnoser import Diagnoser
from deletion_doctor.repair.models import OutcomeMessage, StoreUnavailableError, SymptomKind
from deletion_doctor.repair.reporter import render_diagnoses, render_outcomes
from deletion_doctor.repair.surgeon import Surgeon

pytestmark = [
    allure.epic("Delete Task Repair"),
    allure.feature("Batch Reporting"),
]


def test_diagnose_tasks_reports_every_broken_task(doctor, course_world) -> None:
    reports = doctor.reporter.diagnose_tasks()

    assert [report.task.task_id for report in reports] == [
        course_world.task_ids[name] for name in ("multi", "page", "url", "label")
    ]
    assert all(report.needs_attention for report in reports)

    lines = render_diagnoses(reports)
    assert lines[0] == "Diagnosis"
    assert "  Symptoms:" in lines
    assert "    - Multiple modules in one delete task" in lines
    page_cm = course_world.modules["page"].cm_id
    assert f"    - [course module {page_cm}] Module instance record missing" in lines


def test_min_fail_delay_filter_skips_fresh_tasks(doctor, course_world) -> None:
    assert doctor.reporter.diagnose_tasks(min_fail_delay=61) == []
    assert render_diagnoses([]) == []


def test_fix_tasks_repairs_only_selected_tasks(doctor, course_world, store) -> None:
    page_id = course_world.task_ids["page"]
    url = course_world.modules["url"]

    reports = doctor.reporter.fix_tasks(task_ids=[page_id])

    assert [report.task.task_id for report in reports] == [page_id]
    assert reports[0].outcome is not None
    assert reports[0].outcome.succeeded
    assert store.exists("contexts", {"id": url.context_id})


def test_batch_continues_after_store_failure(doctor, course_world, monkeypatch) -> None:
    broken_id = course_world.task_ids["page"]
    original = Diagnoser.diagnose

    def _diagnose(self, task):
        if task.task_id == broken_id:
            raise StoreUnavailableError("get page failed: disk I/O error")
        return original(self, task)

    monkeypatch.setattr(Diagnoser, "diagnose", _diagnose)

    reports = {report.task.task_id: report for report in doctor.reporter.fix_tasks()}

    assert reports[broken_id].error == "get page failed: disk I/O error"
    assert reports[broken_id].outcome is None
    label_outcome = reports[course_world.task_ids["label"]].outcome
    assert label_outcome is not None
    assert label_outcome.messages[-1] is OutcomeMessage.MODULE_FIX_SUCCESSFUL
    url_outcome = reports[course_world.task_ids["url"]].outcome
    assert url_outcome is not None
    assert url_outcome.succeeded

    lines = render_outcomes(reports.values())
    assert lines[0] == "Results"
    assert "  Error: get page failed: disk I/O error" in lines
    assert "  Status: fixed" in lines


def test_healthy_tasks_are_left_alone(doctor, healthy_world, queue, store) -> None:
    task_id = enqueue_task(queue, healthy_world.payload_for("book"))

    reports = doctor.reporter.fix_tasks(task_ids=[task_id])

    assert reports[0].diagnosis is not None
    assert reports[0].diagnosis.is_healthy
    assert reports[0].outcome is None
    assert render_outcomes(reports) == []
    assert store.exists("course_modules", {"id": healthy_world.modules["book"].cm_id})


def test_fix_reschedules_the_repaired_task_itself(doctor, course_world, queue) -> None:
    sibling_id = course_world.task_ids["page"]
    payload = course_world.payload_for("page")
    # Same payload as the sibling, stored without key sorting.
    task_id = insert_raw_job(queue, json.dumps(payload, indent=2))
    jobs_before = len(queue.list_jobs(doctor.surgeon.classname))

    reports = doctor.reporter.fix_tasks(task_ids=[task_id])

    outcome = reports[0].outcome
    assert outcome is not None
    assert outcome.messages[-2:] == (
        OutcomeMessage.TASK_RESCHEDULED,
        OutcomeMessage.MODULE_FIX_SUCCESSFUL,
    )
    assert len(queue.list_jobs(doctor.surgeon.classname)) == jobs_before
    assert queue.get_job(task_id).fail_delay == 0
    assert queue.get_job(sibling_id).fail_delay == 60


def test_target_without_course_module_id_is_reported_and_refused(
    doctor, healthy_world, queue,
) -> None:
    task_id = enqueue_task(
        queue,
        {"targets": [{"course_id": healthy_world.course_id}], "user_id": 3, "real_user_id": 3},
    )

    reports = doctor.reporter.fix_tasks(task_ids=[task_id])

    diagnosis = reports[0].diagnosis
    assert diagnosis is not None
    assert diagnosis.symptoms == {None: [SymptomKind.COURSE_MODULE_RECORD_MISSING]}
    assert reports[0].outcome is not None
    assert reports[0].outcome.messages == (
        OutcomeMessage.COURSE_MODULE_ID_NOT_FOUND,
        OutcomeMessage.MODULE_FIX_FAILED,
    )
    lines = render_diagnoses(reports)
    assert "    - [course module without id] Course module record missing" in lines
    assert "  Status: not fixed" in render_outcomes(reports)
    assert queue.get_job(task_id) is not None


def test_malformed_payload_is_skipped_without_aborting_batch(doctor, course_world, queue) -> None:
    insert_raw_job(queue, "{not json")
    insert_raw_job(queue, '["targets"]')

    reports = doctor.reporter.diagnose_tasks()

    assert [report.task.task_id for report in reports] == [
        course_world.task_ids[name] for name in ("multi", "page", "url", "label")
    ]


def test_batch_continues_after_rejected_write(doctor, course_world, store, monkeypatch) -> None:
    multi_id = course_world.task_ids["multi"]

    def _separate(self, task):
        # Module type names are unique.
        store.insert_or_update("modules", {"name": "page"})
        return []

    monkeypatch.setattr(Surgeon, "separate_multi_module_task", _separate)

    reports = {report.task.task_id: report for report in doctor.reporter.fix_tasks()}

    assert reports[multi_id].outcome is None
    assert reports[multi_id].error is not None
    assert reports[multi_id].error.startswith("insert_or_update modules failed")
    assert "UNIQUE constraint failed" in reports[multi_id].error
    page_outcome = reports[course_world.task_ids["page"]].outcome
    assert page_outcome is not None
    assert page_outcome.succeeded
