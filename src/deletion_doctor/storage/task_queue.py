"""Persistent delete-task queue backed by SQLModel + SQLite."""

from __future__ import annotations

import json
import logging
from collections.abc import Collection
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from deletion_doctor.repair.models import InvalidTaskError, RawJobRecord
from deletion_doctor.storage.alembic_runner import upgrade_head
from deletion_doctor.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    translate_store_errors,
    utc_now,
)
from deletion_doctor.storage.sqlmodel_models import TaskQueueRow

logger = logging.getLogger(__name__)

MIN_FAIL_DELAY_SECONDS = 60
MAX_FAIL_DELAY_SECONDS = 86_400


class TaskQueueRepository:
    """Queue persistence facade for delete-modules jobs."""

    def __init__(self, db_path: Path, *, sqlite_busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    def list_jobs(
        self,
        classname: str,
        *,
        task_ids: Collection[int] | None = None,
        min_fail_delay: int | None = None,
    ) -> list[RawJobRecord]:
        """List queued jobs of one class ordered by id; undecodable jobs are skipped."""

        statement = (
            select(TaskQueueRow)
            .where(TaskQueueRow.classname == classname)
            .order_by(col(TaskQueueRow.task_id).asc())
        )
        if task_ids:
            statement = statement.where(col(TaskQueueRow.task_id).in_(list(task_ids)))
        if min_fail_delay is not None:
            statement = statement.where(col(TaskQueueRow.fail_delay) >= min_fail_delay)
        with translate_store_errors("list jobs"), Session(self.engine) as session:
            rows = session.exec(statement).all()
        jobs: list[RawJobRecord] = []
        for row in rows:
            try:
                jobs.append(_to_job(row))
            except InvalidTaskError as error:
                logger.warning("Skipping queued job: %s", error)
        return jobs

    def get_job(self, task_id: int) -> RawJobRecord | None:
        with translate_store_errors("get job"), Session(self.engine) as session:
            row = session.get(TaskQueueRow, task_id)
            return _to_job(row) if row is not None else None

    def get_next_job(self, before: datetime) -> RawJobRecord | None:
        """Return the earliest job due at or before ``before``."""

        with translate_store_errors("get next job"), Session(self.engine) as session:
            row = session.exec(
                select(TaskQueueRow)
                .where(TaskQueueRow.next_run_at <= to_db_datetime(before))
                .order_by(
                    col(TaskQueueRow.next_run_at).asc(),
                    col(TaskQueueRow.task_id).asc(),
                )
                .limit(1),
            ).first()
            return _to_job(row) if row is not None else None

    def enqueue(self, job: RawJobRecord) -> RawJobRecord:
        """Insert a new queued job."""

        now = utc_now()
        with translate_store_errors("enqueue"), Session(self.engine) as session:
            row = TaskQueueRow(
                classname=job.classname,
                component=job.component,
                user_id=job.user_id,
                custom_data=_encode_payload(job.payload),
                next_run_at=to_db_datetime(job.next_run_at),
                fail_delay=job.fail_delay,
                blocking=job.blocking,
                created_at=to_db_datetime(job.created_at or now),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.info("Enqueued %s task %s", row.classname, row.task_id)
            return _to_job(row)

    def reschedule_or_enqueue(self, job: RawJobRecord) -> RawJobRecord:
        """Reschedule the queued job matching ``job``, or enqueue ``job``.

        A job with an id matches its own row. Without an id (or when that row
        is gone) the first queued job with the same class, user and decoded
        payload matches. Only ``next_run_at`` and ``fail_delay`` of the match
        are updated.
        """

        with translate_store_errors("reschedule"), Session(self.engine) as session:
            existing = session.get(TaskQueueRow, job.task_id) if job.task_id is not None else None
            if existing is None:
                existing = _find_same_job(session, job)
            if existing is not None:
                next_run_at = to_db_datetime(job.next_run_at)
                if existing.next_run_at != next_run_at or existing.fail_delay != job.fail_delay:
                    session.exec(
                        sa_update(TaskQueueRow)  # type: ignore[call-overload]
                        .where(col(TaskQueueRow.task_id) == existing.task_id)
                        .values(next_run_at=next_run_at, fail_delay=job.fail_delay),
                    )
                    session.commit()
                    session.refresh(existing)
                logger.info("Rescheduled task %s", existing.task_id)
                return _to_job(existing)
        return self.enqueue(job)

    def delete_job(self, task_id: int) -> bool:
        with translate_store_errors("delete job"), Session(self.engine) as session:
            result = session.exec(
                sa_delete(TaskQueueRow).where(  # type: ignore[call-overload]
                    col(TaskQueueRow.task_id) == task_id,
                ),
            )
            session.commit()
            return result.rowcount > 0

    def mark_complete(self, job: RawJobRecord) -> None:
        """A completed job leaves the queue."""

        if job.task_id is not None:
            self.delete_job(job.task_id)

    def mark_failed(self, job: RawJobRecord) -> None:
        """Double the fail delay (bounded) and push the next run back by it."""

        if job.task_id is None:
            return
        fail_delay = min(MAX_FAIL_DELAY_SECONDS, max(MIN_FAIL_DELAY_SECONDS, job.fail_delay * 2))
        next_run_at = utc_now() + timedelta(seconds=fail_delay)
        with translate_store_errors("mark failed"), Session(self.engine) as session:
            session.exec(
                sa_update(TaskQueueRow)  # type: ignore[call-overload]
                .where(col(TaskQueueRow.task_id) == job.task_id)
                .values(fail_delay=fail_delay, next_run_at=to_db_datetime(next_run_at)),
            )
            session.commit()
        logger.warning("Task %s failed; next attempt in %s seconds", job.task_id, fail_delay)


def _find_same_job(session: Session, job: RawJobRecord) -> TaskQueueRow | None:
    statement = select(TaskQueueRow).where(
        TaskQueueRow.classname == job.classname,
        TaskQueueRow.component == job.component,
    )
    if job.user_id is not None:
        statement = statement.where(TaskQueueRow.user_id == job.user_id)
    for row in session.exec(statement.order_by(col(TaskQueueRow.task_id).asc())):
        try:
            payload = _decode_payload(row)
        except InvalidTaskError:
            continue
        if payload == job.payload:
            return row
    return None


def _encode_payload(payload: dict[str, object]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True)


def _decode_payload(row: TaskQueueRow) -> dict[str, Any]:
    if not row.custom_data:
        return {}
    try:
        payload = json.loads(row.custom_data)
    except ValueError as error:
        raise InvalidTaskError(
            f"Task {row.task_id} has undecodable custom data: {error}",
        ) from error
    if not isinstance(payload, dict):
        raise InvalidTaskError(f"Task {row.task_id} custom data is not a JSON object.")
    return payload


def _to_job(row: TaskQueueRow) -> RawJobRecord:
    return RawJobRecord(
        task_id=row.task_id,
        classname=row.classname,
        component=row.component,
        user_id=row.user_id,
        payload=_decode_payload(row),
        next_run_at=to_utc_aware_datetime(row.next_run_at),
        fail_delay=row.fail_delay,
        blocking=row.blocking,
        created_at=to_utc_aware_datetime(row.created_at),
    )
