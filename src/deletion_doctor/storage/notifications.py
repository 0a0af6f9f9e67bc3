"""Notification sink writing to the event log and competency tables."""

from __future__ import annotations

import json
import logging

from sqlalchemy import delete as sa_delete
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col

from deletion_doctor.repair.models import ModuleDeletedEvent, Record
from deletion_doctor.storage.common import translate_store_errors, utc_now
from deletion_doctor.storage.sqlmodel_models import EventLogEntry, ModuleCompetency

logger = logging.getLogger(__name__)

MODULE_DELETED_EVENT = "course_module_deleted"


class SQLNotificationSink:
    """Delivers module-deleted notifications inside the record store database."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def course_module_deleted(self, course_module: Record) -> None:
        """Drop competency links of the course module; failures are only logged."""

        cm_id = course_module.get("id")
        try:
            with Session(self.engine) as session:
                session.exec(
                    sa_delete(ModuleCompetency).where(  # type: ignore[call-overload]
                        col(ModuleCompetency.cm_id) == cm_id,
                    ),
                )
                session.commit()
        except SQLAlchemyError as error:
            logger.warning("Competency hook failed for course module %s: %s", cm_id, error)

    def raise_module_deleted(self, event: ModuleDeletedEvent) -> None:
        with translate_store_errors("raise module deleted"), Session(self.engine) as session:
            session.add(
                EventLogEntry(
                    event_name=MODULE_DELETED_EVENT,
                    course_id=event.course_id,
                    context_id=event.context_id,
                    object_id=event.cm_id,
                    other_json=json.dumps(
                        {"module_name": event.module_name, "instance_id": event.instance_id},
                        sort_keys=True,
                    ),
                    snapshot_json=json.dumps(event.snapshot, sort_keys=True, default=str),
                    created_at=utc_now(),
                ),
            )
            session.commit()
        logger.info(
            "Raised %s for course module %s (%s)",
            MODULE_DELETED_EVENT,
            event.cm_id,
            event.module_name,
        )
