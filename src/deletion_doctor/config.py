"""Runtime configuration for diagnosing and repairing delete-modules tasks."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class RepairSettings:
    """Task selection and repair settings."""

    admin_user_id: int = 2
    min_fail_delay_seconds: int = 60
    task_classname: str = "course_delete_modules"
    task_component: str = "core_course"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".deletion_doctor.db")
    sqlite_busy_timeout_ms: int = 5_000
    repair: RepairSettings = field(default_factory=RepairSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("DELETION_DOCTOR_DB_PATH", ".deletion_doctor.db")),
            sqlite_busy_timeout_ms=_env_int("DELETION_DOCTOR_SQLITE_BUSY_TIMEOUT_MS", 5_000),
            repair=RepairSettings(
                admin_user_id=_env_int("DELETION_DOCTOR_ADMIN_USER_ID", 2),
                min_fail_delay_seconds=_env_int("DELETION_DOCTOR_MIN_FAIL_DELAY_SECONDS", 60),
                task_classname=os.getenv(
                    "DELETION_DOCTOR_TASK_CLASSNAME",
                    "course_delete_modules",
                ).strip(),
                task_component=os.getenv("DELETION_DOCTOR_TASK_COMPONENT", "core_course").strip(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the repair run cannot work with."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("DELETION_DOCTOR_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.repair.min_fail_delay_seconds < 0:
            raise ValueError("DELETION_DOCTOR_MIN_FAIL_DELAY_SECONDS must be >= 0.")
        if self.repair.admin_user_id <= 0:
            raise ValueError("DELETION_DOCTOR_ADMIN_USER_ID must be a positive integer.")
        if not self.repair.task_classname:
            raise ValueError("DELETION_DOCTOR_TASK_CLASSNAME must not be empty.")
        if not self.repair.task_component:
            raise ValueError("DELETION_DOCTOR_TASK_COMPONENT must not be empty.")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error
