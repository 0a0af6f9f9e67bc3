from __future__ import annotations

from pathlib import Path

import allure
import pytest

from deletion_doctor.config import RepairSettings, Settings

pytestmark = [
    allure.epic("Delete Task Repair"),
    allure.feature("Configuration"),
]


def test_from_env_uses_defaults(monkeypatch) -> None:
    for name in (
        "DELETION_DOCTOR_DB_PATH",
        "DELETION_DOCTOR_SQLITE_BUSY_TIMEOUT_MS",
        "DELETION_DOCTOR_ADMIN_USER_ID",
        "DELETION_DOCTOR_MIN_FAIL_DELAY_SECONDS",
        "DELETION_DOCTOR_TASK_CLASSNAME",
        "DELETION_DOCTOR_TASK_COMPONENT",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".deletion_doctor.db")
    assert settings.sqlite_busy_timeout_ms == 5_000
    assert settings.repair == RepairSettings()
    settings.validate()


def test_from_env_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DELETION_DOCTOR_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("DELETION_DOCTOR_ADMIN_USER_ID", "7")
    monkeypatch.setenv("DELETION_DOCTOR_MIN_FAIL_DELAY_SECONDS", "0")
    monkeypatch.setenv("DELETION_DOCTOR_TASK_CLASSNAME", " custom_delete ")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.repair.admin_user_id == 7
    assert settings.repair.min_fail_delay_seconds == 0
    assert settings.repair.task_classname == "custom_delete"


def test_explicit_db_path_wins_over_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("DELETION_DOCTOR_DB_PATH", str(tmp_path / "env.db"))

    settings = Settings.from_env(db_path=tmp_path / "cli.db")

    assert settings.db_path == tmp_path / "cli.db"


def test_from_env_rejects_non_integer_values(monkeypatch) -> None:
    monkeypatch.setenv("DELETION_DOCTOR_ADMIN_USER_ID", "admin")

    with pytest.raises(ValueError, match="DELETION_DOCTOR_ADMIN_USER_ID"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(sqlite_busy_timeout_ms=0), "BUSY_TIMEOUT"),
        (Settings(repair=RepairSettings(min_fail_delay_seconds=-1)), "MIN_FAIL_DELAY"),
        (Settings(repair=RepairSettings(admin_user_id=0)), "ADMIN_USER_ID"),
        (Settings(repair=RepairSettings(task_classname="")), "TASK_CLASSNAME"),
        (Settings(repair=RepairSettings(task_component="")), "TASK_COMPONENT"),
    ],
)
def test_validate_rejects_unusable_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()
