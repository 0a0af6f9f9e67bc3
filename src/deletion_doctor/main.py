"""CLI entrypoint for deletion-doctor."""

from pathlib import Path

import rich_click as click

from deletion_doctor import __version__
from deletion_doctor.repair.controllers import CheckTasksCommand, DeletionDoctorController

click.rich_click.USE_MARKDOWN = True
CONTROLLER = DeletionDoctorController()


@click.command()
@click.version_option(version=__version__, prog_name="deletion-doctor")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "-t",
    "--taskids",
    "task_ids",
    default=None,
    help="Delete-modules task ids to check or fix: comma-separated ids or `*` for all.",
)
@click.option(
    "-m",
    "--minimumfaildelay",
    "min_fail_delay",
    type=click.IntRange(min=0),
    default=None,
    help="Only tasks whose fail delay is at least this many seconds "
    "(default: DELETION_DOCTOR_MIN_FAIL_DELAY_SECONDS or 60).",
)
@click.option(
    "-f",
    "--fix",
    is_flag=True,
    default=False,
    help="Fix the selected tasks. Requires `--taskids`.",
)
def deletion_doctor(
    db_path: Path | None,
    task_ids: str | None,
    min_fail_delay: int | None,
    fix: bool,
) -> None:
    """Check and fix incomplete course delete-modules tasks.

    Avoid running while other users may edit the course modules being checked.
    """

    if fix and task_ids is None:
        raise click.UsageError("'--fix' requires '--taskids=[comma separated task ids]'.")
    try:
        lines = CONTROLLER.check(
            CheckTasksCommand(
                db_path=db_path,
                task_ids=_parse_task_ids(task_ids),
                min_fail_delay=min_fail_delay,
                fix=fix,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _parse_task_ids(raw: str | None) -> tuple[int, ...]:
    tokens = [token.strip() for token in (raw or "").split(",") if token.strip()]
    if not tokens or "*" in tokens:
        return ()
    try:
        return tuple(int(token) for token in tokens)
    except ValueError as error:
        raise click.BadParameter(
            f"expected comma-separated task ids or '*', got {raw!r}",
            param_hint="'--taskids'",
        ) from error


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    deletion_doctor()
