"""Initial record store and task queue schema."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:  # noqa: PLR0915
    op.create_table(
        "task_queue",
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("classname", sa.String(), nullable=False),
        sa.Column("component", sa.String(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("custom_data", sa.Text(), nullable=False),
        sa.Column("next_run_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("fail_delay", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("blocking", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("task_id"),
    )
    op.create_index("ix_task_queue_classname", "task_queue", ["classname"])

    op.create_table(
        "courses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("short_name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "course_sections",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("section_no", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sequence", sa.String(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_course_sections_course_id", "course_sections", ["course_id"])

    op.create_table(
        "modules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_modules_name", "modules", ["name"], unique=True)

    op.create_table(
        "course_modules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("module_id", sa.Integer(), nullable=False),
        sa.Column("instance_id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.Integer(), nullable=True),
        sa.Column(
            "deletion_in_progress",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_course_modules_course_id", "course_modules", ["course_id"])

    op.create_table(
        "module_instances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("module_name", sa.String(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_module_instances_module_name", "module_instances", ["module_name"])
    op.create_index("ix_module_instances_course_id", "module_instances", ["course_id"])

    op.create_table(
        "contexts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("context_level", sa.Integer(), nullable=False),
        sa.Column("instance_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "context_level",
            "instance_id",
            name="uq_contexts_level_instance",
        ),
    )
    op.create_index("ix_contexts_context_level", "contexts", ["context_level"])
    op.create_index("ix_contexts_instance_id", "contexts", ["instance_id"])

    op.create_table(
        "files",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("context_id", sa.Integer(), nullable=False),
        sa.Column("component", sa.String(), nullable=False, server_default=""),
        sa.Column("filename", sa.String(), nullable=False, server_default=""),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_files_context_id", "files", ["context_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False, server_default=""),
        sa.Column("module_name", sa.String(), nullable=False),
        sa.Column("instance_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("context_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_events_module_name", "events", ["module_name"])
    op.create_index("ix_events_instance_id", "events", ["instance_id"])

    op.create_table(
        "grade_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(), nullable=False, server_default="mod"),
        sa.Column("item_module", sa.String(), nullable=True),
        sa.Column("item_instance", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_grade_items_course_id", "grade_items", ["course_id"])

    op.create_table(
        "grade_grades",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("final_grade", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_grade_grades_item_id", "grade_grades", ["item_id"])

    op.create_table(
        "blog_associations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("context_id", sa.Integer(), nullable=False),
        sa.Column("blog_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_blog_associations_context_id", "blog_associations", ["context_id"])

    op.create_table(
        "course_modules_completion",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cm_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("completion_state", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_course_modules_completion_cm_id",
        "course_modules_completion",
        ["cm_id"],
    )

    op.create_table(
        "course_completion_criteria",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("criteria_type", sa.Integer(), nullable=False),
        sa.Column("module_instance", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_course_completion_criteria_course_id",
        "course_completion_criteria",
        ["course_id"],
    )

    op.create_table(
        "tag_instances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        sa.Column("component", sa.String(), nullable=False),
        sa.Column("item_type", sa.String(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("context_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tag_instances_component", "tag_instances", ["component"])
    op.create_index("ix_tag_instances_context_id", "tag_instances", ["context_id"])

    op.create_table(
        "competency_modulecomp",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("cm_id", sa.Integer(), nullable=False),
        sa.Column("competency_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_competency_modulecomp_cm_id", "competency_modulecomp", ["cm_id"])

    op.create_table(
        "course_modinfo_cache",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("cm_id", sa.Integer(), nullable=False),
        sa.Column("section_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_course_modinfo_cache_course_id", "course_modinfo_cache", ["course_id"])

    op.create_table(
        "course_cache_state",
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("rebuilt_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("course_id"),
    )

    op.create_table(
        "event_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_name", sa.String(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=True),
        sa.Column("context_id", sa.Integer(), nullable=True),
        sa.Column("object_id", sa.Integer(), nullable=True),
        sa.Column("other_json", sa.Text(), nullable=True),
        sa.Column("snapshot_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_event_log_event_name", "event_log", ["event_name"])


def downgrade() -> None:
    op.drop_index("ix_event_log_event_name", table_name="event_log")
    op.drop_table("event_log")
    op.drop_table("course_cache_state")
    op.drop_index("ix_course_modinfo_cache_course_id", table_name="course_modinfo_cache")
    op.drop_table("course_modinfo_cache")
    op.drop_index("ix_competency_modulecomp_cm_id", table_name="competency_modulecomp")
    op.drop_table("competency_modulecomp")
    op.drop_index("ix_tag_instances_context_id", table_name="tag_instances")
    op.drop_index("ix_tag_instances_component", table_name="tag_instances")
    op.drop_table("tag_instances")
    op.drop_index(
        "ix_course_completion_criteria_course_id",
        table_name="course_completion_criteria",
    )
    op.drop_table("course_completion_criteria")
    op.drop_index(
        "ix_course_modules_completion_cm_id",
        table_name="course_modules_completion",
    )
    op.drop_table("course_modules_completion")
    op.drop_index("ix_blog_associations_context_id", table_name="blog_associations")
    op.drop_table("blog_associations")
    op.drop_index("ix_grade_grades_item_id", table_name="grade_grades")
    op.drop_table("grade_grades")
    op.drop_index("ix_grade_items_course_id", table_name="grade_items")
    op.drop_table("grade_items")
    op.drop_index("ix_events_instance_id", table_name="events")
    op.drop_index("ix_events_module_name", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_files_context_id", table_name="files")
    op.drop_table("files")
    op.drop_index("ix_contexts_instance_id", table_name="contexts")
    op.drop_index("ix_contexts_context_level", table_name="contexts")
    op.drop_table("contexts")
    op.drop_index("ix_module_instances_course_id", table_name="module_instances")
    op.drop_index("ix_module_instances_module_name", table_name="module_instances")
    op.drop_table("module_instances")
    op.drop_index("ix_course_modules_course_id", table_name="course_modules")
    op.drop_table("course_modules")
    op.drop_index("ix_modules_name", table_name="modules")
    op.drop_table("modules")
    op.drop_index("ix_course_sections_course_id", table_name="course_sections")
    op.drop_table("course_sections")
    op.drop_table("courses")
    op.drop_index("ix_task_queue_classname", table_name="task_queue")
    op.drop_table("task_queue")
