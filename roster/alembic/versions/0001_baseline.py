"""Baseline schema.

Revision ID: 0001_baseline
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_baseline"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True, nullable=False)


def _fk(name: str, target: str, nullable: bool = True, **kw) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey(target, **kw), nullable=nullable)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    assignment_status = postgresql.ENUM(
        "PENDING", "ACCEPTED", "REJECTED", name="assignment_status", create_type=False
    )
    request_type = postgresql.ENUM("SHIFT_SWAP", "LEAVE", name="request_type", create_type=False)
    request_status = postgresql.ENUM(
        "PENDING", "APPROVED", "REJECTED", name="request_status", create_type=False
    )
    task_status = postgresql.ENUM(
        "PENDING", "IN_PROGRESS", "COMPLETED", name="task_status", create_type=False
    )
    for enum_type in (assignment_status, request_type, request_status, task_status):
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_manager", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_inspector", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "roles",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("name", name="uq_roles_name"),
    )

    op.create_table(
        "shift_types",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("name", name="uq_shift_types_name"),
    )

    op.create_table(
        "task_types",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("name", name="uq_task_types_name"),
    )

    op.create_table(
        "buildings",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("area", sa.String(length=255), nullable=False, server_default=""),
        _fk("supervisor_id", "users.id"),
        _created_at(),
        sa.UniqueConstraint("code", name="uq_buildings_code"),
    )

    op.create_table(
        "shifts",
        _id(),
        _fk("building_id", "buildings.id", nullable=False),
        sa.Column("week", sa.String(length=8), nullable=False),
        _fk("created_by", "users.id"),
        _created_at(),
        sa.UniqueConstraint("building_id", "week", name="uq_shifts_building_week"),
    )
    op.create_index("ix_shifts_building_id", "shifts", ["building_id"])
    op.create_index("ix_shifts_week", "shifts", ["week"])

    op.create_table(
        "inspector_groups",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
    )

    op.create_table(
        "shift_days",
        _id(),
        _fk("inspector_group_id", "inspector_groups.id", nullable=False, ondelete="CASCADE"),
        sa.Column("day_of_week", sa.SmallInteger(), nullable=False),
        _fk("shift_type_id", "shift_types.id"),
        sa.UniqueConstraint("inspector_group_id", "day_of_week", name="uq_shift_days_group_day"),
        sa.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_shift_days_day_of_week"),
    )
    op.create_index("ix_shift_days_inspector_group_id", "shift_days", ["inspector_group_id"])

    op.create_table(
        "shift_inspectors",
        _id(),
        _fk("inspector_group_id", "inspector_groups.id", nullable=False, ondelete="CASCADE"),
        _fk("inspector_id", "users.id", nullable=False),
        sa.Column("is_backup", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", assignment_status, nullable=False, server_default="PENDING"),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("response_at", sa.DateTime(timezone=True), nullable=True),
        _created_at("assigned_at"),
        _fk("assigned_by", "users.id"),
        sa.UniqueConstraint("inspector_group_id", "inspector_id", name="uq_shift_inspectors_group_inspector"),
    )
    op.create_index("ix_shift_inspectors_inspector_group_id", "shift_inspectors", ["inspector_group_id"])
    op.create_index("ix_shift_inspectors_inspector_id", "shift_inspectors", ["inspector_id"])

    op.create_table(
        "task_assignments",
        _id(),
        _fk("shift_id", "shifts.id", nullable=False, ondelete="CASCADE"),
        _fk("role_id", "roles.id", nullable=False),
        _fk("inspector_group_id", "inspector_groups.id", nullable=False),
        sa.UniqueConstraint("shift_id", "role_id", name="uq_task_assignments_shift_role"),
    )
    op.create_index("ix_task_assignments_shift_id", "task_assignments", ["shift_id"])
    op.create_index("ix_task_assignments_role_id", "task_assignments", ["role_id"])
    op.create_index("ix_task_assignments_inspector_group_id", "task_assignments", ["inspector_group_id"])

    op.create_table(
        "requests",
        _id(),
        _fk("requester_id", "users.id", nullable=False),
        sa.Column("type", request_type, nullable=False),
        sa.Column("status", request_status, nullable=False, server_default="PENDING"),
        _fk("shift_type_id", "shift_types.id"),
        _fk("target_shift_type_id", "shift_types.id"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        _fk("reviewer_id", "users.id"),
        _fk("manager_id", "users.id"),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_requests_requester_id", "requests", ["requester_id"])
    op.create_index("ix_requests_manager_id", "requests", ["manager_id"])
    op.create_index("ix_requests_status", "requests", ["status"])

    op.create_table(
        "agencies",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("created_by", "users.id"),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_agencies_name"),
    )

    op.create_table(
        "tasks",
        _id(),
        _fk("inspector_id", "users.id"),
        _fk("shift_type_id", "shift_types.id", nullable=False),
        _fk("task_type_id", "task_types.id", nullable=False),
        sa.Column("status", task_status, nullable=False, server_default="PENDING"),
        sa.Column("date", sa.Date(), nullable=False),
        _fk("assigned_to", "agencies.id"),
        sa.Column("is_followup_needed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk("created_by", "users.id"),
        _created_at(),
    )
    op.create_index("ix_tasks_date", "tasks", ["date"])

    op.create_table(
        "notifications",
        _id(),
        _fk("user_id", "users.id", nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "audit_logs",
        _id(),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        _created_at("timestamp"),
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])


def downgrade() -> None:
    op.drop_index("ix_audit_logs_action", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_notifications_created_at", table_name="notifications")
    op.drop_index("ix_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("ix_tasks_date", table_name="tasks")
    op.drop_table("tasks")
    op.drop_table("agencies")

    op.drop_index("ix_requests_status", table_name="requests")
    op.drop_index("ix_requests_manager_id", table_name="requests")
    op.drop_index("ix_requests_requester_id", table_name="requests")
    op.drop_table("requests")

    op.drop_index("ix_task_assignments_inspector_group_id", table_name="task_assignments")
    op.drop_index("ix_task_assignments_role_id", table_name="task_assignments")
    op.drop_index("ix_task_assignments_shift_id", table_name="task_assignments")
    op.drop_table("task_assignments")

    op.drop_index("ix_shift_inspectors_inspector_id", table_name="shift_inspectors")
    op.drop_index("ix_shift_inspectors_inspector_group_id", table_name="shift_inspectors")
    op.drop_table("shift_inspectors")

    op.drop_index("ix_shift_days_inspector_group_id", table_name="shift_days")
    op.drop_table("shift_days")

    op.drop_table("inspector_groups")

    op.drop_index("ix_shifts_week", table_name="shifts")
    op.drop_index("ix_shifts_building_id", table_name="shifts")
    op.drop_table("shifts")

    op.drop_table("buildings")
    op.drop_table("task_types")
    op.drop_table("shift_types")
    op.drop_table("roles")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ("task_status", "request_status", "request_type", "assignment_status"):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
