"""create invigilation tables

Revision ID: 20261016_0001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261016_0001"
down_revision = None
branch_labels = None
depends_on = None


user_role = sa.Enum("admin", "hod", "faculty", name="user_role")
exam_type = sa.Enum("mid-term", "semester", "labs", name="exam_type")
exam_status = sa.Enum("scheduled", "allocated", "completed", "cancelled", name="exam_status")
allocation_status = sa.Enum("assigned", "confirmed", "replaced", "cancelled", name="allocation_status")
acknowledgment_status = sa.Enum("pending", "acknowledged", "unavailable", name="acknowledgment_status")
live_status = sa.Enum("none", "present", "on_the_way", "unable_to_reach", name="live_status")
reserved_allocation_status = sa.Enum(
    "available", "suggested", "activated", "used", name="reserved_allocation_status"
)
conflict_type = sa.Enum(
    "overlapping_time", "multiple_duties_same_day", "availability_mismatch", name="conflict_type"
)
conflict_severity = sa.Enum("high", "medium", "low", name="conflict_severity")
conflict_status = sa.Enum("detected", "resolving", "resolved", "ignored", name="conflict_status")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("employee_id", sa.String(length=50), nullable=True, unique=True),
        sa.Column("campus", sa.String(length=100), nullable=True),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("subjects", sa.JSON(), nullable=False),
        sa.Column("max_hours_per_day", sa.Integer(), nullable=True),
        sa.Column("availability_windows", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_campus", "users", ["campus"], unique=False)

    op.create_table(
        "classrooms",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("room_number", sa.String(length=50), nullable=False),
        sa.Column("block", sa.String(length=50), nullable=False),
        sa.Column("floor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("building", sa.String(length=100), nullable=True),
        sa.Column("campus", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_classrooms_campus", "classrooms", ["campus"], unique=False)

    op.create_table(
        "exams",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("exam_code", sa.String(length=50), nullable=False),
        sa.Column("exam_name", sa.String(length=200), nullable=False),
        sa.Column("course_code", sa.String(length=50), nullable=False),
        sa.Column("course_name", sa.String(length=200), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("campus", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("classroom_id", sa.String(length=36), nullable=True),
        sa.Column("total_students", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required_invigilators", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("exam_type", exam_type, nullable=False, server_default="semester"),
        sa.Column("status", exam_status, nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_exams_exam_code", "exams", ["exam_code"], unique=True)
    op.create_index("ix_exams_date", "exams", ["date"], unique=False)
    op.create_index("ix_exams_status", "exams", ["status"], unique=False)

    op.create_table(
        "allocations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("exam_id", sa.String(length=36), nullable=False),
        sa.Column("classroom_id", sa.String(length=36), nullable=True),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("campus", sa.String(length=100), nullable=False),
        sa.Column("department", sa.String(length=200), nullable=False, server_default="General"),
        sa.Column("status", allocation_status, nullable=False, server_default="assigned"),
        sa.Column("is_notified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notified_at", sa.DateTime(), nullable=True),
        sa.Column("acknowledgment_status", acknowledgment_status, nullable=False, server_default="pending"),
        sa.Column("acknowledged_at", sa.DateTime(), nullable=True),
        sa.Column("unavailable_reason", sa.Text(), nullable=True),
        sa.Column("acknowledgment_deadline", sa.DateTime(), nullable=False),
        sa.Column("reminder_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("live_status", live_status, nullable=False, server_default="none"),
        sa.Column("eta", sa.String(length=50), nullable=True),
        sa.Column("emergency_reason", sa.Text(), nullable=True),
        sa.Column("live_status_updated_at", sa.DateTime(), nullable=True),
        sa.Column("live_window_opens_at", sa.DateTime(), nullable=False),
        sa.Column("live_window_closes_at", sa.DateTime(), nullable=False),
        sa.Column("reserve_faculty", sa.JSON(), nullable=False),
        sa.Column("replaces_allocation_id", sa.String(length=36), nullable=True),
        sa.Column("allocated_by_id", sa.String(length=36), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_allocations_exam_id", "allocations", ["exam_id"], unique=False)
    op.create_index("ix_allocations_faculty_id", "allocations", ["faculty_id"], unique=False)
    op.create_index("ix_allocations_date", "allocations", ["date"], unique=False)
    op.create_index("ix_allocations_status", "allocations", ["status"], unique=False)

    op.create_table(
        "reserved_allocations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("exam_id", sa.String(length=36), nullable=False),
        sa.Column("primary_allocation_id", sa.String(length=36), nullable=False),
        sa.Column("reserved_faculty_id", sa.String(length=36), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("status", reserved_allocation_status, nullable=False, server_default="available"),
        sa.Column("suggested_at", sa.DateTime(), nullable=True),
        sa.Column("activated_at", sa.DateTime(), nullable=True),
        sa.Column("replacement_allocation_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_reserved_allocations_exam_id", "reserved_allocations", ["exam_id"], unique=False)
    op.create_index(
        "ix_reserved_allocations_primary_allocation_id",
        "reserved_allocations",
        ["primary_allocation_id"],
        unique=False,
    )
    op.create_index(
        "ix_reserved_allocations_reserved_faculty_id",
        "reserved_allocations",
        ["reserved_faculty_id"],
        unique=False,
    )

    op.create_table(
        "conflicts",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("conflict_type", conflict_type, nullable=False),
        sa.Column("severity", conflict_severity, nullable=False),
        sa.Column("faculty_id", sa.String(length=36), nullable=False),
        sa.Column("allocation_ids", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("cause_key", sa.String(length=255), nullable=False),
        sa.Column("suggested_actions", sa.JSON(), nullable=False),
        sa.Column("auto_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_by_id", sa.String(length=36), nullable=True),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        sa.Column("status", conflict_status, nullable=False, server_default="detected"),
        sa.Column("detected_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_conflicts_faculty_id", "conflicts", ["faculty_id"], unique=False)
    op.create_index("ix_conflicts_cause_key", "conflicts", ["cause_key"], unique=False)
    op.create_index("ix_conflicts_status", "conflicts", ["status"], unique=False)

    op.create_table(
        "allocation_policies",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("max_hours_per_day", sa.Integer(), nullable=False, server_default="6"),
        sa.Column("max_duties_per_faculty", sa.Integer(), nullable=True),
        sa.Column("allow_same_day_repetition", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("time_gap_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("department_preference_weight", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("campus_preference_weight", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("updated_by_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_allocation_policies_is_active", "allocation_policies", ["is_active"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_activity_logs_user_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_allocation_policies_is_active", table_name="allocation_policies")
    op.drop_table("allocation_policies")
    op.drop_index("ix_conflicts_status", table_name="conflicts")
    op.drop_index("ix_conflicts_cause_key", table_name="conflicts")
    op.drop_index("ix_conflicts_faculty_id", table_name="conflicts")
    op.drop_table("conflicts")
    op.drop_index("ix_reserved_allocations_reserved_faculty_id", table_name="reserved_allocations")
    op.drop_index("ix_reserved_allocations_primary_allocation_id", table_name="reserved_allocations")
    op.drop_index("ix_reserved_allocations_exam_id", table_name="reserved_allocations")
    op.drop_table("reserved_allocations")
    op.drop_index("ix_allocations_status", table_name="allocations")
    op.drop_index("ix_allocations_date", table_name="allocations")
    op.drop_index("ix_allocations_faculty_id", table_name="allocations")
    op.drop_index("ix_allocations_exam_id", table_name="allocations")
    op.drop_table("allocations")
    op.drop_index("ix_exams_status", table_name="exams")
    op.drop_index("ix_exams_date", table_name="exams")
    op.drop_index("ix_exams_exam_code", table_name="exams")
    op.drop_table("exams")
    op.drop_index("ix_classrooms_campus", table_name="classrooms")
    op.drop_table("classrooms")
    op.drop_index("ix_users_campus", table_name="users")
    op.drop_index("ix_users_role", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        conflict_status,
        conflict_severity,
        conflict_type,
        reserved_allocation_status,
        live_status,
        acknowledgment_status,
        allocation_status,
        exam_status,
        exam_type,
        user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
