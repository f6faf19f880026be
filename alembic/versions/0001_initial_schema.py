"""Initial schema: users with student codes, academics, admissions, records

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Student codes (SU-NNN) are unique across users through a partial index so
any number of rows may have no code.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUMS = {
    "user_role": ("student", "staff", "teacher", "admin"),
    "user_status": ("active", "potential", "contacted", "studying", "postponed", "off", "alumni"),
    "gender": ("male", "female", "other"),
    "skill": ("reading", "writing", "listening", "speaking", "grammar", "vocabulary"),
    "english_level": (
        "beginner", "elementary", "pre-intermediate", "intermediate", "upper-intermediate", "advanced",
    ),
    "lead_source": ("website", "referral", "social_media", "walk_in", "admin_registration", "other"),
    "lead_status": ("pending", "contacted", "interviewed", "approved", "rejected", "enrolled"),
    "record_action": (
        "enrollment", "class_assignment", "class_removal", "grade_update", "attendance", "payment",
        "withdrawal", "re_enrollment", "profile_update", "status_change", "note_added", "test_result",
    ),
    "record_category": ("academic", "administrative", "financial", "attendance", "assessment"),
    "change_action": ("add", "edit", "delete", "assign", "reassign"),
    "entity_type": ("class", "level", "student", "user", "assignment", "potential_student"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps():
    return (
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def _uuid_pk():
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        _uuid_pk(),
        sa.Column("firebase_uid", sa.String(128), nullable=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("english_name", sa.String(255), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("dob", sa.String(20), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("parent_name", sa.String(255), nullable=True),
        sa.Column("parent_phone", sa.String(50), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False),
        sa.Column("status", _enum("user_status"), nullable=False),
        sa.Column("student_code", sa.String(20), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_firebase_uid", "users", ["firebase_uid"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_status", "users", ["status"])
    op.create_index("ix_users_created_at", "users", ["created_at"])
    op.create_index(
        "ix_users_student_code",
        "users",
        ["student_code"],
        unique=True,
        postgresql_where=sa.text("student_code IS NOT NULL"),
    )

    op.create_table(
        "levels",
        _uuid_pk(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("code", sa.String(20), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_levels_id", "levels", ["id"])
    op.create_index("ix_levels_is_active", "levels", ["is_active"])
    op.create_index("ix_levels_created_at", "levels", ["created_at"])

    op.create_table(
        "classes",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("level_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("levels.id", ondelete="SET NULL"), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_classes_id", "classes", ["id"])
    op.create_index("ix_classes_level_id", "classes", ["level_id"])
    op.create_index("ix_classes_teacher_id", "classes", ["teacher_id"])
    op.create_index("ix_classes_is_active", "classes", ["is_active"])
    op.create_index("ix_classes_created_at", "classes", ["created_at"])

    op.create_table(
        "class_students",
        sa.Column("class_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "assignments",
        _uuid_pk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("skill", _enum("skill"), nullable=False),
        sa.Column("level", sa.String(100), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_assignments_id", "assignments", ["id"])
    op.create_index("ix_assignments_created_by", "assignments", ["created_by"])
    op.create_index("ix_assignments_created_at", "assignments", ["created_at"])

    op.create_table(
        "assignment_classes",
        sa.Column("assignment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("assignments.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("class_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("classes.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "submissions",
        _uuid_pk(),
        sa.Column("assignment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("graded_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("graded_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", "student_id", name="uq_submission_assignment_student"),
        sa.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="ck_submission_score_range"),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"])
    op.create_index("ix_submissions_assignment_id", "submissions", ["assignment_id"])
    op.create_index("ix_submissions_student_id", "submissions", ["student_id"])
    op.create_index("ix_submissions_created_at", "submissions", ["created_at"])

    op.create_table(
        "potential_students",
        _uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("english_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("gender", _enum("gender"), nullable=True),
        sa.Column("dob", sa.String(20), nullable=True),
        sa.Column("parent_name", sa.String(255), nullable=True),
        sa.Column("parent_phone", sa.String(50), nullable=True),
        sa.Column("parent_email", sa.String(255), nullable=True),
        sa.Column("current_school", sa.String(255), nullable=True),
        sa.Column("current_grade", sa.String(50), nullable=True),
        sa.Column("english_level", _enum("english_level"), nullable=False),
        sa.Column("source", _enum("lead_source"), nullable=False),
        sa.Column("referral_by", sa.String(255), nullable=True),
        sa.Column("interested_programs", postgresql.ARRAY(sa.String()), nullable=False),
        sa.Column("status", _enum("lead_status"), nullable=False),
        sa.Column("assigned_to", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("contacted_at", sa.DateTime(), nullable=True),
        sa.Column("interviewed_at", sa.DateTime(), nullable=True),
        sa.Column("enrolled_at", sa.DateTime(), nullable=True),
        sa.Column("converted_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_potential_students_id", "potential_students", ["id"])
    op.create_index("ix_potential_students_email", "potential_students", ["email"], unique=True)
    op.create_index("ix_potential_students_source", "potential_students", ["source"])
    op.create_index("ix_potential_students_status", "potential_students", ["status"])
    op.create_index("ix_potential_students_assigned_to", "potential_students", ["assigned_to"])
    op.create_index("ix_potential_students_created_at", "potential_students", ["created_at"])

    op.create_table(
        "student_records",
        _uuid_pk(),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("student_name", sa.String(255), nullable=False),
        sa.Column("action", _enum("record_action"), nullable=False),
        sa.Column("category", _enum("record_category"), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=False),
        sa.Column("related_class_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("classes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("related_assignment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("assignments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("performed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("performed_by_name", sa.String(255), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_student_records_id", "student_records", ["id"])
    op.create_index("ix_student_records_student_id", "student_records", ["student_id"])
    op.create_index("ix_student_records_created_at", "student_records", ["created_at"])
    op.create_index("ix_student_records_student_timestamp", "student_records", ["student_id", "timestamp"])
    op.create_index("ix_student_records_action_timestamp", "student_records", ["action", "timestamp"])
    op.create_index("ix_student_records_category_timestamp", "student_records", ["category", "timestamp"])

    op.create_table(
        "change_logs",
        _uuid_pk(),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=False),
        sa.Column("user_role", sa.String(20), nullable=False),
        sa.Column("action", _enum("change_action"), nullable=False),
        sa.Column("entity_type", _enum("entity_type"), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=True),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("ip", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_change_logs_id", "change_logs", ["id"])
    op.create_index("ix_change_logs_user_id", "change_logs", ["user_id"])
    op.create_index("ix_change_logs_action", "change_logs", ["action"])
    op.create_index("ix_change_logs_entity_type", "change_logs", ["entity_type"])
    op.create_index("ix_change_logs_entity_id", "change_logs", ["entity_id"])
    op.create_index("ix_change_logs_timestamp", "change_logs", ["timestamp"])
    op.create_index("ix_change_logs_created_at", "change_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "change_logs",
        "student_records",
        "potential_students",
        "submissions",
        "assignment_classes",
        "assignments",
        "class_students",
        "classes",
        "levels",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
