"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "lectures",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("lecture_date", sa.String(length=10), nullable=False),
        sa.Column("lecture_time", sa.String(length=5), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("survey_close_date", sa.String(length=10), nullable=False),
        sa.Column("survey_close_time", sa.String(length=5), nullable=False),
        sa.Column("survey_status", sa.String(length=20), server_default=sa.text("'active'"), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("analyzed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_lectures_survey_status", "lectures", ["survey_status"], unique=False)
    op.create_index("idx_lectures_created_by", "lectures", ["created_by"], unique=False)

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lecture_id", sa.Integer(), nullable=False),
        sa.Column("gender", sa.String(length=50), nullable=False),
        sa.Column("age_group", sa.String(length=50), nullable=False),
        sa.Column("understanding", sa.Float(), nullable=False),
        sa.Column("satisfaction", sa.Float(), nullable=False),
        sa.Column("free_comment", sa.Text(), nullable=True),
        sa.Column("client_hash", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("response_time_seconds", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(["lecture_id"], ["lectures.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_responses_lecture_id", "survey_responses", ["lecture_id"], unique=False)
    op.create_index("idx_responses_client_hash", "survey_responses", ["client_hash"], unique=False)
    op.create_index("idx_responses_created_at", "survey_responses", ["created_at"], unique=False)

    op.create_table(
        "result_sets",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lecture_id", sa.Integer(), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_responses", sa.Integer(), nullable=False),
        sa.Column("trigger_type", sa.String(length=20), nullable=False),
        sa.Column("triggered_by", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["lecture_id"], ["lectures.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lecture_id", "closed_at", name="uq_result_sets_lecture_closed_at"),
    )
    op.create_index("idx_result_sets_lecture_closed_at", "result_sets", ["lecture_id", "closed_at"], unique=False)

    op.create_table(
        "result_facts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("result_set_id", sa.Integer(), nullable=False),
        sa.Column("lecture_id", sa.Integer(), nullable=False),
        sa.Column("stat_type", sa.String(length=20), nullable=False),
        sa.Column("dim1_code", sa.String(length=50), nullable=False),
        sa.Column("dim1_option", sa.String(length=50), nullable=False),
        sa.Column("dim2_code", sa.String(length=50), nullable=True),
        sa.Column("dim2_option", sa.String(length=50), nullable=True),
        sa.Column("target_code", sa.String(length=50), nullable=True),
        sa.Column("n", sa.Integer(), nullable=True),
        sa.Column("base_n", sa.Integer(), nullable=True),
        sa.Column("pct", sa.Float(), nullable=True),
        sa.Column("row_pct", sa.Float(), nullable=True),
        sa.Column("row_base_n", sa.Integer(), nullable=True),
        sa.Column("col_pct", sa.Float(), nullable=True),
        sa.Column("col_base_n", sa.Integer(), nullable=True),
        sa.Column("total_pct", sa.Float(), nullable=True),
        sa.Column("total_base_n", sa.Integer(), nullable=True),
        sa.Column("avg_score", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["result_set_id"], ["result_sets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_result_facts_set_type_dim1", "result_facts",
        ["result_set_id", "stat_type", "dim1_code"], unique=False,
    )
    op.create_index("idx_result_facts_lecture", "result_facts", ["lecture_id"], unique=False)

    op.create_table(
        "operation_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lecture_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.String(length=100), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_operation_logs_lecture", "operation_logs", ["lecture_id"], unique=False)
    op.create_index("idx_operation_logs_action", "operation_logs", ["action"], unique=False)

    op.create_table(
        "cycle_leases",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("holder", sa.String(length=64), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("name"),
    )


def downgrade() -> None:
    op.drop_table("cycle_leases")
    op.drop_index("idx_operation_logs_action", table_name="operation_logs")
    op.drop_index("idx_operation_logs_lecture", table_name="operation_logs")
    op.drop_table("operation_logs")
    op.drop_index("idx_result_facts_lecture", table_name="result_facts")
    op.drop_index("idx_result_facts_set_type_dim1", table_name="result_facts")
    op.drop_table("result_facts")
    op.drop_index("idx_result_sets_lecture_closed_at", table_name="result_sets")
    op.drop_table("result_sets")
    op.drop_index("idx_responses_created_at", table_name="survey_responses")
    op.drop_index("idx_responses_client_hash", table_name="survey_responses")
    op.drop_index("ix_survey_responses_lecture_id", table_name="survey_responses")
    op.drop_table("survey_responses")
    op.drop_index("idx_lectures_created_by", table_name="lectures")
    op.drop_index("idx_lectures_survey_status", table_name="lectures")
    op.drop_table("lectures")
