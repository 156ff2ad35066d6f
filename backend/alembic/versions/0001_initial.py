"""match scoring schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

JSON_DOC = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "sport",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
    )
    op.create_table(
        "ruleset",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sport_id", sa.String(), sa.ForeignKey("sport.id"), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("config", sa.JSON(), nullable=False),
    )
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sport_id", sa.String(), sa.ForeignKey("sport.id"), nullable=False),
        sa.Column("ruleset_id", sa.String(), sa.ForeignKey("ruleset.id"), nullable=True),
        sa.Column("policy", JSON_DOC, nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="scheduled"),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        "score_event",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("scoring_side", sa.Integer(), nullable=True),
        sa.Column("snapshot", JSON_DOC, nullable=False),
        sa.Column("recorded_by", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "match_id", "sequence", name="uq_score_event_match_id_sequence"
        ),
    )
    op.create_table(
        "match_audit_log",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("actor", sa.String(), nullable=True),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_match_audit_log_match_id",
        "match_audit_log",
        ["match_id"],
    )


def downgrade():
    op.drop_index("ix_match_audit_log_match_id", table_name="match_audit_log")
    op.drop_table("match_audit_log")
    op.drop_table("score_event")
    op.drop_table("match")
    op.drop_table("ruleset")
    op.drop_table("sport")
