"""users + raw profile fragments + canonical profile layer

Revision ID: 20260301_01_profile_canon
Revises:
Create Date: 2026-03-01 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from pgvector.sqlalchemy import Vector

# revision identifiers, used by Alembic.
revision = "20260301_01_profile_canon"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _json_list(name):
    return sa.Column(name, postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'[]'::jsonb"))


def upgrade():
    op.execute("CREATE EXTENSION IF NOT EXISTS vector;")

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("email_verified", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # ---------- raw fragments ----------
    op.create_table(
        "experiences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company", sa.Text(), nullable=False, server_default=""),
        sa.Column("title", sa.Text(), nullable=False, server_default=""),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Text(), nullable=True),
        sa.Column("end_date", sa.Text(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_experiences_user_id", "experiences", ["user_id"])

    op.create_table(
        "experience_bullets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("experience_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("importance_score", sa.Integer(), nullable=True, server_default="0"),
        sa.Column("embedding", Vector(768), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["experience_id"], ["experiences.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_experience_bullets_experience_id", "experience_bullets", ["experience_id"])

    op.create_table(
        "skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("canonical_name", sa.Text(), nullable=False),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "canonical_name", name="uq_skills_user_name"),
    )
    op.create_index("ix_skills_user_id", "skills", ["user_id"])

    # ---------- canonical layer ----------
    op.create_table(
        "canonical_experiences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("normalized_company", sa.Text(), nullable=False),
        sa.Column("display_company", sa.Text(), nullable=False),
        sa.Column("primary_title", sa.Text(), nullable=True),
        _json_list("title_progression"),
        sa.Column("primary_location", sa.Text(), nullable=True),
        _json_list("locations"),
        sa.Column("start_date", sa.Text(), nullable=True),
        sa.Column("end_date", sa.Text(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _json_list("source_experience_ids"),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bullet_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ord", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_canonical_experiences_user_id", "canonical_experiences", ["user_id"])
    op.create_index("ix_canonical_experiences_user_ord", "canonical_experiences", ["user_id", "ord"])

    op.create_table(
        "canonical_experience_bullets",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("canonical_experience_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("representative_bullet_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        _json_list("source_bullet_ids"),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("avg_similarity", sa.Float(), nullable=False, server_default="1"),
        sa.Column("embedding", Vector(768), nullable=True),
        sa.Column("ord", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["canonical_experience_id"], ["canonical_experiences.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_canonical_experience_bullets_user_id", "canonical_experience_bullets", ["user_id"])
    op.create_index(
        "ix_canonical_experience_bullets_experience_id",
        "canonical_experience_bullets",
        ["canonical_experience_id"],
    )

    op.create_table(
        "canonical_skills",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("controlled_key", sa.Text(), nullable=False),
        sa.Column("label", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False, server_default="Other"),
        _json_list("source_skill_ids"),
        sa.Column("source_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weight", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "controlled_key", name="uq_canonical_skills_user_key"),
    )
    op.create_index("ix_canonical_skills_user_id", "canonical_skills", ["user_id"])

    op.execute("""
    CREATE INDEX IF NOT EXISTS ix_canonical_experience_bullets_embedding_cos
    ON canonical_experience_bullets
    USING ivfflat (embedding vector_cosine_ops) WITH (lists = 100);
    """)


def downgrade():
    op.execute("DROP INDEX IF EXISTS ix_canonical_experience_bullets_embedding_cos;")
    op.drop_table("canonical_skills")
    op.drop_table("canonical_experience_bullets")
    op.drop_table("canonical_experiences")
    op.drop_table("skills")
    op.drop_table("experience_bullets")
    op.drop_table("experiences")
    op.drop_table("users")
