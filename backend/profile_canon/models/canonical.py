# Purpose: Canonical profile layer, fully regenerated on every rebuild.
# Notes:
# - Rows carry `ord` so the read path returns the order the rebuild produced.
# - List columns are JSONB on PostgreSQL; embeddings are pgvector columns.

from __future__ import annotations

import uuid
from sqlalchemy import Column, Text, Integer, Boolean, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from profile_canon.db.base import Base, json_list_type, vector_type

EMBED_DIM = 768


class CanonicalExperience(Base):
    """
    One merged employer stint.
    - `source_experience_ids`: raw `experiences` rows folded into this record.
    - `title_progression`: distinct titles, most recent first.
    """
    __tablename__ = "canonical_experiences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    normalized_company = Column(Text, nullable=False)
    display_company = Column(Text, nullable=False)
    primary_title = Column(Text, nullable=True)
    title_progression = Column(json_list_type(), nullable=False, default=list)
    primary_location = Column(Text, nullable=True)
    locations = Column(json_list_type(), nullable=False, default=list)
    start_date = Column(Text, nullable=True)
    end_date = Column(Text, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)

    source_experience_ids = Column(json_list_type(), nullable=False, default=list)
    source_count = Column(Integer, nullable=False, default=0)
    bullet_count = Column(Integer, nullable=False, default=0)
    ord = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    bullets = relationship(
        "CanonicalExperienceBullet",
        back_populates="experience",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CanonicalExperienceBullet.ord",
    )


class CanonicalExperienceBullet(Base):
    """
    Representative achievement bullet for a cluster of near-duplicate raw bullets.
    """
    __tablename__ = "canonical_experience_bullets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    canonical_experience_id = Column(
        UUID(as_uuid=True),
        ForeignKey("canonical_experiences.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    representative_bullet_id = Column(UUID(as_uuid=True), nullable=True)
    content = Column(Text, nullable=False)
    source_bullet_ids = Column(json_list_type(), nullable=False, default=list)
    source_count = Column(Integer, nullable=False, default=1)
    avg_similarity = Column(Float, nullable=False, default=1.0)
    embedding = Column(vector_type(EMBED_DIM), nullable=True)
    ord = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    experience = relationship("CanonicalExperience", back_populates="bullets")


class CanonicalSkill(Base):
    __tablename__ = "canonical_skills"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    controlled_key = Column(Text, nullable=False)
    label = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="Other")
    source_skill_ids = Column(json_list_type(), nullable=False, default=list)
    source_count = Column(Integer, nullable=False, default=0)
    weight = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "controlled_key", name="uq_canonical_skills_user_key"),
    )
