# Purpose: Raw profile fragments (experiences, bullets, skills) as produced by ingestion or manual edits.
from __future__ import annotations
import uuid
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from profile_canon.db.base import Base, vector_type


EMBED_DIM = 768


class Experience(Base):
    """
    One employer stint as extracted from a single source document.
    Dates are stored exactly as supplied ("2019", "2019-07", "Present", ...).
    """
    __tablename__ = "experiences"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    company = Column(Text, nullable=False, default="")
    title = Column(Text, nullable=False, default="")
    location = Column(Text, nullable=True)
    start_date = Column(Text, nullable=True)
    end_date = Column(Text, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)
    source_count = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    bullets = relationship(
        "ExperienceBullet",
        back_populates="experience",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ExperienceBullet.created_at",
    )


class ExperienceBullet(Base):
    __tablename__ = "experience_bullets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    experience_id = Column(UUID(as_uuid=True), ForeignKey("experiences.id", ondelete="CASCADE"), nullable=False, index=True)

    content = Column(Text, nullable=False)
    source_count = Column(Integer, nullable=False, default=1)
    importance_score = Column(Integer, nullable=True, default=0)
    embedding = Column(vector_type(EMBED_DIM), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    experience = relationship("Experience", back_populates="bullets")


class Skill(Base):
    __tablename__ = "skills"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    canonical_name = Column(Text, nullable=False)
    source_count = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "canonical_name", name="uq_skills_user_name"),
    )
