# profile_canon/services/canonical/service.py
"""
Canonical profile service: rebuild and read a user's merged professional profile.

A rebuild fetches every raw experience (with bullets) and raw skill for the owner,
runs the grouping engine and the skill canonicalizer independently, then hands
both results to the writer, which swaps them in atomically. There is no
incremental path; every trigger recomputes everything.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from profile_canon.core.config import settings
from profile_canon.models import canonical as orm
from profile_canon.repositories import canonical_repo, profile_repo
from profile_canon.services.canonical.bullet_dedupe import EmbeddingBulletDeduplicator, parse_vector
from profile_canon.services.canonical.grouping import build_canonical_experiences
from profile_canon.services.canonical.skills import build_canonical_skills
from profile_canon.services.canonical.types import (
    BulletDeduplicator,
    CanonicalExperience,
    CanonicalProfile,
    CanonicalSkill,
    DedupedBullet,
    Embedder,
)
from profile_canon.services.canonical.writer import replace_canonical_profile
from profile_canon.services.common.embedding_client import default_embedding_client

logger = logging.getLogger("canonical.service")


def canonicalize_profile(
    db: Session,
    user_id: UUID,
    *,
    deduplicator: Optional[BulletDeduplicator] = None,
    embedder: Optional[Embedder] = None,
    strategy: Optional[str] = None,
    today: Optional[date] = None,
) -> CanonicalProfile:
    """Recompute and persist the canonical profile for `user_id`; returns what was written."""
    embedder = embedder or default_embedding_client
    deduplicator = deduplicator or EmbeddingBulletDeduplicator(embedder)
    strategy = strategy or settings.EXPERIENCE_MERGE_STRATEGY

    raw_experiences = [profile_repo.to_raw_experience(e) for e in profile_repo.list_experiences(db, user_id)]
    raw_skills = [profile_repo.to_raw_skill(s) for s in profile_repo.list_skills(db, user_id)]
    logger.info(
        "Rebuilding canonical profile for %s...: %d raw experiences, %d raw skills",
        str(user_id)[:8], len(raw_experiences), len(raw_skills),
    )

    experiences = build_canonical_experiences(
        raw_experiences, deduplicator=deduplicator, strategy=strategy, today=today
    )
    skills = build_canonical_skills(raw_skills)

    replace_canonical_profile(db, user_id, experiences, skills, embedder=embedder)

    logger.info(
        "Canonical rebuild done for %s...: %d experiences, %d skills",
        str(user_id)[:8], len(experiences), len(skills),
    )
    return CanonicalProfile(experiences=experiences, skills=skills)


# ---------- Read path ----------

def _bullet_from_row(row: orm.CanonicalExperienceBullet) -> DedupedBullet:
    rep = str(row.representative_bullet_id) if row.representative_bullet_id else None
    return DedupedBullet(
        id=str(row.id),
        content=row.content,
        representative_source_id=rep,
        supporting_source_ids=[str(i) for i in (row.source_bullet_ids or []) if str(i) != rep],
        source_count=row.source_count,
        average_similarity=row.avg_similarity,
        embedding=parse_vector(row.embedding),
    )


def _experience_from_row(row: orm.CanonicalExperience) -> CanonicalExperience:
    return CanonicalExperience(
        id=str(row.id),
        normalized_company_key=row.normalized_company,
        display_company_name=row.display_company,
        primary_title=row.primary_title or "",
        title_progression=list(row.title_progression or []),
        primary_location=row.primary_location or "",
        locations=list(row.locations or []),
        start_date=row.start_date,
        end_date=row.end_date,
        is_current=bool(row.is_current),
        source_experience_ids=[str(i) for i in (row.source_experience_ids or [])],
        bullets=[_bullet_from_row(b) for b in row.bullets],
    )


def _skill_from_row(row: orm.CanonicalSkill) -> CanonicalSkill:
    return CanonicalSkill(
        id=str(row.id),
        controlled_key=row.controlled_key,
        label=row.label,
        category=row.category,
        source_skill_ids=[str(i) for i in (row.source_skill_ids or [])],
        source_count=row.source_count,
        weight=row.weight,
    )


def get_canonical_profile(db: Session, user_id: UUID) -> CanonicalProfile:
    """Last persisted canonical state; never recomputes."""
    return CanonicalProfile(
        experiences=[_experience_from_row(r) for r in canonical_repo.list_experiences(db, user_id)],
        skills=[_skill_from_row(r) for r in canonical_repo.list_skills(db, user_id)],
    )
