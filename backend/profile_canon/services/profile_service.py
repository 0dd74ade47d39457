# profile_canon/services/profile_service.py
"""
Manual profile edits. Every successful edit is a rebuild trigger: the raw rows are
written first, then the canonical profile is recomputed synchronously and returned.
Lookups are scoped to the owner, so another user's record reads as "not found".
"""
from __future__ import annotations

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from profile_canon.models.profile import Experience, Skill
from profile_canon.repositories import profile_repo
from profile_canon.schemas.profile import ExperienceCreate, ExperienceUpdate
from profile_canon.services.canonical.identity import ensure_owner
from profile_canon.services.canonical.service import canonicalize_profile
from profile_canon.services.canonical.types import BulletDeduplicator, CanonicalProfile, Embedder

logger = logging.getLogger("profile.service")


def get_raw_profile(db: Session, user_id: UUID) -> Tuple[list[Experience], list[Skill]]:
    return profile_repo.list_experiences(db, user_id), profile_repo.list_skills(db, user_id)


def _rebuild(
    db: Session,
    user_id: UUID,
    embedder: Optional[Embedder],
    deduplicator: Optional[BulletDeduplicator],
) -> CanonicalProfile:
    return canonicalize_profile(db, user_id, embedder=embedder, deduplicator=deduplicator)


def add_experience(
    db: Session,
    user_id: UUID,
    payload: ExperienceCreate,
    *,
    embedder: Optional[Embedder] = None,
    deduplicator: Optional[BulletDeduplicator] = None,
) -> CanonicalProfile:
    ensure_owner(db, user_id)
    exp = profile_repo.create_experience(
        db,
        user_id=user_id,
        company=payload.company.strip(),
        title=payload.title.strip(),
        location=payload.location,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_current=payload.is_current,
        bullets=payload.bullets,
    )
    logger.info("Added experience %s for %s...", exp.id, str(user_id)[:8])
    return _rebuild(db, user_id, embedder, deduplicator)


def update_experience(
    db: Session,
    user_id: UUID,
    experience_id: UUID,
    payload: ExperienceUpdate,
    *,
    embedder: Optional[Embedder] = None,
    deduplicator: Optional[BulletDeduplicator] = None,
) -> Optional[CanonicalProfile]:
    exp = profile_repo.get_experience(db, user_id, experience_id)
    if exp is None:
        return None
    profile_repo.update_experience(db, exp, **payload.model_dump(exclude_unset=True))
    logger.info("Updated experience %s for %s...", experience_id, str(user_id)[:8])
    return _rebuild(db, user_id, embedder, deduplicator)


def delete_experience(
    db: Session,
    user_id: UUID,
    experience_id: UUID,
    *,
    embedder: Optional[Embedder] = None,
    deduplicator: Optional[BulletDeduplicator] = None,
) -> Optional[CanonicalProfile]:
    exp = profile_repo.get_experience(db, user_id, experience_id)
    if exp is None:
        return None
    profile_repo.delete_experience(db, exp)
    logger.info("Deleted experience %s for %s...", experience_id, str(user_id)[:8])
    return _rebuild(db, user_id, embedder, deduplicator)


def add_skill(
    db: Session,
    user_id: UUID,
    name: str,
    *,
    embedder: Optional[Embedder] = None,
    deduplicator: Optional[BulletDeduplicator] = None,
) -> CanonicalProfile:
    ensure_owner(db, user_id)
    skill = profile_repo.upsert_skill(db, user_id=user_id, name=name.strip())
    logger.info("Upserted skill %r (count=%d) for %s...", skill.canonical_name, skill.source_count, str(user_id)[:8])
    return _rebuild(db, user_id, embedder, deduplicator)


def delete_skill(
    db: Session,
    user_id: UUID,
    skill_id: UUID,
    *,
    embedder: Optional[Embedder] = None,
    deduplicator: Optional[BulletDeduplicator] = None,
) -> Optional[CanonicalProfile]:
    skill = profile_repo.get_skill(db, user_id, skill_id)
    if skill is None:
        return None
    profile_repo.delete_skill(db, skill)
    logger.info("Deleted skill %s for %s...", skill_id, str(user_id)[:8])
    return _rebuild(db, user_id, embedder, deduplicator)
