# path: backend/profile_canon/repositories/canonical_repo.py
# Purpose: Data-access for the canonical layer.
# Notes:
# - Write helpers only flush; the caller owns the transaction (atomic swap).
# - Deletes run child-before-parent.
from __future__ import annotations
from typing import List, Sequence
from uuid import UUID
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from profile_canon.models.canonical import (
    CanonicalExperience,
    CanonicalExperienceBullet,
    CanonicalSkill,
)


def delete_for_user(db: Session, user_id: UUID) -> None:
    db.execute(
        delete(CanonicalExperienceBullet)
        .where(CanonicalExperienceBullet.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(CanonicalExperience)
        .where(CanonicalExperience.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.execute(
        delete(CanonicalSkill)
        .where(CanonicalSkill.user_id == user_id)
        .execution_options(synchronize_session=False)
    )


def add_experiences(db: Session, rows: Sequence[CanonicalExperience]) -> None:
    db.add_all(rows)
    db.flush()


def add_bullets(db: Session, rows: Sequence[CanonicalExperienceBullet]) -> None:
    db.add_all(rows)
    db.flush()


def add_skills(db: Session, rows: Sequence[CanonicalSkill]) -> None:
    db.add_all(rows)
    db.flush()


def list_experiences(db: Session, user_id: UUID) -> List[CanonicalExperience]:
    stmt = (
        select(CanonicalExperience)
        .where(CanonicalExperience.user_id == user_id)
        .options(selectinload(CanonicalExperience.bullets))
        .order_by(CanonicalExperience.ord, CanonicalExperience.id)
    )
    return list(db.execute(stmt).scalars().all())


def list_skills(db: Session, user_id: UUID) -> List[CanonicalSkill]:
    stmt = (
        select(CanonicalSkill)
        .where(CanonicalSkill.user_id == user_id)
        .order_by(CanonicalSkill.weight.desc(), CanonicalSkill.label)
    )
    return list(db.execute(stmt).scalars().all())
