"""Profile API endpoints: rebuild and read the canonical profile, inspect raw fragments, and apply manual edits.

Every edit endpoint triggers a synchronous canonical rebuild and returns the refreshed canonical profile.
"""
from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from profile_canon.db.base import get_db
from profile_canon.schemas.profile import (
    CanonicalProfileOut,
    ExperienceCreate,
    ExperienceUpdate,
    RawExperienceOut,
    RawProfileOut,
    RawSkillOut,
    SkillCreate,
)
from profile_canon.services import profile_service
from profile_canon.services.canonical import service as canonical_service
from profile_canon.services.canonical.bullet_dedupe import EmbeddingBulletDeduplicator
from profile_canon.services.canonical.identity import IdentityProvisioningError
from profile_canon.services.canonical.types import BulletDeduplicator, CanonicalProfile, Embedder
from profile_canon.services.common.embedding_client import default_embedding_client

logger = logging.getLogger("api.profile")

router = APIRouter(prefix="/profiles", tags=["profiles"])

T = TypeVar("T")


def get_embedder() -> Embedder:
    return default_embedding_client


def get_deduplicator(embedder: Embedder = Depends(get_embedder)) -> BulletDeduplicator:
    return EmbeddingBulletDeduplicator(embedder)


def _guarded(user_id: UUID, action: Callable[[], T]) -> T:
    try:
        return action()
    except IdentityProvisioningError as e:
        logger.error("Identity provisioning failed for %s...: %s", str(user_id)[:8], e)
        raise HTTPException(status_code=500, detail="Profile owner could not be provisioned")
    except SQLAlchemyError:
        logger.exception("Storage error for %s...", str(user_id)[:8])
        raise HTTPException(status_code=500, detail="Profile storage error")


def _or_404(result: Optional[CanonicalProfile], what: str) -> CanonicalProfile:
    if result is None:
        raise HTTPException(status_code=404, detail=f"{what} not found")
    return result


@router.post("/{user_id}/canonicalize", response_model=CanonicalProfileOut)
def canonicalize(
    user_id: UUID,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    return _guarded(
        user_id,
        lambda: canonical_service.canonicalize_profile(db, user_id, embedder=embedder, deduplicator=deduplicator),
    )


@router.get("/{user_id}/canonical", response_model=CanonicalProfileOut)
def get_canonical(user_id: UUID, db: Session = Depends(get_db)):
    return _guarded(user_id, lambda: canonical_service.get_canonical_profile(db, user_id))


@router.get("/{user_id}/raw", response_model=RawProfileOut)
def get_raw(user_id: UUID, db: Session = Depends(get_db)):
    experiences, skills = profile_service.get_raw_profile(db, user_id)
    return RawProfileOut(
        experiences=[RawExperienceOut.model_validate(e) for e in experiences],
        skills=[RawSkillOut.model_validate(s) for s in skills],
    )


@router.post("/{user_id}/experiences", response_model=CanonicalProfileOut, status_code=201)
def create_experience(
    user_id: UUID,
    payload: ExperienceCreate,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    return _guarded(
        user_id,
        lambda: profile_service.add_experience(db, user_id, payload, embedder=embedder, deduplicator=deduplicator),
    )


@router.patch("/{user_id}/experiences/{experience_id}", response_model=CanonicalProfileOut)
def update_experience(
    user_id: UUID,
    experience_id: UUID,
    payload: ExperienceUpdate,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    result = _guarded(
        user_id,
        lambda: profile_service.update_experience(
            db, user_id, experience_id, payload, embedder=embedder, deduplicator=deduplicator
        ),
    )
    return _or_404(result, "Experience")


@router.delete("/{user_id}/experiences/{experience_id}", response_model=CanonicalProfileOut)
def delete_experience(
    user_id: UUID,
    experience_id: UUID,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    result = _guarded(
        user_id,
        lambda: profile_service.delete_experience(
            db, user_id, experience_id, embedder=embedder, deduplicator=deduplicator
        ),
    )
    return _or_404(result, "Experience")


@router.post("/{user_id}/skills", response_model=CanonicalProfileOut, status_code=201)
def add_skill(
    user_id: UUID,
    payload: SkillCreate,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    return _guarded(
        user_id,
        lambda: profile_service.add_skill(db, user_id, payload.name, embedder=embedder, deduplicator=deduplicator),
    )


@router.delete("/{user_id}/skills/{skill_id}", response_model=CanonicalProfileOut)
def delete_skill(
    user_id: UUID,
    skill_id: UUID,
    db: Session = Depends(get_db),
    embedder: Embedder = Depends(get_embedder),
    deduplicator: BulletDeduplicator = Depends(get_deduplicator),
):
    result = _guarded(
        user_id,
        lambda: profile_service.delete_skill(db, user_id, skill_id, embedder=embedder, deduplicator=deduplicator),
    )
    return _or_404(result, "Skill")
