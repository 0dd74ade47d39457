"""Persistence writer: swaps a user's whole canonical profile for a freshly computed one.

Sequence:
1) backfill missing bullet embeddings (network I/O, outside any write transaction)
2) make sure the owner row exists
3) in ONE transaction: lock the owner row, delete bullets -> experiences -> skills,
   insert experiences -> bullets -> skills, commit

A failure in step 3 rolls back to the previous generation and re-raises.
"""
from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from profile_canon.models import canonical as orm
from profile_canon.repositories import canonical_repo, user_repo
from profile_canon.services.canonical.bullet_dedupe import parse_vector
from profile_canon.services.canonical.identity import ensure_owner
from profile_canon.services.canonical.types import (
    CanonicalExperience,
    CanonicalSkill,
    DedupedBullet,
    Embedder,
)

logger = logging.getLogger("canonical.writer")


def _as_uuid(value) -> Optional[uuid.UUID]:
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def backfill_embeddings(
    experiences: Sequence[CanonicalExperience],
    embedder: Optional[Embedder],
) -> Dict[str, Optional[List[float]]]:
    """
    Embedding per canonical bullet id. A bullet that already carries one keeps it.
    The rest go to the embedder in one `embed_many` batch when it offers one;
    if the batch fails (or there is none) each bullet is embedded on its own,
    and a per-bullet failure yields None.
    """
    vectors: Dict[str, Optional[List[float]]] = {}
    missing: List[Tuple[CanonicalExperience, DedupedBullet]] = []
    for exp in experiences:
        for bullet in exp.bullets:
            existing = parse_vector(bullet.embedding)
            if existing:
                vectors[bullet.id] = existing
            elif embedder is None or not bullet.content.strip():
                vectors[bullet.id] = None
            else:
                missing.append((exp, bullet))

    if not missing:
        return vectors

    embed_many = getattr(embedder, "embed_many", None)
    if embed_many is not None:
        try:
            batch = embed_many([bullet.content for _, bullet in missing])
            if len(batch) != len(missing):
                raise ValueError(f"expected {len(missing)} vectors, got {len(batch)}")
            for (_, bullet), vec in zip(missing, batch):
                vectors[bullet.id] = list(vec)
            return vectors
        except Exception as e:
            logger.warning("Batch embedding backfill of %d bullets failed, retrying one by one: %s", len(missing), e)

    for exp, bullet in missing:
        try:
            vectors[bullet.id] = list(embedder.embed(bullet.content))
        except Exception as e:
            logger.warning(
                "Embedding backfill failed for bullet %s (experience %s): %s",
                bullet.id, exp.id, e,
            )
            vectors[bullet.id] = None
    return vectors


def _experience_row(user_id: uuid.UUID, exp: CanonicalExperience, ord_: int) -> orm.CanonicalExperience:
    return orm.CanonicalExperience(
        id=_as_uuid(exp.id),
        user_id=user_id,
        normalized_company=exp.normalized_company_key,
        display_company=exp.display_company_name,
        primary_title=exp.primary_title,
        title_progression=list(exp.title_progression),
        primary_location=exp.primary_location,
        locations=list(exp.locations),
        start_date=exp.start_date,
        end_date=exp.end_date,
        is_current=exp.is_current,
        source_experience_ids=list(exp.source_experience_ids),
        source_count=len(exp.source_experience_ids),
        bullet_count=len(exp.bullets),
        ord=ord_,
    )


def _bullet_row(
    user_id: uuid.UUID,
    experience_id: uuid.UUID,
    bullet: DedupedBullet,
    embedding: Optional[List[float]],
    ord_: int,
) -> orm.CanonicalExperienceBullet:
    return orm.CanonicalExperienceBullet(
        id=_as_uuid(bullet.id) or uuid.uuid4(),
        user_id=user_id,
        canonical_experience_id=experience_id,
        representative_bullet_id=_as_uuid(bullet.representative_source_id),
        content=bullet.content,
        source_bullet_ids=bullet.source_ids,
        source_count=bullet.source_count,
        avg_similarity=bullet.average_similarity,
        embedding=embedding,
        ord=ord_,
    )


def _skill_row(user_id: uuid.UUID, skill: CanonicalSkill) -> orm.CanonicalSkill:
    return orm.CanonicalSkill(
        id=_as_uuid(skill.id),
        user_id=user_id,
        controlled_key=skill.controlled_key,
        label=skill.label,
        category=skill.category,
        source_skill_ids=list(skill.source_skill_ids),
        source_count=skill.source_count,
        weight=skill.weight,
    )


def replace_canonical_profile(
    db: Session,
    user_id: uuid.UUID,
    experiences: Sequence[CanonicalExperience],
    skills: Sequence[CanonicalSkill],
    *,
    embedder: Optional[Embedder] = None,
) -> None:
    vectors = backfill_embeddings(experiences, embedder)
    for exp in experiences:
        for bullet in exp.bullets:
            bullet.embedding = vectors.get(bullet.id)

    ensure_owner(db, user_id)

    try:
        user_repo.lock_for_update(db, user_id)
        canonical_repo.delete_for_user(db, user_id)

        exp_rows = [_experience_row(user_id, exp, i) for i, exp in enumerate(experiences)]
        canonical_repo.add_experiences(db, exp_rows)

        bullet_rows = [
            _bullet_row(user_id, row.id, bullet, bullet.embedding, j)
            for exp, row in zip(experiences, exp_rows)
            for j, bullet in enumerate(exp.bullets)
        ]
        canonical_repo.add_bullets(db, bullet_rows)

        canonical_repo.add_skills(db, [_skill_row(user_id, s) for s in skills])

        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Canonical swap failed for user %s...; previous profile kept", str(user_id)[:8])
        raise

    logger.info(
        "Persisted canonical profile for %s...: %d experiences, %d bullets, %d skills",
        str(user_id)[:8], len(exp_rows), len(bullet_rows), len(skills),
    )
