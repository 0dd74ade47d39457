# path: backend/profile_canon/repositories/profile_repo.py
# Purpose: Data-access for raw profile fragments (experiences, bullets, skills), always scoped to one owner.
from __future__ import annotations
from typing import Iterable, List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from profile_canon.models.profile import Experience, ExperienceBullet, Skill
from profile_canon.services.canonical.bullet_dedupe import parse_vector
from profile_canon.services.canonical.types import RawBullet, RawExperience, RawSkill


# ---------- Reads ----------

def list_experiences(db: Session, user_id: UUID) -> List[Experience]:
    stmt = (
        select(Experience)
        .where(Experience.user_id == user_id)
        .options(selectinload(Experience.bullets))
        .order_by(Experience.created_at, Experience.id)
    )
    return list(db.execute(stmt).scalars().all())


def list_skills(db: Session, user_id: UUID) -> List[Skill]:
    stmt = select(Skill).where(Skill.user_id == user_id).order_by(Skill.created_at, Skill.id)
    return list(db.execute(stmt).scalars().all())


def get_experience(db: Session, user_id: UUID, experience_id: UUID) -> Optional[Experience]:
    stmt = select(Experience).where(Experience.id == experience_id, Experience.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def get_skill(db: Session, user_id: UUID, skill_id: UUID) -> Optional[Skill]:
    stmt = select(Skill).where(Skill.id == skill_id, Skill.user_id == user_id)
    return db.execute(stmt).scalar_one_or_none()


def get_skill_by_name(db: Session, user_id: UUID, name: str) -> Optional[Skill]:
    stmt = select(Skill).where(Skill.user_id == user_id, Skill.canonical_name == name)
    return db.execute(stmt).scalar_one_or_none()


# ---------- Writes (manual edits) ----------

def create_experience(
    db: Session,
    *,
    user_id: UUID,
    company: str,
    title: str,
    location: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    is_current: bool,
    bullets: Iterable[str] = (),
) -> Experience:
    exp = Experience(
        user_id=user_id,
        company=company,
        title=title,
        location=location,
        start_date=start_date,
        end_date=end_date,
        is_current=is_current,
    )
    exp.bullets = [ExperienceBullet(content=text) for text in bullets if text and text.strip()]
    db.add(exp)
    db.commit()
    db.refresh(exp)
    return exp


def update_experience(db: Session, exp: Experience, **fields) -> Experience:
    """Every passed key is applied, None included; callers pass only the fields that changed."""
    bullets = fields.pop("bullets", None)
    for k, v in fields.items():
        setattr(exp, k, v)
    if bullets is not None:
        # replacing the text drops any stored vector along with the old rows
        exp.bullets = [ExperienceBullet(content=text) for text in bullets if text and text.strip()]
    db.add(exp)
    db.commit()
    db.refresh(exp)
    return exp


def delete_experience(db: Session, exp: Experience) -> None:
    db.delete(exp)
    db.commit()


def upsert_skill(db: Session, *, user_id: UUID, name: str) -> Skill:
    """Same name for the same owner bumps source_count instead of inserting a duplicate."""
    skill = get_skill_by_name(db, user_id, name)
    if skill is None:
        skill = Skill(user_id=user_id, canonical_name=name, source_count=1)
    else:
        skill.source_count = (skill.source_count or 0) + 1
    db.add(skill)
    db.commit()
    db.refresh(skill)
    return skill


def delete_skill(db: Session, skill: Skill) -> None:
    db.delete(skill)
    db.commit()


# ---------- ORM -> rebuild input ----------

def to_raw_experience(exp: Experience) -> RawExperience:
    return RawExperience(
        id=str(exp.id),
        owner_id=str(exp.user_id),
        company=exp.company or "",
        title=exp.title or "",
        location=exp.location,
        start_date=exp.start_date,
        end_date=exp.end_date,
        is_current=bool(exp.is_current),
        bullets=[
            RawBullet(
                id=str(b.id),
                content=b.content or "",
                source_count=b.source_count or 1,
                importance_score=b.importance_score,
                embedding=parse_vector(b.embedding),
            )
            for b in exp.bullets
        ],
    )


def to_raw_skill(skill: Skill) -> RawSkill:
    return RawSkill(
        id=str(skill.id),
        owner_id=str(skill.user_id),
        canonical_name=skill.canonical_name or "",
        source_count=skill.source_count or 1,
    )
