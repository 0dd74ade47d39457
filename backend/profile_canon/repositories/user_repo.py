# path: backend/profile_canon/repositories/user_repo.py
# Purpose: Data-access only for identity rows. No provisioning rules here.
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.orm import Session
from profile_canon.models.user import User


def get(db: Session, user_id: UUID) -> Optional[User]:
    return db.get(User, user_id)


def lock_for_update(db: Session, user_id: UUID) -> Optional[User]:
    """Row lock on the owner; serializes canonical rebuilds for one user."""
    stmt = select(User).where(User.id == user_id).with_for_update()
    return db.execute(stmt).scalar_one_or_none()


def create(db: Session, *, user_id: UUID, email: str) -> User:
    user = User(id=user_id, email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
