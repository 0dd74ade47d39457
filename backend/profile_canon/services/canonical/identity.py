"""Owner identity auto-provisioning.

Canonical rows reference `users.id`. Raw fragments can arrive for an owner whose
identity row was never written (imports, manual seeding), so a rebuild heals the
gap with a synthetic, non-deliverable address before writing anything.
"""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from profile_canon.models.user import User
from profile_canon.repositories import user_repo
from profile_canon.services.canonical.config import CFG

logger = logging.getLogger("canonical.identity")


class IdentityProvisioningError(RuntimeError):
    """The owner row is missing and could not be created."""


def placeholder_email(user_id: UUID, *, specific: bool = False) -> str:
    """`user_<first 8 of id>@example.invalid`, or the full id when `specific`."""
    token = str(user_id) if specific else str(user_id)[:8]
    return f"user_{token}@{CFG.placeholder_email_domain}"


def _try_create(db: Session, user_id: UUID, email: str) -> bool:
    try:
        user_repo.create(db, user_id=user_id, email=email)
        return True
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            "Identity insert for %s... conflicted (%s): %s",
            str(user_id)[:8], email.split("@")[0], e.orig,
        )
        return False


def ensure_owner(db: Session, user_id: UUID) -> User:
    user = user_repo.get(db, user_id)
    if user is not None:
        return user

    email = placeholder_email(user_id)
    logger.info("Provisioning missing identity %s... as %s", str(user_id)[:8], email.split("@")[0])

    if not _try_create(db, user_id, email):
        # short-id address taken by another owner, or a concurrent insert won the race
        _try_create(db, user_id, placeholder_email(user_id, specific=True))

    user = user_repo.get(db, user_id)
    if user is None:
        logger.error("Identity %s... could not be provisioned", str(user_id)[:8])
        raise IdentityProvisioningError(f"Unable to provision owner {user_id}")
    return user
