import uuid

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from profile_canon.models.canonical import CanonicalExperience as CanonicalExperienceRow
from profile_canon.models.canonical import CanonicalExperienceBullet as CanonicalBulletRow
from profile_canon.models.canonical import CanonicalSkill as CanonicalSkillRow
from profile_canon.models.user import User
from profile_canon.services.canonical.identity import (
    IdentityProvisioningError,
    ensure_owner,
    placeholder_email,
)
from profile_canon.services.canonical.types import CanonicalExperience, CanonicalSkill, DedupedBullet
from profile_canon.services.canonical.writer import backfill_embeddings, replace_canonical_profile
from conftest import BatchingEmbedder, FailingEmbedder, FakeEmbedder


def canonical_experience(company="acme", bullets=()):
    return CanonicalExperience(
        id=str(uuid.uuid4()),
        normalized_company_key=company,
        display_company_name=company.title(),
        primary_title="Engineer",
        title_progression=["Engineer"],
        primary_location="Remote",
        locations=["Remote"],
        start_date="2019-01",
        end_date="2021-01",
        is_current=False,
        source_experience_ids=[str(uuid.uuid4())],
        bullets=list(bullets),
    )


def deduped(content, embedding=None):
    rep = str(uuid.uuid4())
    support = str(uuid.uuid4())
    return DedupedBullet(
        id=str(uuid.uuid4()),
        content=content,
        representative_source_id=rep,
        supporting_source_ids=[support],
        source_count=2,
        average_similarity=0.9,
        embedding=embedding,
    )


def canonical_skill(key, weight=1):
    return CanonicalSkill(
        id=str(uuid.uuid4()),
        controlled_key=key,
        label=key.title(),
        category="Other",
        source_skill_ids=[str(uuid.uuid4())],
        source_count=weight,
        weight=weight,
    )


def rows(db, model, user_id):
    return db.execute(select(model).where(model.user_id == user_id)).scalars().all()


# ---------- identity ----------

def test_existing_owner_is_returned_untouched(db, make_user):
    user_id = make_user(email="real@person.test")
    assert ensure_owner(db, user_id).email == "real@person.test"


def test_missing_owner_is_provisioned_with_placeholder_address(db):
    user_id = uuid.uuid4()
    user = ensure_owner(db, user_id)
    assert user.id == user_id
    assert user.email == f"user_{str(user_id)[:8]}@example.invalid"


def test_address_conflict_retries_with_full_id(db):
    user_id = uuid.uuid4()
    db.add(User(id=uuid.uuid4(), email=placeholder_email(user_id)))
    db.commit()

    user = ensure_owner(db, user_id)
    assert user.email == f"user_{user_id}@example.invalid"


def test_unrecoverable_provisioning_is_fatal(db):
    user_id = uuid.uuid4()
    db.add(User(id=uuid.uuid4(), email=placeholder_email(user_id)))
    db.add(User(id=uuid.uuid4(), email=placeholder_email(user_id, specific=True)))
    db.commit()

    with pytest.raises(IdentityProvisioningError):
        ensure_owner(db, user_id)


# ---------- swap ----------

def test_write_provisions_owner_and_persists_in_order(db):
    user_id = uuid.uuid4()
    first = canonical_experience("acme", bullets=[deduped("Built billing", [1.0, 0.0]), deduped("Hired team", [0.0, 1.0])])
    second = canonical_experience("globex")

    replace_canonical_profile(db, user_id, [first, second], [canonical_skill("python", 3)])

    assert db.get(User, user_id) is not None
    exps = sorted(rows(db, CanonicalExperienceRow, user_id), key=lambda r: r.ord)
    assert [r.normalized_company for r in exps] == ["acme", "globex"]
    assert [r.bullet_count for r in exps] == [2, 0]

    bullets = sorted(rows(db, CanonicalBulletRow, user_id), key=lambda r: r.ord)
    assert [b.content for b in bullets] == ["Built billing", "Hired team"]
    assert str(bullets[0].representative_bullet_id) == first.bullets[0].representative_source_id
    assert bullets[0].source_bullet_ids == first.bullets[0].source_ids
    assert [s.controlled_key for s in rows(db, CanonicalSkillRow, user_id)] == ["python"]


def test_second_write_fully_replaces_the_first(db):
    user_id = uuid.uuid4()
    replace_canonical_profile(
        db, user_id,
        [canonical_experience("acme", bullets=[deduped("Old bullet", [1.0])])],
        [canonical_skill("python"), canonical_skill("sql")],
    )
    replace_canonical_profile(db, user_id, [canonical_experience("globex")], [canonical_skill("go")])

    assert [r.normalized_company for r in rows(db, CanonicalExperienceRow, user_id)] == ["globex"]
    assert rows(db, CanonicalBulletRow, user_id) == []
    assert [s.controlled_key for s in rows(db, CanonicalSkillRow, user_id)] == ["go"]


def test_writes_are_scoped_to_one_owner(db):
    alice, bob = uuid.uuid4(), uuid.uuid4()
    replace_canonical_profile(db, alice, [canonical_experience("acme")], [])
    replace_canonical_profile(db, bob, [canonical_experience("globex")], [])
    replace_canonical_profile(db, bob, [], [])

    assert len(rows(db, CanonicalExperienceRow, alice)) == 1
    assert rows(db, CanonicalExperienceRow, bob) == []


def test_missing_embeddings_are_backfilled(db):
    user_id = uuid.uuid4()
    embedder = FakeEmbedder()
    exp = canonical_experience(bullets=[deduped("Needs a vector"), deduped("Has one", [0.5, 0.5])])

    replace_canonical_profile(db, user_id, [exp], [], embedder=embedder)

    assert embedder.calls == ["Needs a vector"]
    stored = {b.content: b.embedding for b in rows(db, CanonicalBulletRow, user_id)}
    assert len(stored["Needs a vector"]) == FakeEmbedder.dim
    assert stored["Has one"] == [0.5, 0.5]


def test_embedding_failure_persists_null_vector(db):
    user_id = uuid.uuid4()
    embedder = FailingEmbedder()
    exp = canonical_experience(bullets=[deduped("First"), deduped("Second")])

    replace_canonical_profile(db, user_id, [exp], [], embedder=embedder)

    assert embedder.calls == 2
    stored = rows(db, CanonicalBulletRow, user_id)
    assert len(stored) == 2
    assert all(b.embedding is None for b in stored)


def test_backfill_sends_missing_bullets_in_one_batch(db):
    user_id = uuid.uuid4()
    embedder = BatchingEmbedder()
    first = canonical_experience("acme", bullets=[deduped("Built billing"), deduped("Has one", [0.5, 0.5])])
    second = canonical_experience("globex", bullets=[deduped("Hired team")])

    replace_canonical_profile(db, user_id, [first, second], [], embedder=embedder)

    assert embedder.batches == [["Built billing", "Hired team"]]
    assert embedder.calls == []
    stored = {b.content: b.embedding for b in rows(db, CanonicalBulletRow, user_id)}
    assert len(stored["Built billing"]) == FakeEmbedder.dim
    assert len(stored["Hired team"]) == FakeEmbedder.dim


def test_failed_batch_falls_back_to_one_call_per_bullet():
    embedder = BatchingEmbedder(fail_batches=True)
    exp = canonical_experience(bullets=[deduped("First"), deduped("Second")])

    vectors = backfill_embeddings([exp], embedder)

    assert len(embedder.batches) == 1
    assert embedder.calls == ["First", "Second"]
    assert all(len(v) == FakeEmbedder.dim for v in vectors.values())


def test_backfill_without_embedder_leaves_vectors_empty():
    exp = canonical_experience(bullets=[deduped("No provider")])
    assert backfill_embeddings([exp], None) == {exp.bullets[0].id: None}


def test_failed_swap_rolls_back_to_previous_generation(db):
    user_id = uuid.uuid4()
    replace_canonical_profile(db, user_id, [canonical_experience("acme")], [canonical_skill("python")])

    # two rows with one controlled key violate uq_canonical_skills_user_key mid-swap
    with pytest.raises(SQLAlchemyError):
        replace_canonical_profile(
            db, user_id,
            [canonical_experience("globex")],
            [canonical_skill("sql"), canonical_skill("sql")],
        )

    assert [r.normalized_company for r in rows(db, CanonicalExperienceRow, user_id)] == ["acme"]
    assert [s.controlled_key for s in rows(db, CanonicalSkillRow, user_id)] == ["python"]
