import os

# Settings are read at import time; point them at SQLite before anything imports the package.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("EMBEDDING_MODEL", None)

import uuid
import zlib
from typing import List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import profile_canon.models  # noqa: F401  registers every table on Base.metadata
from profile_canon.db.base import Base
from profile_canon.models.profile import Experience, ExperienceBullet, Skill
from profile_canon.models.user import User
from profile_canon.services.canonical.types import DedupedBullet, RawBullet, RawExperience, RawSkill


class FakeEmbedder:
    """Deterministic bag-of-words vectors: same word set -> same vector."""

    dim = 32

    def __init__(self):
        self.calls: List[str] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return self.vector(text)

    @classmethod
    def vector(cls, text: str) -> List[float]:
        vec = [0.0] * cls.dim
        for word in text.lower().split():
            vec[zlib.crc32(word.encode()) % cls.dim] += 1.0
        return vec


class BatchingEmbedder(FakeEmbedder):
    """FakeEmbedder that also takes whole batches; `fail_batches` makes embed_many raise."""

    def __init__(self, fail_batches=False):
        super().__init__()
        self.batches: List[List[str]] = []
        self.fail_batches = fail_batches

    def embed_many(self, texts):
        self.batches.append(list(texts))
        if self.fail_batches:
            raise RuntimeError("batch endpoint unavailable")
        return [self.vector(t) for t in texts]


class FailingEmbedder:
    def __init__(self):
        self.calls = 0

    def embed(self, text: str) -> List[float]:
        self.calls += 1
        raise RuntimeError("embedding provider unavailable")


class PassThroughDeduplicator:
    """One bullet per candidate, capped; records how it was called."""

    def __init__(self):
        self.calls = []

    def dedupe(self, candidates, *, similarity_threshold, max_bullets):
        self.calls.append({"count": len(candidates), "threshold": similarity_threshold, "max_bullets": max_bullets})
        return [
            DedupedBullet(
                id=str(uuid.uuid4()),
                content=c.content,
                representative_source_id=c.id,
                source_count=c.source_count,
                embedding=c.embedding,
            )
            for c in candidates[:max_bullets]
        ]


def raw_experience(company, title, start=None, end=None, *, is_current=False, location=None, bullets=(), id=None):
    return RawExperience(
        id=id or str(uuid.uuid4()),
        owner_id="owner",
        company=company,
        title=title,
        location=location,
        start_date=start,
        end_date=end,
        is_current=is_current,
        bullets=[RawBullet(id=str(uuid.uuid4()), content=text) for text in bullets],
    )


def raw_skill(name, source_count=1, id=None):
    return RawSkill(id=id or str(uuid.uuid4()), owner_id="owner", canonical_name=name, source_count=source_count)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fks(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def make_user(db):
    def _make(email=None):
        user_id = uuid.uuid4()
        db.add(User(id=user_id, email=email or f"{user_id}@test.local"))
        db.commit()
        return user_id

    return _make


@pytest.fixture
def seed_experience(db):
    def _seed(user_id, company, title, start=None, end=None, *, is_current=False, location=None, bullets=()):
        exp = Experience(
            user_id=user_id,
            company=company,
            title=title,
            location=location,
            start_date=start,
            end_date=end,
            is_current=is_current,
        )
        exp.bullets = [ExperienceBullet(content=text) for text in bullets]
        db.add(exp)
        db.commit()
        return exp

    return _seed


@pytest.fixture
def seed_skill(db):
    def _seed(user_id, name, source_count=1):
        skill = Skill(user_id=user_id, canonical_name=name, source_count=source_count)
        db.add(skill)
        db.commit()
        return skill

    return _seed
