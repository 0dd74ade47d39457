"""Plain data carried through a canonical rebuild.

Raw* records are detached snapshots of the ORM rows so the merge logic stays a
pure function of its input; Canonical* records are what a rebuild produces and
what the read path returns.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence


@dataclass
class RawBullet:
    id: str
    content: str
    source_count: int = 1
    importance_score: Optional[float] = None
    embedding: Optional[List[float]] = None


@dataclass
class RawExperience:
    id: str
    owner_id: str
    company: str
    title: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool = False
    bullets: List[RawBullet] = field(default_factory=list)


@dataclass
class RawSkill:
    id: str
    owner_id: str
    canonical_name: str
    source_count: int = 1


@dataclass
class BulletCandidate:
    content: str
    id: Optional[str] = None
    source_count: int = 1
    importance_score: Optional[float] = None
    embedding: Optional[List[float]] = None


@dataclass
class DedupedBullet:
    id: str
    content: str
    representative_source_id: Optional[str]
    supporting_source_ids: List[str] = field(default_factory=list)
    source_count: int = 1
    average_similarity: float = 1.0
    embedding: Optional[List[float]] = None

    @property
    def source_ids(self) -> List[str]:
        """Representative first, then supporting ids, without duplicates."""
        ids: List[str] = []
        for value in [self.representative_source_id, *self.supporting_source_ids]:
            if value and value not in ids:
                ids.append(value)
        return ids


@dataclass
class CanonicalExperience:
    id: str
    normalized_company_key: str
    display_company_name: str
    primary_title: str
    title_progression: List[str]
    primary_location: str
    locations: List[str]
    start_date: Optional[str]
    end_date: Optional[str]
    is_current: bool
    source_experience_ids: List[str]
    bullets: List[DedupedBullet] = field(default_factory=list)


@dataclass
class CanonicalSkill:
    id: str
    controlled_key: str
    label: str
    category: str
    source_skill_ids: List[str]
    source_count: int
    weight: int


@dataclass
class CanonicalProfile:
    experiences: List[CanonicalExperience] = field(default_factory=list)
    skills: List[CanonicalSkill] = field(default_factory=list)


class Embedder(Protocol):
    def embed(self, text: str) -> List[float]:
        ...


class BulletDeduplicator(Protocol):
    def dedupe(
        self,
        candidates: Sequence[BulletCandidate],
        *,
        similarity_threshold: float,
        max_bullets: int,
    ) -> List[DedupedBullet]:
        ...
