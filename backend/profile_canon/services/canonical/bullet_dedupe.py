"""Embedding-based clustering of near-duplicate achievement bullets, keeping the strongest phrasing per cluster."""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import numpy as np

from profile_canon.services.canonical.config import CFG
from profile_canon.services.canonical.types import BulletCandidate, DedupedBullet, Embedder

logger = logging.getLogger("canonical.dedupe")

METRIC_RE = re.compile(
    r"(?:\d{1,3}(?:,\d{3})*(?:\.\d+)?|\d+(?:\.\d+)?)(?:\s?(?:%|percent|pts?|x|k|m|b|mm|bn|\$|k\+|m\+|b\+))"
    r"|\b(?:double[sd]?|tripled|quadrupled)\b",
    re.I,
)
NUMERIC_TOKEN_RE = re.compile(r"[\$]?\d[\d,]*(?:\.\d+)?%?")

TOOL_KEYWORDS = [
    "sql", "python", "tableau", "lookml", "snowflake", "dbt", "bigquery", "airflow",
    "looker", "superset", "power bi", "excel", "jira", "asana", "sap", "salesforce",
    "netsuite", "segment", "mixpanel", "redshift", "fraud", "aml", "kpi", "okr",
    "api", "rest", "graphql",
]

REGULATORY_KEYWORDS = [
    "fcra", "reg z", "regulation z", "reg e", "nacha", "bsa", "aml", "kyc", "ofac",
    "sox", "gdpr", "ccpa",
]

_TOOL_PATTERNS = [(k, re.compile(rf"\b{re.escape(k)}\b", re.I)) for k in TOOL_KEYWORDS]
_REG_PATTERNS = [(k, re.compile(rf"\b{re.escape(k)}\b", re.I)) for k in REGULATORY_KEYWORDS]


@dataclass
class _Candidate:
    id: Optional[str]
    content: str
    source_count: int
    importance: float
    embedding: Optional[np.ndarray]
    has_metric: bool = False
    tool_hits: List[str] = field(default_factory=list)
    regulatory_hits: List[str] = field(default_factory=list)
    numeric_tokens: List[str] = field(default_factory=list)

    @property
    def content_boost(self) -> float:
        return (5 if self.has_metric else 0) + min(3, len(self.tool_hits)) + min(2, len(self.regulatory_hits))

    @property
    def score(self) -> float:
        base = self.source_count * 2 + self.importance
        metric_bonus = 4 if self.has_metric else 0
        return (
            base
            + self.content_boost
            + metric_bonus
            + min(3, len(self.tool_hits))
            + min(2, len(self.regulatory_hits))
        )


@dataclass
class _Cluster:
    representative: _Candidate
    members: List[_Candidate]
    total_source_count: int
    average_similarity: float
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def priority(self) -> float:
        return self.representative.score + self.total_source_count + self.average_similarity * 5


def parse_vector(value: Any) -> Optional[List[float]]:
    """
    Accept a stored embedding in any of the shapes it comes back as:
    list, numpy array, or pgvector text form "[0.1,0.2,...]".
    """
    if value is None:
        return None
    if isinstance(value, np.ndarray):
        return value.astype(float).tolist() if value.size else None
    if isinstance(value, (list, tuple)):
        return [float(v) for v in value] if value else None
    if isinstance(value, str):
        cleaned = re.sub(r"[{}\[\]()]", "", value)
        out: List[float] = []
        for part in cleaned.split(","):
            try:
                out.append(float(part.strip()))
            except ValueError:
                continue
        return out or None
    return None


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    if a.shape != b.shape or a.size == 0:
        return 0.0
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if not na or not nb:
        return 0.0
    return float(np.dot(a, b) / (na * nb))


def _keyword_hits(content: str, patterns) -> List[str]:
    return [k for k, p in patterns if p.search(content)]


def _should_merge(representative: _Candidate, candidate: _Candidate) -> bool:
    """Never fold a quantified achievement into an unquantified one, or mix different numbers."""
    if representative.has_metric and not candidate.has_metric:
        return False
    if representative.has_metric and candidate.has_metric:
        if (
            representative.numeric_tokens
            and candidate.numeric_tokens
            and not set(representative.numeric_tokens) & set(candidate.numeric_tokens)
        ):
            return False
    return True


class EmbeddingBulletDeduplicator:
    """
    Greedy cosine clustering over bullet embeddings.

    Candidates are visited strongest-first (source count, importance, metrics,
    tool and regulatory keywords), so the representative of every cluster is the
    best-supported phrasing and the output does not depend on input order.
    """

    def __init__(self, embedder: Optional[Embedder] = None):
        self.embedder = embedder

    def dedupe(
        self,
        candidates: Sequence[BulletCandidate],
        *,
        similarity_threshold: float = CFG.bullet_similarity_threshold,
        max_bullets: int = CFG.max_canonical_bullets,
    ) -> List[DedupedBullet]:
        if not candidates:
            return []

        normalized = [c for c in (self._normalize(b) for b in candidates) if c.content.strip()]
        if not normalized:
            return []

        normalized.sort(key=lambda c: (-c.score, c.content, c.id or ""))

        clusters: List[_Cluster] = []
        for candidate in normalized:
            if candidate.embedding is None:
                clusters.append(_Cluster(candidate, [candidate], candidate.source_count, 1.0))
                continue

            matched: Optional[_Cluster] = None
            best = 0.0
            for cluster in clusters:
                rep = cluster.representative
                if rep.embedding is None:
                    continue
                similarity = cosine_similarity(candidate.embedding, rep.embedding)
                if similarity > best and similarity >= similarity_threshold and _should_merge(rep, candidate):
                    matched = cluster
                    best = similarity

            if matched is None:
                clusters.append(_Cluster(candidate, [candidate], candidate.source_count, 1.0))
                continue

            matched.members.append(candidate)
            matched.total_source_count += candidate.source_count
            n = len(matched.members)
            matched.average_similarity = (matched.average_similarity * (n - 1) + best) / n
            if candidate.score > matched.representative.score:
                matched.representative = candidate

        limit = max(1, min(max_bullets, len(clusters)))
        # stable: equal priorities keep strongest-first visiting order
        kept = sorted(clusters, key=lambda c: -c.priority)[:limit]

        logger.debug("Deduped %d bullets into %d clusters, kept %d", len(normalized), len(clusters), len(kept))

        return [self._to_bullet(cluster) for cluster in kept]

    def _normalize(self, bullet: BulletCandidate) -> _Candidate:
        content = bullet.content or ""
        vector = self._ensure_embedding(bullet)
        return _Candidate(
            id=bullet.id,
            content=content,
            source_count=max(1, bullet.source_count or 1),
            importance=float(bullet.importance_score or 0),
            embedding=np.asarray(vector, dtype=float) if vector else None,
            has_metric=bool(METRIC_RE.search(content)),
            tool_hits=_keyword_hits(content, _TOOL_PATTERNS),
            regulatory_hits=_keyword_hits(content, _REG_PATTERNS),
            numeric_tokens=[t.replace(",", "").lower() for t in NUMERIC_TOKEN_RE.findall(content)],
        )

    def _ensure_embedding(self, bullet: BulletCandidate) -> Optional[List[float]]:
        stored = parse_vector(bullet.embedding)
        if stored:
            return stored
        if not bullet.content or self.embedder is None:
            return None
        try:
            return self.embedder.embed(bullet.content)
        except Exception as e:
            logger.warning("Failed to embed bullet %s during dedupe: %s", bullet.id, e)
            return None

    @staticmethod
    def _to_bullet(cluster: _Cluster) -> DedupedBullet:
        rep = cluster.representative
        supporting = [m.id for m in cluster.members if m.id and m.id != rep.id]
        return DedupedBullet(
            id=cluster.id,
            content=rep.content.strip(),
            representative_source_id=rep.id,
            supporting_source_ids=supporting,
            source_count=cluster.total_source_count,
            average_similarity=round(cluster.average_similarity, 3),
            embedding=rep.embedding.tolist() if rep.embedding is not None else None,
        )
