"""Experience grouping: clusters raw experience fragments into canonical experiences.

Pipeline per user:
1) drop placeholder records
2) order most-recent-first by end date
3) group by (company key, overlapping/adjacent dates, similar title to the anchor)
4) derive the canonical fields and dedupe the pooled bullets under a tenure budget
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence

from profile_canon.services.canonical import temporal
from profile_canon.services.canonical.company_normalizer import normalize_company
from profile_canon.services.canonical.config import CFG
from profile_canon.services.canonical.record_filter import should_skip_experience
from profile_canon.services.canonical.temporal import DateRange
from profile_canon.services.canonical.title_matcher import titles_are_similar
from profile_canon.services.canonical.types import (
    BulletCandidate,
    BulletDeduplicator,
    CanonicalExperience,
    RawExperience,
)

logger = logging.getLogger("canonical.grouping")

GREEDY = "greedy"
TRANSITIVE = "transitive"


@dataclass
class _Member:
    record: RawExperience
    range: DateRange
    company_key: str
    display_company: str


@dataclass
class ExperienceGroup:
    normalized_company_key: str
    display_company_name: str
    range: DateRange
    members: List[_Member] = field(default_factory=list)

    @property
    def anchor(self) -> _Member:
        return self.members[0]

    def add(self, member: _Member) -> None:
        self.members.append(member)
        self.range = temporal.widen(self.range, member.range)
        # longer display string is usually the more complete legal name
        if len(member.display_company) > len(self.display_company_name):
            self.display_company_name = member.display_company


def filter_eligible(experiences: Sequence[RawExperience]) -> List[RawExperience]:
    """Records that will land in exactly one canonical experience."""
    kept: List[RawExperience] = []
    for record in experiences:
        if should_skip_experience(record):
            logger.debug("Skipping placeholder experience %s", getattr(record, "id", None))
            continue
        if normalize_company(record.company) is None:
            logger.debug("Skipping experience %s with unusable company", record.id)
            continue
        kept.append(record)
    return kept


def _prepare(experiences: Sequence[RawExperience]) -> List[_Member]:
    """Filter, normalize and order records most-recent-first."""
    members: List[_Member] = []
    for record in filter_eligible(experiences):
        company = normalize_company(record.company)
        rng = temporal.build_range(record.start_date, record.end_date, record.is_current)
        members.append(_Member(record, rng, company.normalized_key, company.display_name))

    # stable sort: equal end dates keep input order
    members.sort(key=lambda m: temporal.sort_key_desc(m.range.end))
    return members


def _can_join(group: ExperienceGroup, member: _Member) -> bool:
    return (
        group.normalized_company_key == member.company_key
        and temporal.ranges_overlap_or_adjacent(group.range, member.range)
        and titles_are_similar(group.anchor.record.title, member.record.title)
    )


def group_greedy(members: Sequence[_Member]) -> List[ExperienceGroup]:
    """
    Single pass: each record joins the FIRST already-formed group it matches.
    A later bridging record never merges two earlier groups together.
    """
    groups: List[ExperienceGroup] = []
    for member in members:
        target = next((g for g in groups if _can_join(g, member)), None)
        if target is None:
            groups.append(ExperienceGroup(member.company_key, member.display_company, member.range, [member]))
        else:
            target.add(member)
    return groups


def _pair_matches(a: _Member, b: _Member) -> bool:
    return (
        a.company_key == b.company_key
        and temporal.ranges_overlap_or_adjacent(a.range, b.range)
        and titles_are_similar(a.record.title, b.record.title)
    )


def group_transitive(members: Sequence[_Member]) -> List[ExperienceGroup]:
    """Union-find closure over every matching pair of records."""
    parent = list(range(len(members)))

    def find(i: int) -> int:
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i in range(len(members)):
        for j in range(i + 1, len(members)):
            if _pair_matches(members[i], members[j]):
                ri, rj = find(i), find(j)
                if ri != rj:
                    # lower index stays root so the anchor is the earliest-processed record
                    parent[max(ri, rj)] = min(ri, rj)

    by_root: Dict[int, ExperienceGroup] = {}
    groups: List[ExperienceGroup] = []
    for idx, member in enumerate(members):
        root = find(idx)
        group = by_root.get(root)
        if group is None:
            group = ExperienceGroup(member.company_key, member.display_company, member.range, [member])
            by_root[root] = group
            groups.append(group)
        else:
            group.add(member)
    return groups


def build_title_progression(members: Sequence[_Member]) -> List[str]:
    """Distinct titles ordered by member start date, most recent first."""
    ordered = sorted(
        members,
        key=lambda m: -(m.range.start.value.toordinal()) if m.range.start.is_known else 0,
    )
    seen: List[str] = []
    for m in ordered:
        title = (m.record.title or "").strip()
        if title and title not in seen:
            seen.append(title)
    return seen


def tenure_months(members: Sequence[_Member], *, today: Optional[date] = None) -> Optional[int]:
    starts = [temporal.parse_date(m.record.start_date) for m in members]
    earliest = temporal.min_known(starts)
    if earliest is None:
        return None

    if _any_current(members):
        end = today or datetime.now(timezone.utc).date()
    else:
        latest = temporal.max_known(temporal.parse_date(m.record.end_date) for m in members)
        end = latest.value if latest else earliest.value

    return temporal.months_between(earliest.value, end)


def bullet_budget(tenure: Optional[int], candidate_count: int) -> int:
    if not candidate_count:
        return 0
    if not tenure:
        return max(1, min(candidate_count, CFG.max_canonical_bullets))

    budget = CFG.min_tenure_budget
    for min_months, steps_budget in CFG.tenure_budget_steps:
        if tenure >= min_months:
            budget = steps_budget
            break

    return max(1, min(candidate_count, min(budget, CFG.max_canonical_bullets)))


def _any_current(members: Sequence[_Member]) -> bool:
    return any(m.record.is_current or temporal.is_present(m.record.end_date) for m in members)


def _resolve_start(members: Sequence[_Member]) -> Optional[str]:
    return temporal.render_date(temporal.min_known(temporal.parse_date(m.record.start_date) for m in members))


def _resolve_end(members: Sequence[_Member]) -> Optional[str]:
    if _any_current(members):
        return "Present"
    return temporal.render_date(temporal.max_known(temporal.parse_date(m.record.end_date) for m in members))


def _canonicalize_group(
    group: ExperienceGroup,
    deduplicator: Optional[BulletDeduplicator],
    today: Optional[date],
) -> CanonicalExperience:
    members = group.members

    locations: List[str] = []
    for m in members:
        loc = (m.record.location or "").strip()
        if loc and loc not in locations:
            locations.append(loc)

    progression = build_title_progression(members)
    primary_title = progression[0] if progression else (group.anchor.record.title or "")

    candidates = [
        BulletCandidate(
            id=b.id,
            content=b.content,
            source_count=b.source_count,
            importance_score=b.importance_score,
            embedding=b.embedding,
        )
        for m in members
        for b in (m.record.bullets or [])
    ]

    bullets = []
    if candidates and deduplicator is not None:
        budget = bullet_budget(tenure_months(members, today=today), len(candidates))
        bullets = deduplicator.dedupe(
            candidates,
            similarity_threshold=CFG.bullet_similarity_threshold,
            max_bullets=budget,
        )
        # the primitive's contract caps output, enforce it here as well
        bullets = bullets[:budget]

    return CanonicalExperience(
        id=str(uuid.uuid4()),
        normalized_company_key=group.normalized_company_key,
        display_company_name=group.display_company_name,
        primary_title=primary_title,
        title_progression=progression,
        primary_location=locations[0] if locations else "",
        locations=locations,
        start_date=_resolve_start(members),
        end_date=_resolve_end(members),
        is_current=_any_current(members),
        source_experience_ids=[m.record.id for m in members],
        bullets=bullets,
    )


def _final_order_key(exp: CanonicalExperience):
    end = temporal.PRESENT if exp.is_current else temporal.parse_date(exp.end_date)
    return (0 if exp.is_current else 1, temporal.sort_key_desc(end))


def build_canonical_experiences(
    experiences: Sequence[RawExperience],
    *,
    deduplicator: Optional[BulletDeduplicator] = None,
    strategy: str = GREEDY,
    today: Optional[date] = None,
) -> List[CanonicalExperience]:
    """
    Merge one user's raw experiences into canonical experiences, current first,
    then by end date descending.
    """
    if not experiences:
        return []

    members = _prepare(experiences)
    if strategy == TRANSITIVE:
        groups = group_transitive(members)
    elif strategy == GREEDY:
        groups = group_greedy(members)
    else:
        raise ValueError(f"Unknown experience merge strategy: {strategy!r}")

    logger.info("Grouped %d raw experiences into %d canonical experiences (%s)", len(members), len(groups), strategy)

    canonical = [_canonicalize_group(g, deduplicator, today) for g in groups]
    canonical.sort(key=_final_order_key)
    return canonical
