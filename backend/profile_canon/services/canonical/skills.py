"""Maps free-text raw skills onto the controlled taxonomy and aggregates their weights."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from profile_canon.services.canonical.config import CFG
from profile_canon.services.canonical.skills_taxonomy import (
    lookup_skill,
    normalize_skill_name,
    slugify,
    to_title_case,
)
from profile_canon.services.canonical.types import CanonicalSkill, RawSkill

logger = logging.getLogger("canonical.skills")


@dataclass
class _Aggregate:
    controlled_key: str
    label: str
    category: str
    source_skill_ids: List[str] = field(default_factory=list)
    source_count: int = 0


def build_canonical_skills(skills: Sequence[RawSkill]) -> List[CanonicalSkill]:
    """
    Example:
        ["React", "react.js", "REACT"] (source_count=1 each)
        -> [CanonicalSkill(controlled_key="react", label="React", source_count=3, weight=3)]
    """
    if not skills:
        return []

    aggregates: Dict[str, _Aggregate] = {}

    for skill in skills:
        normalized = normalize_skill_name(skill.canonical_name)
        if not normalized:
            continue

        entry = lookup_skill(normalized)
        if entry is not None:
            key, label, category = entry.key, entry.label, entry.category
        else:
            key, label, category = slugify(normalized), to_title_case(normalized), "Other"
        if not key:
            continue

        agg = aggregates.get(key)
        if agg is None:
            agg = aggregates[key] = _Aggregate(key, label, category)
        if skill.id not in agg.source_skill_ids:
            agg.source_skill_ids.append(skill.id)
        agg.source_count += skill.source_count if skill.source_count is not None else 1

    canonical = [
        CanonicalSkill(
            id=str(uuid.uuid4()),
            controlled_key=agg.controlled_key,
            label=agg.label,
            category=agg.category,
            source_skill_ids=list(agg.source_skill_ids),
            source_count=agg.source_count,
            weight=agg.source_count,
        )
        for agg in aggregates.values()
    ]
    # stable: ties keep first-seen order
    canonical.sort(key=lambda s: -s.weight)

    if len(canonical) > CFG.max_canonical_skills:
        logger.info("Truncating %d canonical skills to %d", len(canonical), CFG.max_canonical_skills)
    return canonical[: CFG.max_canonical_skills]
