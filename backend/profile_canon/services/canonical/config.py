# profile_canon/services/canonical/config.py
"""
Canonical Profile Configuration - caps, thresholds and the tenure budget table.
"""
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class CanonicalConfig:
    """Configuration for the canonical rebuild."""

    # Hard cap on deduplicated bullets per canonical experience
    max_canonical_bullets: int = 20

    # Hard cap on canonical skills per user
    max_canonical_skills: int = 60

    # Cosine similarity at which two bullets are considered the same achievement
    bullet_similarity_threshold: float = 0.82

    # Gap tolerated between two stints before they stop being "adjacent"
    adjacent_range_window_days: int = 45

    # (minimum tenure in months, bullet budget), checked top to bottom
    tenure_budget_steps: Tuple[Tuple[int, int], ...] = field(
        default=((60, 24), (48, 20), (36, 16), (24, 12), (12, 8), (6, 5))
    )
    min_tenure_budget: int = 3

    # Reserved domain (RFC 2606) for auto-provisioned identity rows
    placeholder_email_domain: str = "example.invalid"


CFG = CanonicalConfig()
