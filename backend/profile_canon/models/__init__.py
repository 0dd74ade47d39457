# backend/profile_canon/models/__init__.py
from profile_canon.models.user import User
from profile_canon.models.profile import Experience, ExperienceBullet, Skill
from profile_canon.models.canonical import CanonicalExperience, CanonicalExperienceBullet, CanonicalSkill

__all__ = [
    "User",
    "Experience",
    "ExperienceBullet",
    "Skill",
    "CanonicalExperience",
    "CanonicalExperienceBullet",
    "CanonicalSkill",
]
