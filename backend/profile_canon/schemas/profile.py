# profile_canon/schemas/profile.py
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


# ---------- Raw profile (input + echo) ----------

class ExperienceCreate(BaseModel):
    company: str = Field(..., min_length=1)
    title: str = ""
    location: Optional[str] = None
    start_date: Optional[str] = None  # "2019", "2019-07", ISO date, ...
    end_date: Optional[str] = None    # same formats, or "Present"
    is_current: bool = False
    bullets: List[str] = Field(default_factory=list)


class ExperienceUpdate(BaseModel):
    """Partial update; omitted fields are left untouched, null clears a field. `bullets` replaces the whole list."""
    company: Optional[str] = None
    title: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: Optional[bool] = None
    bullets: Optional[List[str]] = None

    @model_validator(mode='after')
    def reject_null_required_fields(self):
        """company, title, is_current and bullets can be changed but not cleared."""
        cleared = [
            name for name in ("company", "title", "is_current", "bullets")
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        if "company" in self.model_fields_set and not self.company.strip():
            raise ValueError("company cannot be blank")
        return self


class SkillCreate(BaseModel):
    name: str = Field(..., min_length=1)


class RawBulletOut(BaseModel):
    id: UUID
    content: str
    source_count: int
    importance_score: Optional[int] = None

    class Config:
        from_attributes = True


class RawExperienceOut(BaseModel):
    id: UUID
    company: str
    title: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool
    source_count: int
    bullets: List[RawBulletOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class RawSkillOut(BaseModel):
    id: UUID
    canonical_name: str
    source_count: int

    class Config:
        from_attributes = True


class RawProfileOut(BaseModel):
    experiences: List[RawExperienceOut] = Field(default_factory=list)
    skills: List[RawSkillOut] = Field(default_factory=list)


# ---------- Canonical profile (output) ----------

class DedupedBulletOut(BaseModel):
    id: str
    content: str
    representative_source_id: Optional[str] = None
    supporting_source_ids: List[str] = Field(default_factory=list)
    source_count: int
    average_similarity: float = Field(..., ge=0.0, le=1.0)

    class Config:
        from_attributes = True


class CanonicalExperienceOut(BaseModel):
    id: str
    normalized_company_key: str
    display_company_name: str
    primary_title: str
    title_progression: List[str]
    primary_location: str
    locations: List[str]
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: bool
    source_experience_ids: List[str]
    bullets: List[DedupedBulletOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class CanonicalSkillOut(BaseModel):
    id: str
    controlled_key: str
    label: str
    category: str
    source_skill_ids: List[str]
    source_count: int
    weight: int

    class Config:
        from_attributes = True


class CanonicalProfileOut(BaseModel):
    experiences: List[CanonicalExperienceOut] = Field(default_factory=list)
    skills: List[CanonicalSkillOut] = Field(default_factory=list)

    class Config:
        from_attributes = True
