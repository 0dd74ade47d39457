"""Keyword title matching deciding whether two job titles describe the same role for merge purposes."""

from __future__ import annotations
import re
from functools import lru_cache
from typing import FrozenSet


class TitleMatcher:
    """
    Compares the CORE of two titles (the part before any department or team
    designation) with seniority stripped, so promotions inside one role merge:
    - "Software Engineer" ~ "Senior Software Engineer II"
    - "Program Manager" ~ "Technical Program Manager"
    - "Business Analyst" !~ "Program Manager"

    The relation is symmetric but not transitive.
    """

    CORE_SEPARATORS = re.compile(r"[;–—|]")
    DEPARTMENT_SUFFIX = re.compile(r"\s*-\s*(department|division|team|group).*$", re.I)
    PUNCTUATION = re.compile(r"[,()]")
    LEVEL_TOKENS = re.compile(
        r"\b(i{1,3}|iv|v|vi|senior|sr|junior|jr|lead|principal|staff|associate|assistant|intern"
        r"|head of|director of|vp of|chief|1|2|3)\b",
        re.I,
    )
    WHITESPACE = re.compile(r"\s+")

    # Role nouns shared by too many unrelated titles to signal "same role"
    GENERIC_WORDS = frozenset({
        "manager", "analyst", "engineer", "developer", "specialist", "coordinator",
        "administrator", "consultant", "officer", "executive", "representative",
    })

    @staticmethod
    def extract_core_title(title: str) -> str:
        core = TitleMatcher.CORE_SEPARATORS.split(title)[0]
        core = TitleMatcher.DEPARTMENT_SUFFIX.sub("", core).strip()
        return core or title

    @staticmethod
    @lru_cache(maxsize=2048)
    def normalize_title(title: str) -> str:
        """Lowercased core title without punctuation or seniority markers."""
        core = TitleMatcher.extract_core_title(title).lower()
        core = TitleMatcher.PUNCTUATION.sub(" ", core)
        core = TitleMatcher.LEVEL_TOKENS.sub("", core)
        return TitleMatcher.WHITESPACE.sub(" ", core).strip()

    @staticmethod
    def specific_words(normalized: str) -> FrozenSet[str]:
        return frozenset(
            w for w in normalized.split(" ")
            if len(w) > 2 and w not in TitleMatcher.GENERIC_WORDS
        )

    @staticmethod
    def are_similar(title_a: str, title_b: str) -> bool:
        if not title_a or not title_b:
            return False

        core_a = TitleMatcher.normalize_title(title_a)
        core_b = TitleMatcher.normalize_title(title_b)

        if core_a == core_b:
            return True

        # "program manager" inside "technical program manager"
        if core_a in core_b or core_b in core_a:
            return True

        words_a = TitleMatcher.specific_words(core_a)
        words_b = TitleMatcher.specific_words(core_b)

        # Only generic nouns left on one side: the cores already differ
        if not words_a or not words_b:
            return False

        overlap = len(words_a & words_b)
        return overlap / min(len(words_a), len(words_b)) > 0.5


def titles_are_similar(title_a: str, title_b: str) -> bool:
    return TitleMatcher.are_similar(title_a, title_b)
