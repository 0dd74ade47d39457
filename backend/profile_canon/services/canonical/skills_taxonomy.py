# profile_canon/services/canonical/skills_taxonomy.py
"""Controlled skill taxonomy - the fixed vocabulary canonical skills are mapped onto.

Each entry carries a stable key (stored as `controlled_key`), a display label,
a category and the textual variants seen in resumes and profile exports.

Variants are written the way people type them ("React.js", "Node.js") and are
run through the same normalizer as incoming skills when the index is built,
so "react.js" and "react js" land on the same entry.

Anything not listed here falls through to a slug/Title Case label under the
"Other" category; there is no fuzzy matching for skills.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# ============================================================================
# CONTROLLED TAXONOMY
# ============================================================================
# Design principles:
# 1. One entry per real-world skill, keyed by a stable slug
# 2. Industry-standard capitalization for labels
# 3. First entry wins when two entries share a variant
# ============================================================================


@dataclass(frozen=True)
class SkillTaxonomyEntry:
    key: str
    label: str
    category: str
    variants: Tuple[str, ...]


CONTROLLED_SKILL_TAXONOMY: Tuple[SkillTaxonomyEntry, ...] = (
    # ========== LANGUAGES ==========
    SkillTaxonomyEntry("typescript", "TypeScript", "Languages", ("typescript", "ts", "type script")),
    SkillTaxonomyEntry("javascript", "JavaScript", "Languages", ("javascript", "js", "java script", "ecmascript", "es6")),
    SkillTaxonomyEntry("python", "Python", "Languages", ("python", "python3", "python 3", "py")),
    SkillTaxonomyEntry("java", "Java", "Languages", ("java", "java8", "java 8", "java11", "java 11", "java17", "java 17")),
    SkillTaxonomyEntry("golang", "Go", "Languages", ("go", "golang")),
    SkillTaxonomyEntry("rust", "Rust", "Languages", ("rust",)),
    SkillTaxonomyEntry("cpp", "C++", "Languages", ("c++", "cpp", "cplusplus")),
    SkillTaxonomyEntry("php", "PHP", "Languages", ("php", "php7", "php8")),
    SkillTaxonomyEntry("ruby", "Ruby", "Languages", ("ruby",)),
    SkillTaxonomyEntry("kotlin", "Kotlin", "Languages", ("kotlin",)),
    SkillTaxonomyEntry("swift", "Swift", "Languages", ("swift",)),
    SkillTaxonomyEntry("scala", "Scala", "Languages", ("scala",)),

    # ========== FRONTEND ==========
    SkillTaxonomyEntry("react", "React", "Frontend", ("react", "react.js", "reactjs", "react-js")),
    SkillTaxonomyEntry("nextjs", "Next.js", "Frontend", ("next.js", "nextjs", "next")),
    SkillTaxonomyEntry("angular", "Angular", "Frontend", ("angular", "angularjs", "angular.js")),
    SkillTaxonomyEntry("vue", "Vue.js", "Frontend", ("vue", "vuejs", "vue.js")),
    SkillTaxonomyEntry("redux", "Redux", "Frontend", ("redux", "react-redux")),
    SkillTaxonomyEntry("html", "HTML", "Frontend", ("html", "html5")),
    SkillTaxonomyEntry("css", "CSS", "Frontend", ("css", "css3")),
    SkillTaxonomyEntry("tailwind", "Tailwind CSS", "Frontend", ("tailwind", "tailwindcss", "tailwind css")),

    # ========== BACKEND ==========
    SkillTaxonomyEntry("nodejs", "Node.js", "Backend", ("node", "node.js", "nodejs")),
    SkillTaxonomyEntry("express", "Express", "Backend", ("express", "express.js", "expressjs")),
    SkillTaxonomyEntry("nestjs", "NestJS", "Backend", ("nestjs", "nest.js")),
    SkillTaxonomyEntry("django", "Django", "Backend", ("django",)),
    SkillTaxonomyEntry("flask", "Flask", "Backend", ("flask",)),
    SkillTaxonomyEntry("fastapi", "FastAPI", "Backend", ("fastapi", "fast api")),
    SkillTaxonomyEntry("spring", "Spring", "Backend", ("spring", "spring framework")),
    SkillTaxonomyEntry("spring-boot", "Spring Boot", "Backend", ("spring boot", "springboot")),
    SkillTaxonomyEntry("dotnet", ".NET", "Backend", (".net", "dotnet", "dot net")),
    SkillTaxonomyEntry("rails", "Ruby on Rails", "Backend", ("ruby on rails", "rails", "ror")),

    # ========== CLOUD ==========
    SkillTaxonomyEntry("aws", "AWS", "Cloud", ("aws", "amazon web services")),
    SkillTaxonomyEntry("gcp", "Google Cloud", "Cloud", ("gcp", "google cloud", "google cloud platform")),
    SkillTaxonomyEntry("azure", "Azure", "Cloud", ("azure", "microsoft azure")),

    # ========== DEVOPS ==========
    SkillTaxonomyEntry("docker", "Docker", "DevOps", ("docker",)),
    SkillTaxonomyEntry("kubernetes", "Kubernetes", "DevOps", ("kubernetes", "k8s")),
    SkillTaxonomyEntry("terraform", "Terraform", "DevOps", ("terraform",)),
    SkillTaxonomyEntry("git", "Git", "DevOps", ("git",)),
    SkillTaxonomyEntry("ci-cd", "CI/CD", "DevOps", ("ci/cd", "cicd", "ci cd", "continuous integration")),
    SkillTaxonomyEntry("jenkins", "Jenkins", "DevOps", ("jenkins",)),
    SkillTaxonomyEntry("github-actions", "GitHub Actions", "DevOps", ("github actions",)),
    SkillTaxonomyEntry("linux", "Linux", "DevOps", ("linux", "ubuntu", "centos")),

    # ========== DATABASES ==========
    SkillTaxonomyEntry("postgresql", "PostgreSQL", "Databases", ("postgresql", "postgres", "postgres sql", "psql")),
    SkillTaxonomyEntry("mysql", "MySQL", "Databases", ("mysql", "my sql")),
    SkillTaxonomyEntry("sql", "SQL", "Databases", ("sql",)),
    SkillTaxonomyEntry("nosql", "NoSQL", "Databases", ("nosql", "no sql")),
    SkillTaxonomyEntry("mongodb", "MongoDB", "Databases", ("mongodb", "mongo", "mongo db")),
    SkillTaxonomyEntry("redis", "Redis", "Databases", ("redis",)),
    SkillTaxonomyEntry("elasticsearch", "Elasticsearch", "Databases", ("elasticsearch", "elastic search")),
    SkillTaxonomyEntry("snowflake", "Snowflake", "Databases", ("snowflake",)),
    SkillTaxonomyEntry("bigquery", "BigQuery", "Databases", ("bigquery", "big query")),

    # ========== DATA ==========
    SkillTaxonomyEntry("pandas", "Pandas", "Data", ("pandas",)),
    SkillTaxonomyEntry("numpy", "NumPy", "Data", ("numpy",)),
    SkillTaxonomyEntry("spark", "Apache Spark", "Data", ("spark", "apache spark", "pyspark")),
    SkillTaxonomyEntry("airflow", "Apache Airflow", "Data", ("airflow", "apache airflow")),
    SkillTaxonomyEntry("kafka", "Kafka", "Data", ("kafka", "apache kafka")),
    SkillTaxonomyEntry("dbt", "dbt", "Data", ("dbt",)),
    SkillTaxonomyEntry("tableau", "Tableau", "Data", ("tableau",)),
    SkillTaxonomyEntry("power-bi", "Power BI", "Data", ("power bi", "powerbi")),
    SkillTaxonomyEntry("excel", "Excel", "Data", ("excel", "microsoft excel", "ms excel")),

    # ========== APIS ==========
    SkillTaxonomyEntry("graphql", "GraphQL", "APIs", ("graphql", "graph ql")),
    SkillTaxonomyEntry("rest", "REST APIs", "APIs", ("rest", "rest api", "rest apis", "restful", "restful api")),

    # ========== AI ==========
    SkillTaxonomyEntry("ai-ml", "AI / ML", "AI", ("ai", "ml", "machine learning", "artificial intelligence")),
    SkillTaxonomyEntry("llm", "LLM Prompting", "AI", ("llm", "prompt engineering", "generative ai")),
    SkillTaxonomyEntry("tensorflow", "TensorFlow", "AI", ("tensorflow", "tensor flow")),
    SkillTaxonomyEntry("pytorch", "PyTorch", "AI", ("pytorch", "torch")),
    SkillTaxonomyEntry("scikit-learn", "Scikit-learn", "AI", ("scikit-learn", "sklearn", "scikit learn")),

    # ========== TESTING ==========
    SkillTaxonomyEntry("jest", "Jest", "Testing", ("jest",)),
    SkillTaxonomyEntry("cypress", "Cypress", "Testing", ("cypress", "cypress.io")),
    SkillTaxonomyEntry("selenium", "Selenium", "Testing", ("selenium",)),
    SkillTaxonomyEntry("pytest", "Pytest", "Testing", ("pytest",)),

    # ========== TOOLS ==========
    SkillTaxonomyEntry("jira", "Jira", "Tools", ("jira", "atlassian jira")),
    SkillTaxonomyEntry("confluence", "Confluence", "Tools", ("confluence", "atlassian confluence")),
    SkillTaxonomyEntry("figma", "Figma", "Tools", ("figma",)),
    SkillTaxonomyEntry("salesforce", "Salesforce", "Tools", ("salesforce",)),
)


_BULLET_GLYPHS_RE = re.compile(r"[•‣◦⁃∙]")
_NON_SKILL_CHARS_RE = re.compile(r"[^a-z0-9+]")
_WS_RE = re.compile(r"\s+")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def normalize_skill_name(value: Optional[str]) -> str:
    """
    Lowercase, drop bullet glyphs and everything except letters/digits/'+'.

    Examples:
        normalize_skill_name("• React.js") -> "react js"
        normalize_skill_name("C++")        -> "c++"
    """
    if not value:
        return ""
    out = _BULLET_GLYPHS_RE.sub(" ", value.lower())
    out = _NON_SKILL_CHARS_RE.sub(" ", out)
    return _WS_RE.sub(" ", out).strip()


def slugify(normalized: str) -> str:
    return _SLUG_RE.sub("-", normalized).strip("-")


def to_title_case(normalized: str) -> str:
    return " ".join(w[:1].upper() + w[1:] for w in normalized.split(" ") if w)


def _build_variant_index() -> Dict[str, SkillTaxonomyEntry]:
    index: Dict[str, SkillTaxonomyEntry] = {}
    for entry in CONTROLLED_SKILL_TAXONOMY:
        for variant in entry.variants:
            norm = normalize_skill_name(variant)
            if norm and norm not in index:
                index[norm] = entry
    return index


VARIANT_INDEX: Dict[str, SkillTaxonomyEntry] = _build_variant_index()


def lookup_skill(normalized: str) -> Optional[SkillTaxonomyEntry]:
    """Exact lookup of an already-normalized name."""
    return VARIANT_INDEX.get(normalized)
