import uuid
from datetime import date

from profile_canon.core.config import settings
from profile_canon.services.canonical.bullet_dedupe import EmbeddingBulletDeduplicator
from profile_canon.services.canonical.service import canonicalize_profile, get_canonical_profile


def seed_profile(user_id, seed_experience, seed_skill):
    seed_experience(
        user_id, "Acme Inc.", "Software Engineer", "2019-01", "2020-06",
        location="NYC",
        bullets=["Built the billing pipeline", "Reduced latency by 40%"],
    )
    seed_experience(
        user_id, "ACME", "Senior Software Engineer", "2020-07", "2022-01",
        location="Remote",
        bullets=["Built the billing pipeline", "Mentored three engineers"],
    )
    seed_experience(user_id, "Globex", "Data Analyst", "2022-03", None, is_current=True, bullets=["Owned the KPI dashboards"])
    seed_experience(user_id, "Company Name", "", "YYYY", "MM")
    for name in ["React", "react.js", "REACT", "Python", "Docker"]:
        seed_skill(user_id, name)


def content_view(profile):
    experiences = [
        (e.normalized_company_key, tuple(e.title_progression), e.start_date, e.end_date, e.is_current,
         tuple(sorted(b.content for b in e.bullets)))
        for e in profile.experiences
    ]
    skills = sorted((s.controlled_key, s.weight) for s in profile.skills)
    return experiences, skills


def rebuild(db, user_id, embedder):
    return canonicalize_profile(
        db, user_id,
        embedder=embedder,
        deduplicator=EmbeddingBulletDeduplicator(embedder),
        today=date(2024, 6, 1),
    )


def test_rebuild_merges_and_persists(db, make_user, seed_experience, seed_skill, fake_embedder):
    user_id = make_user()
    seed_profile(user_id, seed_experience, seed_skill)

    profile = rebuild(db, user_id, fake_embedder)

    assert [e.normalized_company_key for e in profile.experiences] == ["globex", "acme"]
    acme = profile.experiences[1]
    assert acme.title_progression == ["Senior Software Engineer", "Software Engineer"]
    assert (acme.start_date, acme.end_date) == ("2019-01", "2022-01")
    assert acme.locations == ["Remote", "NYC"]
    # the duplicated pipeline bullet collapses into one
    assert sorted(b.content for b in acme.bullets) == [
        "Built the billing pipeline",
        "Mentored three engineers",
        "Reduced latency by 40%",
    ]
    pipeline = next(b for b in acme.bullets if b.content == "Built the billing pipeline")
    assert pipeline.source_count == 2
    assert len(pipeline.supporting_source_ids) == 1

    assert [(s.controlled_key, s.weight) for s in profile.skills][0] == ("react", 3)
    assert get_canonical_profile(db, user_id) is not None


def test_read_path_matches_what_was_written(db, make_user, seed_experience, seed_skill, fake_embedder):
    user_id = make_user()
    seed_profile(user_id, seed_experience, seed_skill)

    written = rebuild(db, user_id, fake_embedder)
    stored = get_canonical_profile(db, user_id)

    assert content_view(stored) == content_view(written)
    assert [e.id for e in stored.experiences] == [e.id for e in written.experiences]
    assert [s.controlled_key for s in stored.skills] == ["react", "docker", "python"]

    for exp in stored.experiences:
        for bullet in exp.bullets:
            assert bullet.representative_source_id not in bullet.supporting_source_ids
            assert isinstance(bullet.embedding, list)


def test_rebuild_is_stable(db, make_user, seed_experience, seed_skill, fake_embedder):
    user_id = make_user()
    seed_profile(user_id, seed_experience, seed_skill)

    first = rebuild(db, user_id, fake_embedder)
    second = rebuild(db, user_id, fake_embedder)

    assert content_view(first) == content_view(second)
    assert {e.id for e in first.experiences}.isdisjoint({e.id for e in second.experiences})
    assert content_view(get_canonical_profile(db, user_id)) == content_view(second)


def test_rebuild_for_unknown_owner_provisions_and_writes_empty_profile(db, fake_embedder):
    user_id = uuid.uuid4()
    profile = rebuild(db, user_id, fake_embedder)
    assert profile.experiences == [] and profile.skills == []
    assert get_canonical_profile(db, user_id).experiences == []


def test_empty_profile_for_never_built_owner(db, make_user):
    profile = get_canonical_profile(db, make_user())
    assert profile.experiences == [] and profile.skills == []


def test_configured_strategy_is_used_by_default(db, make_user, seed_experience, seed_skill, fake_embedder, monkeypatch):
    user_id = make_user()
    seed_experience(user_id, "Globex", "Data Engineer", "2022-01", "2023-01")
    seed_experience(user_id, "Globex", "Backend Engineer", "2020-01", "2021-01")
    seed_experience(user_id, "Globex", "Data Backend Engineer", None, "2020-06")

    monkeypatch.setattr(settings, "EXPERIENCE_MERGE_STRATEGY", "transitive")
    assert len(rebuild(db, user_id, fake_embedder).experiences) == 1

    monkeypatch.setattr(settings, "EXPERIENCE_MERGE_STRATEGY", "greedy")
    assert len(rebuild(db, user_id, fake_embedder).experiences) == 2
