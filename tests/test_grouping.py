from datetime import date

import pytest

from profile_canon.services.canonical.config import CFG
from profile_canon.services.canonical.grouping import (
    GREEDY,
    TRANSITIVE,
    build_canonical_experiences,
    bullet_budget,
    filter_eligible,
)
from conftest import PassThroughDeduplicator, raw_experience


def acme_pair():
    return [
        raw_experience("Acme Inc.", "Software Engineer", "2019-01", "2020-06", id="junior"),
        raw_experience("ACME", "Senior Software Engineer", "2020-07", "2022-01", id="senior"),
    ]


def test_adjacent_stints_at_one_company_merge():
    result = build_canonical_experiences(acme_pair())

    assert len(result) == 1
    exp = result[0]
    assert exp.normalized_company_key == "acme"
    assert exp.display_company_name == "Acme Inc."
    assert exp.title_progression == ["Senior Software Engineer", "Software Engineer"]
    assert exp.primary_title == "Senior Software Engineer"
    assert exp.start_date == "2019-01"
    assert exp.end_date == "2022-01"
    assert exp.is_current is False
    assert exp.source_experience_ids == ["senior", "junior"]


def test_gap_over_window_keeps_stints_apart():
    records = [
        raw_experience("Acme", "Engineer", "2015-01", "2016-01", id="old"),
        raw_experience("Acme", "Engineer", "2018-01", "2019-01", id="new"),
    ]
    result = build_canonical_experiences(records)
    assert [e.source_experience_ids for e in result] == [["new"], ["old"]]


def test_different_companies_do_not_merge():
    records = [
        raw_experience("Acme", "Engineer", "2019-01", "2020-01"),
        raw_experience("Globex", "Engineer", "2019-01", "2020-01"),
    ]
    assert len(build_canonical_experiences(records)) == 2


def test_dissimilar_titles_do_not_merge():
    records = [
        raw_experience("Acme", "Business Analyst", "2019-01", "2020-01"),
        raw_experience("Acme", "Program Manager", "2019-06", "2021-01"),
    ]
    assert len(build_canonical_experiences(records)) == 2


def test_current_experiences_come_first():
    records = [
        raw_experience("Globex", "Analyst", "2016-01", "2024-01", id="past"),
        raw_experience("Acme", "Engineer", "2023-01", None, is_current=True, id="now"),
    ]
    result = build_canonical_experiences(records)
    assert [e.source_experience_ids[0] for e in result] == ["now", "past"]
    assert result[0].end_date == "Present"
    assert result[0].is_current


def test_present_end_marks_group_current():
    records = [
        raw_experience("Acme", "Engineer", "2020-01", "Present"),
        raw_experience("Acme", "Senior Engineer", "2018-01", "2020-01"),
    ]
    [exp] = build_canonical_experiences(records)
    assert exp.is_current
    assert exp.end_date == "Present"
    assert exp.start_date == "2018-01"


def test_year_only_dates_render_as_year():
    [exp] = build_canonical_experiences([raw_experience("Acme", "Engineer", "2015", "2017")])
    assert (exp.start_date, exp.end_date) == ("2015", "2017")


def test_out_of_range_year_is_treated_as_unknown():
    records = [
        raw_experience("Acme", "Engineer", "0000", "2020-01", id="bad-start"),
        raw_experience("Globex", "Analyst", "2021-01", "2022-01", id="fine"),
    ]
    result = build_canonical_experiences(records)

    assert [e.normalized_company_key for e in result] == ["globex", "acme"]
    acme = result[1]
    assert acme.start_date is None
    assert acme.end_date == "2020-01"


def test_locations_are_distinct_in_first_seen_order():
    records = [
        raw_experience("Acme", "Engineer", "2021-01", "2022-01", location="NYC"),
        raw_experience("Acme", "Engineer", "2020-01", "2021-01", location=" "),
        raw_experience("Acme", "Engineer", "2019-01", "2020-01", location="Remote"),
        raw_experience("Acme", "Engineer", "2018-01", "2019-01", location="NYC"),
    ]
    [exp] = build_canonical_experiences(records)
    assert exp.locations == ["NYC", "Remote"]
    assert exp.primary_location == "NYC"


def test_longer_display_name_wins():
    records = [
        raw_experience("Acme", "Engineer", "2021-01", "2022-01"),
        raw_experience("Acme Corp., Inc.", "Engineer", "2020-01", "2021-01"),
    ]
    [exp] = build_canonical_experiences(records)
    assert exp.display_company_name == "Acme Corp., Inc."


def mixed_records():
    return [
        *acme_pair(),
        raw_experience("Company Name", "Engineer", "2019", "2020"),
        raw_experience("Acme", "Engineer", "YYYY", "MM"),
        raw_experience("Globex", "Data Engineer", "2022-01", "2023-01"),
        raw_experience("Globex", "Backend Engineer", "2020-01", "2021-01"),
        raw_experience("Globex", "Data Backend Engineer", None, "2020-06"),
        raw_experience("Initech", "Analyst", None, None, is_current=True),
        raw_experience("", "", "2019", "2020"),
    ]


@pytest.mark.parametrize("strategy", [GREEDY, TRANSITIVE])
def test_every_eligible_record_lands_in_exactly_one_group(strategy):
    records = mixed_records()
    result = build_canonical_experiences(records, strategy=strategy)

    all_ids = [i for exp in result for i in exp.source_experience_ids]
    assert len(all_ids) == len(set(all_ids))
    assert set(all_ids) == {r.id for r in filter_eligible(records)}
    assert all(exp.source_experience_ids for exp in result)


def bridging_records():
    # processed end-descending: data (2023) -> backend (2021) -> bridge (2020-06, unknown start)
    return [
        raw_experience("Globex", "Data Engineer", "2022-01", "2023-01", id="data"),
        raw_experience("Globex", "Backend Engineer", "2020-01", "2021-01", id="backend"),
        raw_experience("Globex", "Data Backend Engineer", None, "2020-06", id="bridge"),
    ]


def test_greedy_pass_does_not_merge_formed_groups():
    result = build_canonical_experiences(bridging_records(), strategy=GREEDY)
    assert sorted(sorted(e.source_experience_ids) for e in result) == [["backend"], ["bridge", "data"]]


def test_transitive_strategy_closes_over_bridging_record():
    [exp] = build_canonical_experiences(bridging_records(), strategy=TRANSITIVE)
    assert exp.source_experience_ids == ["data", "backend", "bridge"]
    assert exp.title_progression == ["Data Engineer", "Backend Engineer", "Data Backend Engineer"]


def test_unknown_strategy_is_rejected():
    with pytest.raises(ValueError):
        build_canonical_experiences(acme_pair(), strategy="bogus")


def test_empty_input():
    assert build_canonical_experiences([]) == []


@pytest.mark.parametrize(
    "tenure,candidates,expected",
    [
        (None, 5, 5),
        (None, 50, CFG.max_canonical_bullets),
        (3, 10, 3),
        (6, 10, 5),
        (12, 30, 8),
        (37, 30, 16),
        (37, 2, 2),
        (61, 100, CFG.max_canonical_bullets),
        (24, 0, 0),
    ],
)
def test_bullet_budget(tenure, candidates, expected):
    assert bullet_budget(tenure, candidates) == expected


def test_budget_and_threshold_reach_the_deduplicator():
    bullets = [f"Shipped feature number {i}" for i in range(30)]
    records = acme_pair()
    records[0].bullets = raw_experience("x", "y", bullets=bullets[:15]).bullets
    records[1].bullets = raw_experience("x", "y", bullets=bullets[15:]).bullets

    dedupe = PassThroughDeduplicator()
    [exp] = build_canonical_experiences(records, deduplicator=dedupe)

    # 2019-01 .. 2022-01 is 37 months
    assert dedupe.calls == [{"count": 30, "threshold": CFG.bullet_similarity_threshold, "max_bullets": 16}]
    assert len(exp.bullets) == 16


def test_current_tenure_runs_until_today():
    records = [
        raw_experience("Acme", "Engineer", "2020-01", None, is_current=True, bullets=[f"b{i}" for i in range(20)])
    ]
    dedupe = PassThroughDeduplicator()
    build_canonical_experiences(records, deduplicator=dedupe, today=date(2021, 1, 1))
    assert dedupe.calls[0]["max_bullets"] == 8


def test_undated_group_budget_uses_candidate_count():
    records = [raw_experience("Acme", "Engineer", None, None, is_current=True, bullets=["a", "b", "c"])]
    dedupe = PassThroughDeduplicator()
    [exp] = build_canonical_experiences(records, deduplicator=dedupe)
    assert dedupe.calls[0]["max_bullets"] == 3
    assert len(exp.bullets) == 3


def test_bullets_never_exceed_budget_even_if_deduplicator_overshoots():
    class Overshooting(PassThroughDeduplicator):
        def dedupe(self, candidates, *, similarity_threshold, max_bullets):
            return super().dedupe(candidates, similarity_threshold=similarity_threshold, max_bullets=len(candidates))

    records = [raw_experience("Acme", "Engineer", "2020-01", "2020-03", bullets=[f"b{i}" for i in range(10)])]
    [exp] = build_canonical_experiences(records, deduplicator=Overshooting())
    assert len(exp.bullets) == CFG.min_tenure_budget
