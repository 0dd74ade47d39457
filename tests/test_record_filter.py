import pytest

from profile_canon.services.canonical.grouping import build_canonical_experiences
from profile_canon.services.canonical.record_filter import (
    has_placeholder_dates,
    is_placeholder_company,
    should_skip_experience,
)
from conftest import raw_experience


@pytest.mark.parametrize("company", ["Company Name", "your company", "Sample Company Ltd", "N/A", "na", "n/a "])
def test_placeholder_companies_are_detected(company):
    assert is_placeholder_company(company)


@pytest.mark.parametrize("company", ["Acme Inc.", "Stripe", "Natera"])
def test_real_companies_are_not_placeholders(company):
    assert not is_placeholder_company(company)


def test_blank_title_and_placeholder_company_is_skipped():
    rec = raw_experience("Company Name", "", "2019-01", "2020-01")
    assert should_skip_experience(rec)


def test_blank_title_and_blank_company_is_skipped():
    assert should_skip_experience(raw_experience("  ", "", "2019", "2020"))


def test_title_alone_is_enough_identity():
    assert not should_skip_experience(raw_experience("", "Data Analyst", "2019", "2020"))


def test_placeholder_dates_are_skipped():
    rec = raw_experience("Acme", "Engineer", "YYYY", "MM/YYYY")
    assert has_placeholder_dates(rec)
    assert should_skip_experience(rec)


def test_not_provided_dates_are_skipped():
    assert should_skip_experience(raw_experience("Acme", "Engineer", "Not provided", "not provided"))


def test_missing_dates_without_current_flag_are_skipped():
    assert should_skip_experience(raw_experience("Acme", "Engineer"))


def test_open_ended_start_is_usable():
    assert not should_skip_experience(raw_experience("Acme", "Engineer", "2019-03", None))


def test_current_flag_rescues_missing_dates():
    assert not should_skip_experience(raw_experience("Acme", "Engineer", None, None, is_current=True))


def test_present_end_rescues_placeholder_start():
    assert not should_skip_experience(raw_experience("Acme", "Engineer", "XX/XXXX", "Present"))


def test_placeholder_company_yields_no_canonical_experience():
    rec = raw_experience("Company Name", "Software Engineer", "2019-01", "2020-06", location="Remote")
    assert build_canonical_experiences([rec]) == []
