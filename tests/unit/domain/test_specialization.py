"""Tests for the SpecializationScorer weights."""

import pytest

from casework.domain.entities.case import CaseAttributes
from casework.domain.policies.specialization import score_handler


def test_idle_generalist_scores_workload_only(make_handler, fedex_case):
    s = score_handler(make_handler(1, count=0), fedex_case)
    assert s.score == pytest.approx(20.0)
    assert s.reasons == ()
    assert s.reason == "General assignment"


def test_full_specialist_score(make_handler, fedex_case):
    h = make_handler(
        1, count=0, carrier_specialties={"FEDEX"},
        issue_type_specialties={"DAMAGED"}, success_rate=100,
    )
    s = score_handler(h, fedex_case)
    assert s.score == pytest.approx(100.0)
    assert s.reason == "Carrier specialist, Issue type specialist"


def test_workload_component_shrinks_with_load(make_handler, fedex_case):
    half = score_handler(make_handler(1, count=5), fedex_case)
    assert half.score == pytest.approx(10.0)


def test_over_capacity_never_goes_negative(make_handler, fedex_case):
    s = score_handler(make_handler(1, count=12), fedex_case)
    assert s.score == pytest.approx(0.0)


def test_performance_component(make_handler, fedex_case):
    s = score_handler(make_handler(1, count=10, success_rate=80), fedex_case)
    assert s.score == pytest.approx(8.0)


def test_missing_case_attributes_earn_no_specialty_points(make_handler):
    case = CaseAttributes(id=1, carrier=None, issue_type=None, priority=None)
    h = make_handler(1, count=10, carrier_specialties={"FEDEX"}, issue_type_specialties={"LOST"})
    assert score_handler(h, case).score == pytest.approx(0.0)
