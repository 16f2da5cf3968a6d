import pytest

from flow_model.config import AllocationEntry, ValidationConfig
from flow_model.validation import (
    CAPACITY_WARNING,
    MISSING_DATA,
    NEGATIVE_VALUE,
    PRERELEASE_EXCEEDS,
    RESOURCE_INEFFICIENCY,
    TEAM_OVERALLOCATION,
    validate_plan,
)


def test_baseline_is_clean(baseline):
    res = validate_plan(baseline)
    assert res.is_valid
    assert res.errors == []
    assert res.warnings == []


@pytest.mark.parametrize(
    "allocated, expected",
    [
        (11.0, [TEAM_OVERALLOCATION]),
        (10.0, [CAPACITY_WARNING]),
        (9.5, [CAPACITY_WARNING]),
        (9.0, []),
        (5.0, []),
        (2.5, [RESOURCE_INEFFICIENCY]),
        (0.0, []),
    ],
)
def test_utilisation_thresholds(make_plan, allocated, expected):
    plan = make_plan(
        {"T1": 10}, ["A", "B"], ["t0"],
        {("t0", "A", "T1"): allocated / 2, ("t0", "B", "T1"): allocated / 2},
    )
    assert validate_plan(plan).kinds() == expected


def test_overallocation_is_an_error(make_plan):
    plan = make_plan({"T1": 2}, ["A"], ["t0"], {("t0", "A", "T1"): 3})
    res = validate_plan(plan)

    assert not res.is_valid
    issue = res.errors[0]
    assert issue.team_id == "T1"
    assert issue.time_point_id == "t0"
    assert issue.value == 3
    assert issue.threshold == 2


def test_custom_thresholds(make_plan):
    plan = make_plan({"T1": 10}, ["A"], ["t0"], {("t0", "A", "T1"): 7})
    res = validate_plan(plan, ValidationConfig(near_capacity_pct=60, low_utilization_pct=20))
    assert res.kinds() == [CAPACITY_WARNING]
    assert res.warnings[0].severity == "medium"


def test_prerelease_exceeding_occupied(make_plan):
    plan = make_plan({"T1": 10}, ["A"], ["t0"], {("t0", "A", "T1"): 6})
    plan.allocations["t0"]["A"]["T1"] = AllocationEntry(occupied=6, prerelease=7)
    res = validate_plan(plan)

    assert res.is_valid
    assert res.kinds() == [PRERELEASE_EXCEEDS]
    assert res.warnings[0].project_id == "A"
    assert res.warnings[0].severity == "high"


def test_negative_values_are_errors(make_plan):
    plan = make_plan({"T1": 10}, ["A", "B"], ["t0"], {("t0", "A", "T1"): 6, ("t0", "B", "T1"): -1})
    res = validate_plan(plan)

    assert NEGATIVE_VALUE in [e.kind for e in res.errors]
    assert not res.is_valid


def test_dangling_references_are_reported(make_plan):
    plan = make_plan(
        {"T1": 10}, ["A"], ["t0"],
        {("t0", "A", "T1"): 6, ("t0", "A", "ghost"): 1, ("t9", "A", "T1"): 1},
    )
    res = validate_plan(plan)

    missing = [w for w in res.warnings if w.kind == MISSING_DATA]
    assert {(w.time_point_id, w.team_id) for w in missing} == {("t0", "ghost"), ("t9", "T1")}
    assert res.is_valid


def test_entry_issues_follow_catalog_order(make_plan):
    plan = make_plan({"T1": 20, "T2": 20}, ["A", "B"], ["t0", "t1"], {})
    # matrix built in reverse of catalog order
    plan.allocations = {
        "t1": {"B": {"T2": AllocationEntry(5, 6)}, "A": {"T1": AllocationEntry(5, 6)}},
        "t0": {"B": {"T1": AllocationEntry(5, 6)}, "A": {"T2": AllocationEntry(5, 6), "T1": AllocationEntry(5, 6)}},
    }
    res = validate_plan(plan)

    order = [(w.time_point_id, w.project_id, w.team_id)
             for w in res.warnings if w.kind == PRERELEASE_EXCEEDS]
    assert order == [
        ("t0", "A", "T1"),
        ("t0", "A", "T2"),
        ("t0", "B", "T1"),
        ("t1", "A", "T1"),
        ("t1", "B", "T2"),
    ]
