"""Baseline plan (three teams, four projects, one quarter of monthly snapshots)."""

from flow_model.config import PlanConfig, Project, Team, TimePoint
from flow_model.matrix import matrix_from_records


def sample_baseline() -> PlanConfig:
    teams = [
        Team(id="team-fe", name="Frontend", capacity=8.0, color="#5470c6", badge="1"),
        Team(id="team-be", name="Backend", capacity=10.0, color="#91cc75", badge="2"),
        Team(id="team-qa", name="QA", capacity=4.0, color="#fac858", badge="3"),
    ]

    projects = [
        Project(id="proj-portal", name="Portal", color="#5470c6", status="development"),
        Project(id="proj-billing", name="Billing", color="#ee6666", status="development"),
        Project(
            id="proj-mobile",
            name="Mobile",
            color="#73c0de",
            status="planning",
            teams=["team-fe", "team-qa"],
        ),
        Project(id="proj-infra", name="Infra", color="#3ba272", status="planning"),
    ]

    time_points = [
        TimePoint(id="tp-2026-01", name="Jan", date="2026-01", type="current"),
        TimePoint(id="tp-2026-02", name="Feb", date="2026-02"),
        TimePoint(id="tp-2026-03", name="Mar", date="2026-03", type="release"),
    ]

    records = [
        # January: Portal and Billing in flight
        ("tp-2026-01", "proj-portal", "team-fe", 5.0, 0.0),
        ("tp-2026-01", "proj-portal", "team-be", 4.0, 1.0),
        ("tp-2026-01", "proj-portal", "team-qa", 2.0, 0.0),
        ("tp-2026-01", "proj-billing", "team-be", 5.0, 2.0),
        ("tp-2026-01", "proj-billing", "team-qa", 1.0, 0.0),
        # February: Billing winds down, Mobile starts
        ("tp-2026-02", "proj-portal", "team-fe", 4.0, 0.0),
        ("tp-2026-02", "proj-portal", "team-be", 4.0, 0.0),
        ("tp-2026-02", "proj-portal", "team-qa", 2.0, 0.5),
        ("tp-2026-02", "proj-billing", "team-be", 3.0, 0.0),
        ("tp-2026-02", "proj-mobile", "team-fe", 3.0, 0.0),
        ("tp-2026-02", "proj-mobile", "team-qa", 1.0, 0.0),
        # March: Billing released, Infra picks up backend capacity
        ("tp-2026-03", "proj-portal", "team-fe", 3.0, 0.0),
        ("tp-2026-03", "proj-portal", "team-be", 3.0, 0.0),
        ("tp-2026-03", "proj-portal", "team-qa", 1.5, 0.0),
        ("tp-2026-03", "proj-mobile", "team-fe", 4.0, 0.0),
        ("tp-2026-03", "proj-mobile", "team-qa", 2.0, 0.0),
        ("tp-2026-03", "proj-infra", "team-be", 5.5, 0.0),
    ]

    return PlanConfig(
        teams=teams,
        projects=projects,
        time_points=time_points,
        allocations=matrix_from_records(
            {
                "time_point_id": tp,
                "project_id": proj,
                "team_id": team,
                "occupied": occ,
                "prerelease": pre,
            }
            for tp, proj, team, occ, pre in records
        ),
    )
