import pytest

from flow_model.config import PlanConfig, Project, Team, TimePoint
from flow_model.defaults import sample_baseline
from flow_model.matrix import matrix_from_records


def _make_plan(team_caps, project_names, dates, cells):
    """cells: {(date, project, team): occupied}. Ids equal names for readability."""
    teams = [Team(id=name, name=name, capacity=cap) for name, cap in team_caps.items()]
    projects = [Project(id=name, name=name) for name in project_names]
    time_points = [TimePoint(id=d, name=d, date=d) for d in dates]
    allocations = matrix_from_records(
        {"time_point_id": d, "project_id": p, "team_id": t, "occupied": v}
        for (d, p, t), v in cells.items()
    )
    return PlanConfig(teams, projects, time_points, allocations)


@pytest.fixture
def baseline():
    return sample_baseline()


@pytest.fixture
def make_plan():
    return _make_plan
