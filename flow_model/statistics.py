"""
Utilisation statistics per team and time point.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd

from flow_model.config import PlanConfig
from flow_model.matrix import allocation_frame
from flow_model.validation import utilization_pct


@dataclass
class TeamUtilization:
    team_id: str
    team_name: str
    capacity: float
    allocated: float
    utilization_rate: float
    is_overallocated: bool


@dataclass
class TimePointStatistics:
    time_point_id: str
    time_point_name: str
    total_allocated: float
    total_capacity: float
    overall_utilization: float
    team_utilizations: List[TeamUtilization] = field(default_factory=list)


@dataclass
class PlanStatistics:
    total_persons: float
    total_teams: int
    total_projects: int
    total_time_points: int
    time_point_stats: List[TimePointStatistics]
    average_utilization: float


@dataclass
class AllocationSummary:
    total_capacity: float
    total_allocated: float
    total_prerelease: float


def _allocated_by_team(plan: PlanConfig) -> Dict[Tuple[str, str], float]:
    """Occupied totals per (time point, team), over catalog projects only."""
    df = allocation_frame(plan)
    if df.empty:
        return {}
    project_ids = [p.id for p in plan.projects]
    df = df[df["project_id"].isin(project_ids)]
    if df.empty:
        return {}
    grouped = df.groupby(["time_point_id", "team_id"])["occupied"].sum()
    return {key: float(v) for key, v in grouped.items()}


def _team_row(team, allocated: float) -> TeamUtilization:
    return TeamUtilization(
        team_id=team.id,
        team_name=team.name,
        capacity=team.capacity,
        allocated=allocated,
        utilization_rate=utilization_pct(allocated, team.capacity),
        is_overallocated=allocated > team.capacity,
    )


def team_utilization(
    plan: PlanConfig, team_id: str, time_point_id: str
) -> Optional[TeamUtilization]:
    team = next((t for t in plan.teams if t.id == team_id), None)
    if team is None:
        return None
    allocated = _allocated_by_team(plan).get((time_point_id, team_id), 0.0)
    return _team_row(team, allocated)


def plan_statistics(plan: PlanConfig) -> PlanStatistics:
    allocated = _allocated_by_team(plan)

    tp_stats: List[TimePointStatistics] = []
    for tp in plan.time_points:
        rows = [_team_row(t, allocated.get((tp.id, t.id), 0.0)) for t in plan.teams]
        total_alloc = sum(r.allocated for r in rows)
        total_cap = sum(r.capacity for r in rows)
        tp_stats.append(TimePointStatistics(
            time_point_id=tp.id,
            time_point_name=tp.name,
            total_allocated=total_alloc,
            total_capacity=total_cap,
            overall_utilization=utilization_pct(total_alloc, total_cap),
            team_utilizations=rows,
        ))

    avg = 0.0
    if tp_stats:
        avg = sum(s.overall_utilization for s in tp_stats) / len(tp_stats)

    return PlanStatistics(
        total_persons=sum(t.capacity for t in plan.teams),
        total_teams=len(plan.teams),
        total_projects=len(plan.projects),
        total_time_points=len(plan.time_points),
        time_point_stats=tp_stats,
        average_utilization=avg,
    )


def allocation_summary(plan: PlanConfig) -> AllocationSummary:
    """Capacity total and per-time-point averages of allocated / prerelease.

    Only configured time points present in the matrix are averaged over.
    """
    total_capacity = sum(t.capacity for t in plan.teams)
    available = [tp.id for tp in plan.time_points if tp.id in plan.allocations]
    if not available:
        return AllocationSummary(total_capacity, 0.0, 0.0)

    df = allocation_frame(plan)
    df = df[df["time_point_id"].isin(available)]
    return AllocationSummary(
        total_capacity=total_capacity,
        total_allocated=float(df["occupied"].sum()) / len(available),
        total_prerelease=float(df["prerelease"].sum()) / len(available),
    )


def utilization_frame(plan: PlanConfig) -> pd.DataFrame:
    """One row per (time point, team), in catalog order."""
    stats = plan_statistics(plan)
    rows = []
    for s in stats.time_point_stats:
        for tu in s.team_utilizations:
            rows.append({
                "time_point_id": s.time_point_id,
                "time_point": s.time_point_name,
                "team_id": tu.team_id,
                "team": tu.team_name,
                "capacity": tu.capacity,
                "allocated": tu.allocated,
                "utilization_pct": round(tu.utilization_rate, 1),
                "overallocated": tu.is_overallocated,
            })
    return pd.DataFrame(
        rows,
        columns=[
            "time_point_id", "time_point", "team_id", "team",
            "capacity", "allocated", "utilization_pct", "overallocated",
        ],
    )
