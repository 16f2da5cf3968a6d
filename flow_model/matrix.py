"""
Allocation matrix helpers.
Sparse lookups, record ingestion, catalog filtering and a long-form pandas view.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence, TypeVar

import pandas as pd

from flow_model.config import AllocationEntry, AllocationMatrix, PlanConfig

T = TypeVar("T")

FRAME_COLUMNS = [
    "time_point_id", "project_id", "team_id", "occupied", "prerelease",
]


def entry(
    allocations: AllocationMatrix, time_point_id: str, project_id: str, team_id: str
) -> Optional[AllocationEntry]:
    return allocations.get(time_point_id, {}).get(project_id, {}).get(team_id)


def occupied(
    allocations: AllocationMatrix, time_point_id: str, project_id: str, team_id: str
) -> float:
    """Occupied headcount for a triple; a missing entry counts as zero."""
    e = entry(allocations, time_point_id, project_id, team_id)
    if e is None:
        return 0.0
    return e.occupied


def filter_catalog(items: Sequence[T], selected_ids: Optional[Iterable[str]]) -> List[T]:
    """Keep items whose ``id`` is selected, in catalog order. ``None`` keeps all."""
    if selected_ids is None:
        return list(items)
    wanted = set(selected_ids)
    return [it for it in items if it.id in wanted]


def _amount(record: Mapping, key: str) -> float:
    raw = record.get(key, 0.0)
    if raw is None or pd.isna(raw):
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{key}={raw!r} is not numeric") from None


def matrix_from_records(records: Iterable[Mapping]) -> AllocationMatrix:
    """Build a matrix from flat records.

    Each record needs ``time_point_id``, ``project_id`` and ``team_id``;
    ``occupied`` and ``prerelease`` default to zero. A later record for the
    same triple replaces the earlier one.
    """
    matrix: AllocationMatrix = {}
    for rec in records:
        tp_id = rec["time_point_id"]
        proj_id = rec["project_id"]
        team_id = rec["team_id"]
        matrix.setdefault(tp_id, {}).setdefault(proj_id, {})[team_id] = AllocationEntry(
            occupied=_amount(rec, "occupied"),
            prerelease=_amount(rec, "prerelease"),
        )
    return matrix


def matrix_from_frame(df: pd.DataFrame) -> AllocationMatrix:
    missing = [c for c in ("time_point_id", "project_id", "team_id") if c not in df.columns]
    if missing:
        raise KeyError(f"allocation frame is missing columns: {missing}")
    return matrix_from_records(df.to_dict(orient="records"))


def allocation_frame(plan: PlanConfig) -> pd.DataFrame:
    """Long-form view of the matrix, one row per stored entry."""
    rows = []
    for tp_id, by_project in plan.allocations.items():
        for proj_id, by_team in by_project.items():
            for team_id, e in by_team.items():
                rows.append({
                    "time_point_id": tp_id,
                    "project_id": proj_id,
                    "team_id": team_id,
                    "occupied": e.occupied,
                    "prerelease": e.prerelease,
                })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def copy_matrix(allocations: AllocationMatrix) -> AllocationMatrix:
    return {
        tp_id: {
            proj_id: {
                team_id: AllocationEntry(e.occupied, e.prerelease)
                for team_id, e in by_team.items()
            }
            for proj_id, by_team in by_project.items()
        }
        for tp_id, by_project in allocations.items()
    }


def derive_prerelease(plan: PlanConfig) -> AllocationMatrix:
    """New matrix whose prerelease is the drop in occupied to the next time point.

    For each time point but the last (by date), every catalog project/team cell
    gets ``max(0, occupied(now) - occupied(next))``; missing cells are created.
    The plan's own matrix is left unchanged.
    """
    matrix = copy_matrix(plan.allocations)
    if len(plan.time_points) < 2:
        return matrix

    ordered = sorted(plan.time_points, key=lambda tp: tp.date)
    for current, following in zip(ordered, ordered[1:]):
        for project in plan.projects:
            for team in plan.teams:
                now = occupied(matrix, current.id, project.id, team.id)
                later = occupied(matrix, following.id, project.id, team.id)
                cell = matrix.setdefault(current.id, {}).setdefault(project.id, {})
                e = cell.setdefault(team.id, AllocationEntry(occupied=now))
                e.prerelease = max(0.0, now - later)
    return matrix
