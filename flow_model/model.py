"""
Resource Flow Reconciliation Engine
Turns a per-team, per-project headcount matrix into a column-bounded flow graph:
teams supply projects at the first time point, later columns explain capacity
as inheritance, cross-project transfer or approximate spillover.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from flow_model.config import (
    PROJECT_NODE,
    TEAM_NODE,
    AllocationMatrix,
    FlowConfig,
    FlowLink,
    FlowNode,
    FlowResult,
    PlanConfig,
    Project,
    Team,
    TeamShare,
    TimePoint,
)
from flow_model.matrix import filter_catalog, occupied

logger = logging.getLogger(__name__)


def project_node_id(project: Project, column: int) -> str:
    return f"{project.name}_{column}"


def _round_half_up(value: float, decimals: int) -> float:
    factor = 10 ** decimals
    return math.floor(value * factor + 0.5) / factor


def _share(team: Team, value: float) -> Dict[str, TeamShare]:
    return {team.id: TeamShare(name=team.name, value=value, color=team.color)}


# ---------------------------------------------------------------------------
# Time window
# ---------------------------------------------------------------------------

def select_time_window(
    time_points: Sequence[TimePoint], window_size: int = 3
) -> List[TimePoint]:
    """Earliest ``window_size`` time points, ascending by date string."""
    return sorted(time_points, key=lambda tp: tp.date)[:window_size]


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

def project_total(
    allocations: AllocationMatrix,
    time_point: TimePoint,
    project: Project,
    teams: Sequence[Team],
) -> float:
    return sum(occupied(allocations, time_point.id, project.id, t.id) for t in teams)


def build_nodes(
    teams: Sequence[Team],
    projects: Sequence[Project],
    window: Sequence[TimePoint],
    allocations: AllocationMatrix,
) -> List[FlowNode]:
    nodes = [
        FlowNode(
            id=team.name,
            kind=TEAM_NODE,
            value=team.capacity,
            column=0,
            name=team.name,
            color=team.color,
            ref_id=team.id,
        )
        for team in teams
    ]

    for column, tp in enumerate(window):
        for project in projects:
            total = project_total(allocations, tp, project, teams)
            if total > 0:
                nodes.append(FlowNode(
                    id=project_node_id(project, column),
                    kind=PROJECT_NODE,
                    value=total,
                    column=column,
                    name=project.name,
                    color=project.color,
                    ref_id=project.id,
                ))
    return nodes


# ---------------------------------------------------------------------------
# Column 0: direct supply
# ---------------------------------------------------------------------------

def build_direct_links(
    teams: Sequence[Team],
    projects: Sequence[Project],
    time_point: TimePoint,
    allocations: AllocationMatrix,
    node_ids: Set[str],
) -> List[FlowLink]:
    links: List[FlowLink] = []
    for project in projects:
        target = project_node_id(project, 0)
        if target not in node_ids:
            continue
        for team in teams:
            amount = occupied(allocations, time_point.id, project.id, team.id)
            if amount > 0:
                links.append(FlowLink(
                    source=team.name,
                    target=target,
                    value=amount,
                    team_breakdown=_share(team, amount),
                    kind="direct",
                ))
    return links


# ---------------------------------------------------------------------------
# Columns 1+: reconciliation
# ---------------------------------------------------------------------------

class ResourcePool:
    """Previous-period headcount not yet explained, keyed project -> team.

    Built fresh for each column transition and drained in place by the
    inheritance and transfer steps. Project order is catalog order.
    """

    def __init__(self) -> None:
        self._remaining: Dict[str, Dict[str, float]] = {}

    @classmethod
    def from_column(
        cls,
        teams: Sequence[Team],
        projects: Sequence[Project],
        time_point: TimePoint,
        column: int,
        allocations: AllocationMatrix,
        node_ids: Set[str],
    ) -> "ResourcePool":
        pool = cls()
        for project in projects:
            if project_node_id(project, column) not in node_ids:
                continue
            by_team = pool._remaining.setdefault(project.id, {})
            for team in teams:
                amount = occupied(allocations, time_point.id, project.id, team.id)
                if amount > 0:
                    by_team[team.id] = amount
        return pool

    def __contains__(self, project_id: str) -> bool:
        return project_id in self._remaining

    def project_ids(self) -> List[str]:
        return list(self._remaining)

    def get(self, project_id: str, team_id: str) -> float:
        return self._remaining.get(project_id, {}).get(team_id, 0.0)

    def take(self, project_id: str, team_id: str, amount: float) -> None:
        by_team = self._remaining.get(project_id)
        if by_team is None:
            return
        by_team[team_id] = max(0.0, by_team.get(team_id, 0.0) - amount)

    def entries(self) -> Iterator[Tuple[str, str, float]]:
        for project_id, by_team in self._remaining.items():
            for team_id, amount in by_team.items():
                yield project_id, team_id, amount


def _current_needs(
    teams: Sequence[Team],
    project: Project,
    time_point: TimePoint,
    allocations: AllocationMatrix,
) -> Dict[str, float]:
    needs: Dict[str, float] = {}
    for team in teams:
        amount = occupied(allocations, time_point.id, project.id, team.id)
        if amount > 0:
            needs[team.id] = amount
    return needs


def _inherit(
    project: Project,
    column: int,
    teams: Sequence[Team],
    needs: Dict[str, float],
    pool: ResourcePool,
) -> Optional[FlowLink]:
    """Explain a project's own continuing headcount first."""
    if project.id not in pool:
        return None

    total = 0.0
    breakdown: Dict[str, TeamShare] = {}
    for team in teams:
        inherited = min(pool.get(project.id, team.id), needs.get(team.id, 0.0))
        if inherited > 0:
            total += inherited
            breakdown.update(_share(team, inherited))
            needs[team.id] = needs[team.id] - inherited
            pool.take(project.id, team.id, inherited)

    if total <= 0:
        return None
    return FlowLink(
        source=project_node_id(project, column - 1),
        target=project_node_id(project, column),
        value=total,
        team_breakdown=breakdown,
        kind="inheritance",
    )


def _transfer(
    project: Project,
    column: int,
    needs: Dict[str, float],
    pool: ResourcePool,
    team_by_id: Dict[str, Team],
    project_by_id: Dict[str, Project],
) -> List[FlowLink]:
    """Cover remaining need from other projects' pools, in catalog order."""
    links: List[FlowLink] = []
    target = project_node_id(project, column)
    for team_id, need in needs.items():
        remaining = need
        if remaining <= 0:
            continue
        team = team_by_id[team_id]
        for other_id in pool.project_ids():
            if remaining <= 0:
                break
            if other_id == project.id:
                continue
            available = pool.get(other_id, team_id)
            if available <= 0:
                continue
            amount = min(remaining, available)
            links.append(FlowLink(
                source=project_node_id(project_by_id[other_id], column - 1),
                target=target,
                value=amount,
                team_breakdown=_share(team, amount),
                kind="transfer",
            ))
            remaining -= amount
            pool.take(other_id, team_id, amount)
        if remaining > 0:
            logger.debug(
                "unmet need %.3f for %s on %s has no prior supply",
                remaining, team.name, target,
            )
    return links


def _spill(
    current: Sequence[Project],
    column: int,
    time_point: TimePoint,
    allocations: AllocationMatrix,
    pool: ResourcePool,
    team_by_id: Dict[str, Team],
    project_by_id: Dict[str, Project],
    cfg: FlowConfig,
) -> List[FlowLink]:
    """Send leftover prior headcount to the first current project that can take it."""
    links: List[FlowLink] = []
    for prev_id, team_id, remaining in pool.entries():
        if remaining <= cfg.spillover_threshold:
            continue
        team = team_by_id[team_id]
        for candidate in current:
            if candidate.id == prev_id:
                continue
            allocation = occupied(allocations, time_point.id, candidate.id, team_id)
            if allocation <= 0:
                continue
            amount = _round_half_up(
                min(remaining, allocation * cfg.spillover_ratio),
                cfg.spillover_decimals,
            )
            if amount > cfg.spillover_threshold:
                links.append(FlowLink(
                    source=project_node_id(project_by_id[prev_id], column - 1),
                    target=project_node_id(candidate, column),
                    value=amount,
                    team_breakdown=_share(team, amount),
                    kind="spillover",
                ))
                break
    return links


def reconcile_transition(
    teams: Sequence[Team],
    projects: Sequence[Project],
    prev_tp: TimePoint,
    time_point: TimePoint,
    column: int,
    allocations: AllocationMatrix,
    node_ids: Set[str],
    cfg: FlowConfig,
) -> List[FlowLink]:
    """Links from column ``column - 1`` into column ``column``."""
    team_by_id = {t.id: t for t in teams}
    project_by_id = {p.id: p for p in projects}

    pool = ResourcePool.from_column(
        teams, projects, prev_tp, column - 1, allocations, node_ids
    )
    current = [p for p in projects if project_node_id(p, column) in node_ids]

    links: List[FlowLink] = []
    for project in current:
        needs = _current_needs(teams, project, time_point, allocations)
        inherited = _inherit(project, column, teams, needs, pool)
        if inherited is not None:
            links.append(inherited)
        links.extend(
            _transfer(project, column, needs, pool, team_by_id, project_by_id)
        )

    links.extend(_spill(
        current, column, time_point, allocations, pool,
        team_by_id, project_by_id, cfg,
    ))
    return links


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def merge_links(links: Iterable[FlowLink]) -> List[FlowLink]:
    """Collapse links sharing (source, target); inputs are left untouched."""
    merged: Dict[Tuple[str, str], FlowLink] = {}
    for link in links:
        key = (link.source, link.target)
        existing = merged.get(key)
        if existing is None:
            merged[key] = FlowLink(
                source=link.source,
                target=link.target,
                value=link.value,
                team_breakdown={
                    tid: TeamShare(s.name, s.value, s.color)
                    for tid, s in link.team_breakdown.items()
                },
                kind=link.kind,
            )
            continue

        existing.value += link.value
        if existing.kind != link.kind:
            existing.kind = "mixed"
        for tid, share in link.team_breakdown.items():
            if tid in existing.team_breakdown:
                existing.team_breakdown[tid].value += share.value
            else:
                existing.team_breakdown[tid] = TeamShare(share.name, share.value, share.color)
    return list(merged.values())


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def run_flow(
    teams: Sequence[Team],
    projects: Sequence[Project],
    time_points: Sequence[TimePoint],
    allocations: AllocationMatrix,
    cfg: Optional[FlowConfig] = None,
    *,
    team_ids: Optional[Iterable[str]] = None,
    project_ids: Optional[Iterable[str]] = None,
) -> FlowResult:
    cfg = cfg or FlowConfig()
    teams = filter_catalog(teams, team_ids)
    projects = filter_catalog(projects, project_ids)
    window = select_time_window(time_points, cfg.window_size)

    if not teams or not projects or not window:
        logger.debug(
            "empty flow graph: %d teams, %d projects, %d time points",
            len(teams), len(projects), len(window),
        )
        return FlowResult(time_points=window)

    nodes = build_nodes(teams, projects, window, allocations)
    node_ids = {n.id for n in nodes}

    links = build_direct_links(teams, projects, window[0], allocations, node_ids)
    for column in range(1, len(window)):
        step = reconcile_transition(
            teams, projects, window[column - 1], window[column],
            column, allocations, node_ids, cfg,
        )
        logger.debug("column %d: %d raw links", column, len(step))
        links.extend(step)

    merged = merge_links(links)
    logger.debug(
        "flow graph: %d nodes, %d links (%d before merge)",
        len(nodes), len(merged), len(links),
    )
    return FlowResult(nodes=nodes, links=merged, time_points=window)


def run_plan(
    plan: PlanConfig,
    cfg: Optional[FlowConfig] = None,
    *,
    team_ids: Optional[Iterable[str]] = None,
    project_ids: Optional[Iterable[str]] = None,
) -> FlowResult:
    return run_flow(
        plan.teams,
        plan.projects,
        plan.time_points,
        plan.allocations,
        cfg,
        team_ids=team_ids,
        project_ids=project_ids,
    )
