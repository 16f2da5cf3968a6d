from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pandas as pd


@dataclass
class Team:
    """A team that supplies headcount to projects."""

    id: str
    name: str
    capacity: float = 0.0
    color: str = "#5470c6"
    badge: Optional[str] = None
    description: Optional[str] = None


@dataclass
class Project:
    """A project that consumes headcount. ``teams=None`` means every team is eligible."""

    id: str
    name: str
    color: str = "#91cc75"
    status: str = "planning"
    teams: Optional[List[str]] = None
    description: Optional[str] = None


@dataclass
class TimePoint:
    id: str
    name: str
    date: str
    type: str = "planning"
    description: Optional[str] = None


@dataclass
class AllocationEntry:
    """Headcount committed to a (time point, project, team) triple."""

    occupied: float = 0.0
    prerelease: float = 0.0


# time point id -> project id -> team id -> entry
AllocationMatrix = Dict[str, Dict[str, Dict[str, AllocationEntry]]]


@dataclass
class PlanConfig:
    """Catalogs plus the allocation matrix: everything the engine reads."""

    teams: List[Team] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)
    time_points: List[TimePoint] = field(default_factory=list)
    allocations: AllocationMatrix = field(default_factory=dict)


def _check_non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ValueError(f"{name}={value} must be non-negative")


@dataclass
class FlowConfig:
    """Tuning knobs for the reconciliation engine."""

    window_size: int = 3
    spillover_threshold: float = 0.5
    spillover_ratio: float = 0.2
    spillover_decimals: int = 1

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError(f"window_size={self.window_size} must be at least 1")
        _check_non_negative("spillover_threshold", self.spillover_threshold)
        _check_non_negative("spillover_ratio", self.spillover_ratio)
        _check_non_negative("spillover_decimals", self.spillover_decimals)


@dataclass
class ValidationConfig:
    """Utilisation thresholds (percent) used by plan validation."""

    near_capacity_pct: float = 90.0
    low_utilization_pct: float = 50.0

    def __post_init__(self) -> None:
        if not (0.0 <= self.low_utilization_pct <= self.near_capacity_pct <= 100.0):
            raise ValueError(
                "expected 0 <= low_utilization_pct <= near_capacity_pct <= 100, got "
                f"{self.low_utilization_pct} / {self.near_capacity_pct}"
            )


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------

TEAM_NODE = "team"
PROJECT_NODE = "project"


@dataclass
class FlowNode:
    id: str
    kind: str
    value: float
    column: int
    name: str
    color: str
    ref_id: str


@dataclass
class TeamShare:
    """One team's contribution to a link."""

    name: str
    value: float
    color: str


@dataclass
class FlowLink:
    source: str
    target: str
    value: float
    team_breakdown: Dict[str, TeamShare] = field(default_factory=dict)
    kind: str = "direct"


@dataclass
class FlowResult:
    """Output container returned by the flow engine."""

    nodes: List[FlowNode] = field(default_factory=list)
    links: List[FlowLink] = field(default_factory=list)
    time_points: List[TimePoint] = field(default_factory=list)

    def node(self, node_id: str) -> Optional[FlowNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def link(self, source: str, target: str) -> Optional[FlowLink]:
        for lk in self.links:
            if lk.source == source and lk.target == target:
                return lk
        return None

    def nodes_frame(self) -> pd.DataFrame:
        rows = [
            {
                "id": n.id,
                "kind": n.kind,
                "name": n.name,
                "column": n.column,
                "value": n.value,
                "color": n.color,
            }
            for n in self.nodes
        ]
        return pd.DataFrame(
            rows, columns=["id", "kind", "name", "column", "value", "color"]
        )

    def links_frame(self) -> pd.DataFrame:
        """One row per (link, team) breakdown entry."""
        rows = []
        for lk in self.links:
            for team_id, share in lk.team_breakdown.items():
                rows.append({
                    "source": lk.source,
                    "target": lk.target,
                    "kind": lk.kind,
                    "team_id": team_id,
                    "team": share.name,
                    "value": share.value,
                    "link_value": lk.value,
                })
        return pd.DataFrame(
            rows,
            columns=["source", "target", "kind", "team_id", "team", "value", "link_value"],
        )
