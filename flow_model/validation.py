"""Plan validation: capacity checks and matrix sanity, reported as data."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from flow_model.config import PlanConfig, ValidationConfig

logger = logging.getLogger(__name__)

# error kinds
TEAM_OVERALLOCATION = "team_overallocation"
NEGATIVE_VALUE = "negative_value"

# warning kinds
CAPACITY_WARNING = "capacity_warning"
RESOURCE_INEFFICIENCY = "resource_inefficiency"
PRERELEASE_EXCEEDS = "prerelease_exceeds"
MISSING_DATA = "missing_data"


@dataclass
class ValidationIssue:
    kind: str
    message: str
    severity: str = "high"
    team_id: Optional[str] = None
    project_id: Optional[str] = None
    time_point_id: Optional[str] = None
    value: Optional[float] = None
    threshold: Optional[float] = None


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def kinds(self) -> List[str]:
        return [i.kind for i in self.errors + self.warnings]


def utilization_pct(allocated: float, capacity: float) -> float:
    if capacity <= 0:
        return 0.0
    return allocated / capacity * 100


def _check_capacity(plan: PlanConfig, vcfg: ValidationConfig, res: ValidationResult) -> None:
    for tp in plan.time_points:
        by_project = plan.allocations.get(tp.id, {})
        for team in plan.teams:
            allocated = 0.0
            for project in plan.projects:
                e = by_project.get(project.id, {}).get(team.id)
                if e is not None:
                    allocated += e.occupied
            util = utilization_pct(allocated, team.capacity)

            if allocated > team.capacity:
                res.errors.append(ValidationIssue(
                    kind=TEAM_OVERALLOCATION,
                    message=f"{team.name} is overallocated at {tp.name} "
                            f"({allocated:g} > {team.capacity:g})",
                    team_id=team.id,
                    time_point_id=tp.id,
                    value=allocated,
                    threshold=team.capacity,
                ))
            elif vcfg.near_capacity_pct < util <= 100:
                res.warnings.append(ValidationIssue(
                    kind=CAPACITY_WARNING,
                    message=f"{team.name} is near capacity at {tp.name} ({util:.0f}%)",
                    severity="medium",
                    team_id=team.id,
                    time_point_id=tp.id,
                    value=util,
                    threshold=vcfg.near_capacity_pct,
                ))
            elif util < vcfg.low_utilization_pct and allocated > 0:
                res.warnings.append(ValidationIssue(
                    kind=RESOURCE_INEFFICIENCY,
                    message=f"{team.name} has low utilisation at {tp.name} ({util:.0f}%)",
                    severity="low",
                    team_id=team.id,
                    time_point_id=tp.id,
                    value=util,
                    threshold=vcfg.low_utilization_pct,
                ))


def _check_entries(plan: PlanConfig, res: ValidationResult) -> None:
    teams = {t.id for t in plan.teams}
    projects = {p.id for p in plan.projects}
    time_points = {tp.id for tp in plan.time_points}

    for tp in plan.time_points:
        by_project = plan.allocations.get(tp.id, {})
        for project in plan.projects:
            by_team = by_project.get(project.id, {})
            for team in plan.teams:
                e = by_team.get(team.id)
                if e is None:
                    continue
                label = f"{team.name} on {project.name}/{tp.name}"
                if e.occupied < 0 or e.prerelease < 0:
                    res.errors.append(ValidationIssue(
                        kind=NEGATIVE_VALUE,
                        message=f"{label} has a negative value",
                        team_id=team.id,
                        project_id=project.id,
                        time_point_id=tp.id,
                        value=min(e.occupied, e.prerelease),
                    ))
                if e.prerelease > e.occupied:
                    res.warnings.append(ValidationIssue(
                        kind=PRERELEASE_EXCEEDS,
                        message=f"{label}: prerelease exceeds occupied",
                        team_id=team.id,
                        project_id=project.id,
                        time_point_id=tp.id,
                        value=e.prerelease,
                        threshold=e.occupied,
                    ))

    for tp_id, by_project in plan.allocations.items():
        for proj_id, by_team in by_project.items():
            for team_id in by_team:
                if tp_id in time_points and proj_id in projects and team_id in teams:
                    continue
                res.warnings.append(ValidationIssue(
                    kind=MISSING_DATA,
                    message=f"allocation {tp_id}/{proj_id}/{team_id} "
                            "references an unknown catalog entry",
                    severity="low",
                    team_id=team_id,
                    project_id=proj_id,
                    time_point_id=tp_id,
                ))


def validate_plan(plan: PlanConfig, vcfg: Optional[ValidationConfig] = None) -> ValidationResult:
    vcfg = vcfg or ValidationConfig()
    res = ValidationResult()
    _check_capacity(plan, vcfg, res)
    _check_entries(plan, res)
    logger.debug(
        "validated plan: %d errors, %d warnings", len(res.errors), len(res.warnings)
    )
    return res
