"""Headcount flow planning core."""

from flow_model.model import merge_links, run_flow, run_plan, select_time_window

__all__ = ["merge_links", "run_flow", "run_plan", "select_time_window"]
