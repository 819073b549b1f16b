"""Query layer: plan building, pagination arithmetic and request generations."""

from duckview.query.builder import QueryPlan, build_order_by, build_query_plan, engine_position
from duckview.query.generations import Generation, GenerationTracker

__all__ = [
    "Generation",
    "GenerationTracker",
    "QueryPlan",
    "build_order_by",
    "build_query_plan",
    "engine_position",
]
