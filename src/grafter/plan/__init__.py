"""
Plan package: run a manifest end to end and report what happened.
"""

from .builder import PlanBuilder, summarize
from .facade import apply_feature, plan
from .feature import Feature

__all__ = [
    "Feature",
    "PlanBuilder",
    "apply_feature",
    "plan",
    "summarize",
]
