"""
Adaptive Learning Engine.

Components:
- compute_directive: Pedagogical Orchestration Engine (session strategy + targets)
- compute_weak_nodes: Concepts needing immediate attention
- RuleBasedCalibrator: Deterministic context calibration from learner signals
"""
from synapse.adaptive.context import ContextCalibrator, RuleBasedCalibrator
from synapse.adaptive.orchestrator import compute_directive, max_items_for_minutes
from synapse.adaptive.weak_nodes import WeakNodeInsight, compute_weak_nodes

__all__ = [
    # Orchestration
    "compute_directive",
    "max_items_for_minutes",
    # Insights
    "compute_weak_nodes",
    "WeakNodeInsight",
    # Context
    "ContextCalibrator",
    "RuleBasedCalibrator",
]
