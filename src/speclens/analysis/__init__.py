"""Spec-scale analysis: metrics, complexity tiers, and strategy selection."""

from speclens.analysis.complexity import analyze, classify_tier, estimate_processing_time
from speclens.analysis.strategy import select_strategy

__all__ = ["analyze", "classify_tier", "estimate_processing_time", "select_strategy"]
