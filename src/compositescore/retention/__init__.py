"""
Retention Package
=================

Deciding how many principal components to keep.

    RetentionAdvisor
        Runs Kaiser-Guttman, Jolliffe's modification, the broken stick
        model and the scree family (optimal coordinates, acceleration
        factor, parallel analysis) over a spectral model.

    RetentionRecommendation
        The per-heuristic counts, plus selection policies that turn them
        into a single ``k``.
"""

from .advisor import RetentionAdvisor, RetentionRecommendation, validate_choice
from .heuristics import (
    ACCELERATION_FACTOR,
    BROKEN_STICK,
    HEURISTICS,
    JOLLIFFE,
    KAISER_GUTTMAN,
    OPTIMAL_COORDINATES,
    PARALLEL_ANALYSIS,
)
from .parallel import ParallelAnalysis, ParallelAnalysisResult

__all__ = [
    "ACCELERATION_FACTOR",
    "BROKEN_STICK",
    "HEURISTICS",
    "JOLLIFFE",
    "KAISER_GUTTMAN",
    "OPTIMAL_COORDINATES",
    "PARALLEL_ANALYSIS",
    "ParallelAnalysis",
    "ParallelAnalysisResult",
    "RetentionAdvisor",
    "RetentionRecommendation",
    "validate_choice",
]
