"""
Composite Score
===============

Pairwise sample similarity ("Composite Score", CS) for multivariate
abundance tables such as metabolomic feature matrices.

Rather than comparing samples by raw Euclidean distance, the pipeline
power-transforms the table, decomposes it into principal components,
recommends how many components carry structure, reconstructs a
mean-estimated profile for each sample from the retained components and
scores every pair of samples by the cosine of their reconstructed
profiles. The resulting square matrix can be viewed as a heatmap or
exported as a dense edge list for network analysis tools.

The computation is split in two phases around the one human decision:

    context = compute_recommendations(table, config)
    print(context.recommendation.to_frame())
    context = compute_composite_score(context, k=3)
    context.score.to_frame()
"""

from .errors import (
    CompositeScoreError,
    DegenerateComponentError,
    InvalidCellError,
    InvalidRetentionChoiceError,
    NoRetentionCrossingError,
    ShapeMismatchError,
    ZeroNormSampleError,
)
from .data.table import DataTable
from .pipeline import (
    Pipeline,
    PipelineContext,
    compute_composite_score,
    compute_recommendations,
)

__version__ = "0.1.0"

__all__ = [
    "CompositeScoreError",
    "DataTable",
    "DegenerateComponentError",
    "InvalidCellError",
    "InvalidRetentionChoiceError",
    "NoRetentionCrossingError",
    "Pipeline",
    "PipelineContext",
    "ShapeMismatchError",
    "ZeroNormSampleError",
    "compute_composite_score",
    "compute_recommendations",
]
