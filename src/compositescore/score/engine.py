"""
Composite Score Engine
======================

Builds the sample-by-sample Composite Score (CS) matrix from the first
``k`` scaled components.

Reconstruction:
    1. ``PCsum = Σ_{i<=k} scoreScale[:, i] ⊗ loadScale[:, i]``
       (a samples x features matrix; computed as one matrix product)
    2. ``PCsumRoot = PCsum + colMeans(transformed table)``; the loadings
       were mean-centered during scaling, so the feature means are added
       back here.
    3. ``MeanEst = PCsumRoot - colMeans(PCsumRoot)``, centered by feature
       without scaling.

Similarity:
    ``CS = (MeanEst · MeanEstᵗ) ⊘ (norm ⊗ norm)`` with ``norm[i]`` the
    Euclidean norm of sample i's reconstructed profile. CS is the cosine
    similarity of reconstructed profiles and keeps its signed range
    [-1, 1]; choosing a palette or clipping is left to the renderer.

The stored matrix keeps full precision. Rounding (3 decimals by default)
is applied only by the display helpers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from ..data.table import DataTable
from ..errors import ShapeMismatchError, ZeroNormSampleError
from ..retention.advisor import validate_choice
from ..spectral.scaling import ScaledComponents

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CompositeScore:
    """A Composite Score matrix and the reconstruction it came from.

    Attributes:
        matrix: (n_samples, n_samples) full-precision CS values.
        labels: Sample labels, the row and column order of ``matrix``.
        k: Number of components retained.
        mean_estimate: (n_samples, n_features) MeanEst matrix.
        norms: (n_samples,) norms of the MeanEst rows.
        decimals: Display precision.
    """
    matrix: NDArray
    labels: tuple[str, ...]
    k: int
    mean_estimate: NDArray
    norms: NDArray
    decimals: int = 3

    @property
    def n_samples(self) -> int:
        return self.matrix.shape[0]

    def rounded(self) -> NDArray:
        return np.round(self.matrix, self.decimals)

    def to_frame(self, rounded: bool = True) -> pd.DataFrame:
        """Square DataFrame labelled by sample on both axes."""
        values = self.rounded() if rounded else np.array(self.matrix)
        return pd.DataFrame(values, index=list(self.labels), columns=list(self.labels))

    def summary(self) -> dict:
        off_diagonal = self.matrix[~np.eye(self.n_samples, dtype=bool)]
        return {
            "k": self.k,
            "n_samples": self.n_samples,
            "min": float(self.matrix.min()),
            "max": float(self.matrix.max()),
            "mean_off_diagonal": float(off_diagonal.mean()) if off_diagonal.size else None,
        }


class CompositeScoreEngine:
    """Reconstructs mean-estimated profiles and scores sample pairs."""

    def __init__(self, decimals: int = 3, zero_tolerance: float = 1e-12):
        self.decimals = decimals
        self.zero_tolerance = zero_tolerance

    def mean_estimate(
        self,
        scaled: ScaledComponents,
        table: DataTable,
        k: int,
    ) -> NDArray:
        """MeanEst matrix from the first ``k`` scaled components."""
        k = validate_choice(k, scaled.n_components)
        if scaled.score_scale.shape[0] != table.n_samples:
            raise ShapeMismatchError(
                f"Scores cover {scaled.score_scale.shape[0]} samples, "
                f"table has {table.n_samples}",
                stage="composite_score",
            )
        if scaled.load_scale.shape[0] != table.n_features:
            raise ShapeMismatchError(
                f"Loadings cover {scaled.load_scale.shape[0]} features, "
                f"table has {table.n_features}",
                stage="composite_score",
            )

        pc_sum = scaled.score_scale[:, :k] @ scaled.load_scale[:, :k].T
        pc_sum_root = pc_sum + table.column_means()
        return pc_sum_root - pc_sum_root.mean(axis=0)

    def compute(
        self,
        scaled: ScaledComponents,
        table: DataTable,
        k: int,
    ) -> CompositeScore:
        """
        Composite Score matrix for ``k`` retained components.

        Args:
            scaled: Scaled components of the transformed table.
            table: The transformed table the components came from.
            k: Number of leading components to retain.

        Returns:
            CompositeScore in the table's sample order.

        Raises:
            InvalidRetentionChoiceError: if ``k`` is out of range.
            ZeroNormSampleError: if a reconstructed profile has zero norm.
        """
        mean_est = self.mean_estimate(scaled, table, k)
        norms = np.linalg.norm(mean_est, axis=1)

        floor = self.zero_tolerance * max(norms.max(initial=0.0), 1.0)
        zero = np.flatnonzero(norms <= floor)
        if zero.size:
            raise ZeroNormSampleError(
                indices=zero.tolist(),
                labels=[table.labels[i] for i in zero],
            )

        gram = mean_est @ mean_est.T
        matrix = gram / np.outer(norms, norms)
        for array in (matrix, mean_est, norms):
            array.setflags(write=False)

        score = CompositeScore(
            matrix=matrix,
            labels=table.labels,
            k=int(k),
            mean_estimate=mean_est,
            norms=norms,
            decimals=self.decimals,
        )
        summary = score.summary()
        logger.info(
            f"Composite Score with k={k}: {score.n_samples}x{score.n_samples}, "
            f"range [{summary['min']:.3f}, {summary['max']:.3f}]"
        )
        return score
