"""
Spectral Model
==============

Principal-component decomposition of the transformed table.

The decomposition follows ``prcomp(x, center=FALSE, scale.=FALSE)``
semantics. With ``X = U S Vᵗ`` the thin singular value decomposition of
the (n_samples x n_features) table:

    scores      = U S        (n_samples x r)
    loadings    = V          (n_features x r)
    sdev        = S / sqrt(n_samples - 1)
    eigenvalues = sdev²

where ``r = min(n_samples, n_features)``. Centering and scaling are both
disabled: the power transform is the only variance-stabilizing step, and
the Composite Score reconstruction adds the feature means back itself.
Because nothing is removed, ``scores · loadingsᵗ`` reproduces the
transformed table exactly.

Singular vectors are only defined up to sign. Each component is oriented
so that its largest-magnitude loading is positive, which makes repeated
runs on the same table return identical matrices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import svd

from ..data.table import DataTable
from ..errors import InvalidRetentionChoiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class SpectralModel:
    """Result of the decomposition.

    Attributes:
        scores: (n_samples, r) sample projections.
        loadings: (n_features, r) feature weights, orthonormal columns.
        singular_values: (r,) descending singular values of the table.
        eigenvalues: (r,) descending component variances (sdev²).
        labels: Sample labels in row order.
        features: Feature names in loading row order.
    """
    scores: NDArray
    loadings: NDArray
    singular_values: NDArray
    eigenvalues: NDArray
    labels: tuple[str, ...]
    features: tuple[str, ...]

    @property
    def n_components(self) -> int:
        return self.scores.shape[1]

    @property
    def n_samples(self) -> int:
        return self.scores.shape[0]

    @property
    def n_features(self) -> int:
        return self.loadings.shape[0]

    @property
    def sdev(self) -> NDArray:
        return np.sqrt(self.eigenvalues)

    @property
    def explained_variance_ratio(self) -> NDArray:
        """Fraction of total variance per component (zeros for a null table)."""
        total = self.eigenvalues.sum()
        if total <= 0:
            return np.zeros_like(self.eigenvalues)
        return self.eigenvalues / total

    def reconstruct(self, k: Optional[int] = None) -> NDArray:
        """Rank-k approximation ``scores[:, :k] · loadings[:, :k]ᵗ``.

        With ``k = n_components`` this is the transformed table itself.
        """
        if k is None:
            k = self.n_components
        if not 1 <= k <= self.n_components:
            raise InvalidRetentionChoiceError(k, self.n_components)
        return self.scores[:, :k] @ self.loadings[:, :k].T

    def summary(self) -> dict:
        ratio = self.explained_variance_ratio
        return {
            "n_components": self.n_components,
            "eigenvalues": [float(v) for v in self.eigenvalues],
            "explained_variance_ratio": [float(v) for v in ratio],
            "cumulative_variance_ratio": [float(v) for v in np.cumsum(ratio)],
        }


def _orient(scores: NDArray, loadings: NDArray) -> tuple[NDArray, NDArray]:
    """Flip each component so its largest |loading| is positive."""
    pivots = np.argmax(np.abs(loadings), axis=0)
    signs = np.sign(loadings[pivots, np.arange(loadings.shape[1])])
    signs[signs == 0] = 1.0
    return scores * signs, loadings * signs


def decompose(table: DataTable) -> SpectralModel:
    """
    Decompose a (transformed) table into principal components.

    Args:
        table: Samples as rows. Must hold at least two samples.

    Returns:
        SpectralModel with ``min(n_samples, n_features)`` components in
        descending order of explained variance.
    """
    X = np.asarray(table.values, dtype=np.float64)
    n_samples = X.shape[0]

    U, s, Vt = svd(X, full_matrices=False, lapack_driver="gesdd")
    scores, loadings = _orient(U * s, Vt.T)
    eigenvalues = s ** 2 / (n_samples - 1)

    for array in (scores, loadings, s, eigenvalues):
        array.setflags(write=False)

    model = SpectralModel(
        scores=scores,
        loadings=loadings,
        singular_values=s,
        eigenvalues=eigenvalues,
        labels=table.labels,
        features=table.features,
    )

    ratio = model.explained_variance_ratio
    logger.info(
        f"Decomposed {n_samples}x{X.shape[1]} table into {model.n_components} components; "
        f"PC1 explains {100 * ratio[0]:.1f}% of the (uncentered) variance"
    )
    logger.debug(f"Eigenvalues: {np.array2string(eigenvalues, precision=4)}")
    return model
