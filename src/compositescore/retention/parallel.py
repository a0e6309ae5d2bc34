"""
Parallel Analysis
=================

Monte-Carlo noise floor for an eigenvalue spectrum.

Draws ``rep`` tables of independent standard-normal values with the same
shape as the observed table (``n_subjects`` rows x ``n_variables``
columns), computes the eigenvalues of each table's correlation matrix
and summarizes them rank by rank:

    qevpea[i] = cent-quantile of the i-th eigenvalue across replicates
    mevpea[i] = mean of the i-th eigenvalue across replicates

Only the leading ``min(n_subjects, n_variables)`` eigenvalues are kept,
which is all an observed spectrum of that shape can be compared against.
They are the squared singular values of the draw with each column
centered and scaled to unit norm, so wide tables never build the
``n_variables x n_variables`` correlation matrix.

``qevpea`` is the reference curve used by the scree-family heuristics.
This is the only stochastic step of the pipeline; pass an integer
``seed`` to make it reproducible. Every ``simulate`` call with an integer
seed starts from the same generator state. A numpy Generator passed as
``seed`` is shared and advances between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray
from scipy.linalg import svdvals

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ParallelAnalysisResult:
    """Simulated spectra and their rank-wise summaries.

    Attributes:
        eigenvalues: (rep, min(n_subjects, n_variables)) simulated
            spectra, descending.
        qevpea: ``cent`` quantile per rank.
        mevpea: Mean per rank.
        rep: Number of replicates.
        cent: Quantile level.
        seed: Seed used, if any.
    """
    eigenvalues: NDArray
    qevpea: NDArray
    mevpea: NDArray
    rep: int
    cent: float
    seed: Optional[int] = None

    def reference(self, n_components: int) -> NDArray:
        """Quantile curve truncated to the observed number of components."""
        return self.qevpea[:n_components]


def correlation_spectrum(data: NDArray) -> NDArray:
    """
    Leading eigenvalues of the column correlation matrix of ``data``.

    Returns ``min(n, m)`` values in descending order for an (n, m) table;
    the remaining eigenvalues of the m x m matrix are zero.
    """
    centered = data - data.mean(axis=0)
    standardized = centered / np.linalg.norm(centered, axis=0)
    # Unit-norm columns give Zᵗ Z = corr, so the eigenvalues are s².
    return svdvals(standardized, check_finite=False) ** 2


class ParallelAnalysis:
    """
    Simulates random spectra of a given shape.

    Args:
        rep: Number of random tables to draw.
        cent: Quantile (0 < cent < 1) taken at each rank.
        seed: Integer seed or a numpy Generator. None draws fresh entropy.
    """

    def __init__(
        self,
        rep: int = 100,
        cent: float = 0.95,
        seed: Union[int, Generator, None] = None,
    ):
        if rep < 1:
            raise ValueError(f"Parallel analysis needs at least one replicate, got {rep}")
        if not 0.0 < cent < 1.0:
            raise ValueError(f"Quantile level must lie in (0, 1), got {cent}")
        self.rep = rep
        self.cent = cent
        self.generator = seed if isinstance(seed, Generator) else None
        self.seed = None if isinstance(seed, Generator) else seed

    def _rng(self) -> Generator:
        if self.generator is not None:
            return self.generator
        return np.random.default_rng(self.seed)

    def simulate(self, n_subjects: int, n_variables: int) -> ParallelAnalysisResult:
        if n_subjects < 2 or n_variables < 1:
            raise ValueError(
                f"Cannot simulate spectra for a {n_subjects}x{n_variables} table"
            )

        logger.info(
            f"Parallel analysis: {self.rep} random {n_subjects}x{n_variables} tables, "
            f"{100 * self.cent:.0f}th percentile"
        )

        rng = self._rng()
        spectra = np.empty((self.rep, min(n_subjects, n_variables)))
        for r in range(self.rep):
            data = rng.standard_normal((n_subjects, n_variables))
            spectra[r] = correlation_spectrum(data)

            if (r + 1) % 25 == 0:
                logger.debug(f"  Simulated {r + 1}/{self.rep} spectra")

        result = ParallelAnalysisResult(
            eigenvalues=spectra,
            qevpea=np.quantile(spectra, self.cent, axis=0),
            mevpea=spectra.mean(axis=0),
            rep=self.rep,
            cent=self.cent,
            seed=self.seed,
        )
        logger.debug(f"Noise floor: {np.array2string(result.qevpea, precision=4)}")
        return result
