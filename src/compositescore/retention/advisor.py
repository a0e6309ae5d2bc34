"""
Retention Advisor
=================

Runs every retention heuristic over a spectral model and collects the
answers into a RetentionRecommendation.

The recommendation is advisory. The number of retained components ``k``
is decided outside the advisor, either by a person reading the table or
by a policy such as "median of the recommendations":

    advisor = RetentionAdvisor(rep=100, cent=0.95, seed=7)
    recommendation = advisor.advise(model)
    print(recommendation.to_frame())
    k = recommendation.choose("median")

A heuristic that cannot answer (the broken stick rule without a crossing)
is recorded under ``failures`` while the other rules still report.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

import numpy as np
import pandas as pd
from numpy.random import Generator
from numpy.typing import NDArray

from ..errors import InvalidRetentionChoiceError, NoRetentionCrossingError
from ..spectral.model import SpectralModel
from .heuristics import (
    ACCELERATION_FACTOR,
    BROKEN_STICK,
    HEURISTICS,
    JOLLIFFE,
    KAISER_GUTTMAN,
    OPTIMAL_COORDINATES,
    PARALLEL_ANALYSIS,
    acceleration_factor,
    broken_stick,
    broken_stick_reference,
    jolliffe,
    kaiser_guttman,
    optimal_coordinates,
    parallel_analysis,
)
from .parallel import ParallelAnalysis, ParallelAnalysisResult

logger = logging.getLogger(__name__)

POLICIES = ("median", "min", "max")


def validate_choice(k: int, n_components: int) -> int:
    """Return ``k`` if it is an integer in ``[1, n_components]``."""
    if isinstance(k, bool):
        raise InvalidRetentionChoiceError(k, n_components)
    try:
        whole = int(k)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidRetentionChoiceError(k, n_components) from e
    if whole != k or not 1 <= whole <= n_components:
        raise InvalidRetentionChoiceError(k, n_components)
    return whole


@dataclass(frozen=True, eq=False)
class RetentionRecommendation:
    """Component counts recommended by each heuristic.

    Attributes:
        counts: Heuristic name -> recommended number of components.
        failures: Heuristic name -> error for rules that could not answer.
        eigenvalues: Observed spectrum the rules were applied to.
        reference: Parallel-analysis noise floor aligned with ``eigenvalues``.
        broken_stick: Broken-stick percent reference aligned with ``eigenvalues``.
        parallel: Full parallel-analysis result.
    """
    counts: dict[str, int]
    failures: dict[str, NoRetentionCrossingError] = field(default_factory=dict)
    eigenvalues: Optional[NDArray] = None
    reference: Optional[NDArray] = None
    broken_stick: Optional[NDArray] = None
    parallel: Optional[ParallelAnalysisResult] = None

    @property
    def n_components(self) -> int:
        return 0 if self.eigenvalues is None else int(self.eigenvalues.size)

    def __getitem__(self, heuristic: str) -> int:
        return self.counts[heuristic]

    def __contains__(self, heuristic: object) -> bool:
        return heuristic in self.counts

    def __len__(self) -> int:
        return len(self.counts)

    def as_dict(self) -> dict[str, int]:
        return dict(self.counts)

    def to_frame(self) -> pd.DataFrame:
        """One row per heuristic; failed rules show a missing count and the reason."""
        rows = []
        for name in HEURISTICS:
            if name in self.counts:
                rows.append({"heuristic": name, "components": self.counts[name], "note": ""})
            elif name in self.failures:
                rows.append({
                    "heuristic": name,
                    "components": pd.NA,
                    "note": self.failures[name].reason,
                })
        frame = pd.DataFrame(rows, columns=["heuristic", "components", "note"])
        frame["components"] = frame["components"].astype("Int64")
        return frame

    def choose(self, policy: str = "median", n_components: Optional[int] = None) -> int:
        """
        Resolve a selection policy to a number of components.

        Args:
            policy: "median" (floor of the median count), "min", "max",
                or the name of a single heuristic.
            n_components: Upper bound for the result. Defaults to the
                length of the spectrum.

        Returns:
            A count clipped to ``[1, n_components]``.
        """
        limit = n_components if n_components is not None else self.n_components
        if policy in self.failures:
            raise self.failures[policy]
        if policy in self.counts:
            chosen = self.counts[policy]
        elif policy in POLICIES:
            values = np.array(list(self.counts.values()))
            if policy == "median":
                chosen = int(np.floor(np.median(values)))
            elif policy == "min":
                chosen = int(values.min())
            else:
                chosen = int(values.max())
        else:
            raise ValueError(
                f"Unknown retention policy: {policy}. "
                f"Use one of {POLICIES} or a heuristic name {HEURISTICS}"
            )

        clipped = int(min(max(chosen, 1), limit))
        if clipped != chosen:
            logger.warning(
                f"Policy '{policy}' suggested {chosen} components; clipped to {clipped}"
            )
        return clipped


class RetentionAdvisor:
    """
    Applies the retention heuristics to a spectral model.

    Args:
        rep: Parallel-analysis replicates.
        cent: Parallel-analysis quantile level.
        seed: Seed or Generator for parallel analysis.
        jolliffe_factor: Fraction of the mean eigenvalue used by Jolliffe's rule.
    """

    def __init__(
        self,
        rep: int = 100,
        cent: float = 0.95,
        seed: Union[int, Generator, None] = None,
        jolliffe_factor: float = 0.7,
    ):
        self.parallel = ParallelAnalysis(rep=rep, cent=cent, seed=seed)
        self.jolliffe_factor = jolliffe_factor

    def advise(self, model: SpectralModel) -> RetentionRecommendation:
        return self.advise_spectrum(
            model.eigenvalues,
            n_subjects=model.n_samples,
            n_variables=model.n_features,
        )

    def advise_spectrum(
        self,
        eigenvalues: NDArray,
        n_subjects: int,
        n_variables: int,
    ) -> RetentionRecommendation:
        """Apply every heuristic to an explicit spectrum of a table's shape."""
        ev = np.asarray(eigenvalues, dtype=np.float64)
        if ev.size > min(n_subjects, n_variables):
            raise ValueError(
                f"Spectrum has {ev.size} eigenvalues but a {n_subjects}x{n_variables} "
                f"table has at most {min(n_subjects, n_variables)}"
            )

        counts: dict[str, int] = {
            KAISER_GUTTMAN: kaiser_guttman(ev),
            JOLLIFFE: jolliffe(ev, self.jolliffe_factor),
        }
        failures: dict[str, NoRetentionCrossingError] = {}

        try:
            counts[BROKEN_STICK] = broken_stick(ev)
        except NoRetentionCrossingError as e:
            logger.warning(f"{BROKEN_STICK} gave no recommendation: {e}")
            failures[BROKEN_STICK] = e

        simulated = self.parallel.simulate(n_subjects, n_variables)
        reference = simulated.reference(ev.size)
        counts[OPTIMAL_COORDINATES] = optimal_coordinates(ev, reference)
        counts[ACCELERATION_FACTOR] = acceleration_factor(ev)
        counts[PARALLEL_ANALYSIS] = parallel_analysis(ev, reference)

        recommendation = RetentionRecommendation(
            counts={name: counts[name] for name in HEURISTICS if name in counts},
            failures=failures,
            eigenvalues=ev,
            reference=reference,
            broken_stick=broken_stick_reference(ev.size),
            parallel=simulated,
        )

        logger.info(
            "Retention recommendations: "
            + ", ".join(f"{name}={count}" for name, count in recommendation.counts.items())
        )
        return recommendation
