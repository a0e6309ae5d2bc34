"""
Component Scaling
=================

Normalizes scores and loadings independently before reconstruction:

    scoreScale[:, j] = scores[:, j] / ||scores[:, j]||
    loadScale[:, j]  = (loadings[:, j] - mean) / ||loadings[:, j] - mean||

A component whose score column or centered loading column has (numerically)
zero norm cannot be scaled. By default this raises
DegenerateComponentError; with ``on_degenerate="drop"`` such components
are excluded and listed in ``ScaledComponents.excluded``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ..errors import DegenerateComponentError
from .model import SpectralModel

logger = logging.getLogger(__name__)

DEGENERATE_POLICIES = ("raise", "drop")


@dataclass(frozen=True, eq=False)
class ScaledComponents:
    """Unit-norm scores and centered unit-norm loadings.

    Attributes:
        score_scale: (n_samples, c) scaled scores.
        load_scale: (n_features, c) centered, scaled loadings.
        components: Indices (into the SpectralModel) of the c kept components.
        excluded: Indices of components dropped as degenerate.
    """
    score_scale: NDArray
    load_scale: NDArray
    components: tuple[int, ...]
    excluded: tuple[int, ...] = ()

    @property
    def n_components(self) -> int:
        return self.score_scale.shape[1]


class ComponentScaler:
    """Scales the components of a SpectralModel."""

    def __init__(self, on_degenerate: str = "raise", tolerance: float = 1e-10):
        if on_degenerate not in DEGENERATE_POLICIES:
            raise ValueError(
                f"Unknown degenerate-component policy: {on_degenerate}. "
                f"Use one of {DEGENERATE_POLICIES}"
            )
        self.on_degenerate = on_degenerate
        self.tolerance = tolerance

    def scale(self, model: SpectralModel) -> ScaledComponents:
        score_norms = np.linalg.norm(model.scores, axis=0)
        centered = model.loadings - model.loadings.mean(axis=0)
        load_norms = np.linalg.norm(centered, axis=0)

        # Score norms are the singular values, so compare them to the largest.
        score_floor = self.tolerance * score_norms.max(initial=0.0)

        kept, excluded, errors = [], [], []
        for j in range(model.n_components):
            error = None
            if score_norms[j] <= score_floor:
                error = DegenerateComponentError(j, "score", float(score_norms[j]))
            elif load_norms[j] <= self.tolerance:
                error = DegenerateComponentError(j, "loading", float(load_norms[j]))

            if error is None:
                kept.append(j)
            elif self.on_degenerate == "raise":
                raise error
            else:
                logger.warning(f"Dropping component {j + 1}: {error}")
                excluded.append(j)
                errors.append(error)

        if not kept:
            raise errors[0]

        idx = np.array(kept)
        score_scale = model.scores[:, idx] / score_norms[idx]
        load_scale = centered[:, idx] / load_norms[idx]
        score_scale.setflags(write=False)
        load_scale.setflags(write=False)

        logger.info(
            f"Scaled {len(kept)} components"
            + (f" ({len(excluded)} degenerate dropped)" if excluded else "")
        )
        return ScaledComponents(
            score_scale=score_scale,
            load_scale=load_scale,
            components=tuple(kept),
            excluded=tuple(excluded),
        )
