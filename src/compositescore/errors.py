"""
Errors
======

Every failure the pipeline can signal. Each error names the stage that
raised it so the caller can tell a malformed input table from a
degenerate model or an out-of-range retention choice.
"""

from __future__ import annotations

from typing import Optional, Sequence


class CompositeScoreError(Exception):
    """Base class for all pipeline errors."""

    stage: str = "pipeline"

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ShapeMismatchError(CompositeScoreError):
    """Row/label count mismatch or a non-rectangular table."""

    stage = "data"


class InvalidCellError(CompositeScoreError):
    """A table cell is missing, non-numeric or non-finite."""

    stage = "data"

    def __init__(self, message: str, cells: Sequence[tuple[int, int]] = ()):
        super().__init__(message)
        self.cells = list(cells)


class DegenerateComponentError(CompositeScoreError):
    """A score or centered loading column has zero norm."""

    stage = "scaling"

    def __init__(self, component: int, kind: str, norm: float):
        super().__init__(
            f"Component {component + 1} has a zero-norm {kind} column "
            f"(norm={norm:.3e}); it cannot be scaled to unit length"
        )
        self.component = component
        self.kind = kind
        self.norm = norm


class NoRetentionCrossingError(CompositeScoreError):
    """The broken-stick rule found no usable crossing point.

    ``reason`` is one of:
        first_component: the first component already explains less
            variance than the broken-stick reference (zero retained).
        no_crossing: observed variance never falls below the reference.
        zero_variance: the spectrum sums to zero.
    """

    stage = "retention"

    REASONS = ("first_component", "no_crossing", "zero_variance")

    def __init__(self, reason: str, message: Optional[str] = None):
        if reason not in self.REASONS:
            raise ValueError(f"Unknown crossing failure reason: {reason}")
        super().__init__(message or f"Broken stick model: {reason.replace('_', ' ')}")
        self.reason = reason


class ZeroNormSampleError(CompositeScoreError):
    """A sample's reconstructed profile has zero norm."""

    stage = "composite_score"

    def __init__(self, indices: Sequence[int], labels: Sequence[str] = ()):
        indices = list(indices)
        labels = list(labels)
        names = ", ".join(labels) if labels else ", ".join(str(i) for i in indices)
        super().__init__(
            f"Reconstructed profile has zero norm for sample(s): {names}; "
            "cosine similarity is undefined"
        )
        self.indices = indices
        self.labels = labels


class InvalidRetentionChoiceError(CompositeScoreError):
    """Retained component count outside ``[1, n_components]``."""

    stage = "retention"

    def __init__(self, k: int, n_components: int):
        super().__init__(
            f"Cannot retain k={k} components: must be between 1 and {n_components}"
        )
        self.k = k
        self.n_components = n_components
