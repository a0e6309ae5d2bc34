"""
Retention Heuristics
====================

Rules that read a descending eigenvalue spectrum and return how many
leading components carry structure rather than noise.

Each rule answers the question differently:

1. **Kaiser-Guttman**: keep components whose eigenvalue exceeds the
   average eigenvalue. For a correlation matrix the average is 1, which
   gives the textbook "eigenvalue > 1" rule.

2. **Jolliffe's modification**: the Kaiser-Guttman rule is known to
   discard too much; Jolliffe lowers the threshold to 0.7 x the average.
   Its count is never smaller than Kaiser-Guttman's.

3. **Broken Stick Model**: if a stick of unit length is broken at random
   into n pieces, the expected length of the i-th longest piece is
   ``(1/n) Σ_{m=i..n} 1/m``. A component is retained while it explains
   more variance than the corresponding piece.

4. **Scree family**, all measured against a reference curve (normally the
   parallel-analysis noise floor):
     - *Optimal Coordinates*: extrapolate a line from each following
       eigenvalue to the last one; a component is retained while it sits on or
       above its extrapolated value and above the reference.
     - *Acceleration Factor*: the elbow of the scree, i.e. the point of
       largest second difference; components before the elbow are kept.
     - *Parallel Analysis*: components are kept until the observed
       eigenvalue falls below the reference.

References:
    - Kaiser, H.F. "The application of electronic computers to factor
      analysis" (1960)
    - Jolliffe, I.T. "Discarding variables in a principal component
      analysis" (1972)
    - Frontier, S. "Étude de la décroissance des valeurs propres dans une
      analyse en composantes principales" (1976), broken stick
    - Raîche, G. et al. "Non-graphical solutions for Cattell's scree test"
      (2013), optimal coordinates and acceleration factor
    - Horn, J.L. "A rationale and test for the number of factors in
      factor analysis" (1965), parallel analysis
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import NoRetentionCrossingError

logger = logging.getLogger(__name__)

KAISER_GUTTMAN = "Kaiser-Guttman"
JOLLIFFE = "Jolliffe's KG"
BROKEN_STICK = "Broken Stick Model"
OPTIMAL_COORDINATES = "Optimal Coordinates"
ACCELERATION_FACTOR = "Acceleration Factor"
PARALLEL_ANALYSIS = "Parallel Analysis"

HEURISTICS = (
    KAISER_GUTTMAN,
    JOLLIFFE,
    BROKEN_STICK,
    OPTIMAL_COORDINATES,
    ACCELERATION_FACTOR,
    PARALLEL_ANALYSIS,
)


def _spectrum(eigenvalues: ArrayLike) -> NDArray:
    ev = np.asarray(eigenvalues, dtype=np.float64)
    if ev.ndim != 1 or ev.size == 0:
        raise ValueError("Eigenvalue spectrum must be a non-empty 1-D sequence")
    return ev


def _reference(ev: NDArray, reference: Optional[ArrayLike]) -> NDArray:
    if reference is None:
        return np.full_like(ev, ev.mean())
    ref = np.asarray(reference, dtype=np.float64)
    if ref.shape != ev.shape:
        raise ValueError(
            f"Reference curve has {ref.size} values for {ev.size} eigenvalues"
        )
    return ref


# ---------------------------------------------------------------------------
# Kaiser-Guttman family
# ---------------------------------------------------------------------------

def kaiser_guttman(eigenvalues: ArrayLike) -> int:
    """Number of eigenvalues strictly greater than their mean."""
    ev = _spectrum(eigenvalues)
    return int(np.sum(ev > ev.mean()))


def jolliffe(eigenvalues: ArrayLike, factor: float = 0.7) -> int:
    """Number of eigenvalues strictly greater than ``factor`` x their mean."""
    ev = _spectrum(eigenvalues)
    return int(np.sum(ev > factor * ev.mean()))


# ---------------------------------------------------------------------------
# Broken stick
# ---------------------------------------------------------------------------

def broken_stick_reference(n: int) -> NDArray:
    """
    Expected percent variance of each piece of a randomly broken stick.

    Returns ``p[i] = (100/n) Σ_{m=i..n} 1/m`` for i = 1..n, longest piece
    first, so it lines up with a descending spectrum. The values sum to 100.
    """
    if n < 1:
        raise ValueError(f"Need at least one component, got {n}")
    reciprocals = 1.0 / np.arange(1, n + 1)
    tails = np.cumsum(reciprocals[::-1])[::-1]
    return 100.0 * tails / n


def broken_stick(eigenvalues: ArrayLike) -> int:
    """
    Count of leading components that beat the broken-stick reference.

    The count is the 0-based index of the first component whose percent
    variance falls below its reference piece.

    Raises:
        NoRetentionCrossingError: if the spectrum sums to zero, if the
            first component is already below the reference, or if no
            component ever falls below it.
    """
    ev = _spectrum(eigenvalues)
    total = ev.sum()
    if total <= 0:
        raise NoRetentionCrossingError(
            "zero_variance", "Broken stick model: eigenvalues sum to zero"
        )

    residual = 100.0 * ev / total - broken_stick_reference(ev.size)
    below = np.flatnonzero(residual < 0)
    if below.size == 0:
        raise NoRetentionCrossingError(
            "no_crossing",
            "Broken stick model: observed variance never falls below the reference",
        )
    if below[0] == 0:
        raise NoRetentionCrossingError(
            "first_component",
            f"Broken stick model: the first component explains "
            f"{100.0 * ev[0] / total:.1f}% which is below the expected "
            f"{broken_stick_reference(ev.size)[0]:.1f}%",
        )
    return int(below[0])


# ---------------------------------------------------------------------------
# Scree family
# ---------------------------------------------------------------------------

def optimal_coordinates(
    eigenvalues: ArrayLike,
    reference: Optional[ArrayLike] = None,
) -> int:
    """
    Optimal Coordinates count.

    For each rank i (1-based, i <= n-2) the eigenvalue is predicted from
    the straight line through ``(i+1, ev[i+1])`` and ``(n, ev[n])``. The
    count is the length of the leading run of components lying on or above both
    their prediction and the reference curve (the mean eigenvalue when no
    reference is given).
    """
    ev = _spectrum(eigenvalues)
    ref = _reference(ev, reference)
    n = ev.size

    count = 0
    for i in range(n - 2):
        slope = (ev[n - 1] - ev[i + 1]) / (n - 1 - (i + 1))
        predicted = ev[i + 1] - slope
        if ev[i] >= predicted and ev[i] >= ref[i]:
            count += 1
        else:
            break
    return count


def acceleration_factor(eigenvalues: ArrayLike) -> int:
    """
    Acceleration Factor count: components before the scree elbow.

    The acceleration at rank j (1-based, 2 <= j <= n-1) is the second
    difference ``ev[j+1] - 2 ev[j] + ev[j-1]``; the elbow is the rank of
    maximal acceleration and the count is ``elbow - 1``. Spectra with
    fewer than three eigenvalues have no elbow and return 1.
    """
    ev = _spectrum(eigenvalues)
    if ev.size < 3:
        return 1
    acceleration = ev[2:] - 2.0 * ev[1:-1] + ev[:-2]
    # acceleration[a] belongs to 0-based rank a + 1, which is also the count.
    return int(np.argmax(acceleration)) + 1


def parallel_analysis(eigenvalues: ArrayLike, reference: ArrayLike) -> int:
    """Number of leading eigenvalues at or above the noise-floor reference."""
    ev = _spectrum(eigenvalues)
    ref = _reference(ev, reference)
    below = np.flatnonzero(ev < ref)
    return int(below[0]) if below.size else int(ev.size)
