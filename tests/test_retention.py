"""
Tests for the retention heuristics, parallel analysis and the advisor.

The worked spectrum [10, 4, 1, 0.2] is small enough to check every rule
by hand.
"""

import pytest
import numpy as np

from compositescore import (
    DataTable,
    InvalidRetentionChoiceError,
    NoRetentionCrossingError,
)
from compositescore.retention import (
    ACCELERATION_FACTOR,
    BROKEN_STICK,
    HEURISTICS,
    JOLLIFFE,
    KAISER_GUTTMAN,
    OPTIMAL_COORDINATES,
    PARALLEL_ANALYSIS,
    ParallelAnalysis,
    RetentionAdvisor,
    RetentionRecommendation,
    validate_choice,
)
from compositescore.retention.heuristics import (
    acceleration_factor,
    broken_stick,
    broken_stick_reference,
    jolliffe,
    kaiser_guttman,
    optimal_coordinates,
    parallel_analysis,
)
from compositescore.retention.parallel import correlation_spectrum
from compositescore.spectral.model import decompose

WORKED = np.array([10.0, 4.0, 1.0, 0.2])


def _make_recommendation(**failures) -> RetentionRecommendation:
    counts = {
        KAISER_GUTTMAN: 2,
        JOLLIFFE: 3,
        BROKEN_STICK: 1,
        OPTIMAL_COORDINATES: 2,
        ACCELERATION_FACTOR: 1,
        PARALLEL_ANALYSIS: 2,
    }
    for name in failures:
        counts.pop(name)
    return RetentionRecommendation(
        counts=counts,
        failures=dict(failures),
        eigenvalues=np.array([5.0, 3.0, 1.5, 0.4, 0.1]),
    )


class TestKaiserGuttman:
    """Test the mean-eigenvalue rules."""

    def test_worked_spectrum(self):
        assert kaiser_guttman(WORKED) == 2
        assert jolliffe(WORKED) == 2

    def test_jolliffe_lower_threshold(self):
        ev = [4.0, 2.0, 1.6, 1.0, 0.4]
        # mean 1.8, Jolliffe threshold 1.26
        assert kaiser_guttman(ev) == 2
        assert jolliffe(ev) == 3

    def test_jolliffe_never_below_kaiser(self):
        rng = np.random.default_rng(11)
        for _ in range(50):
            ev = np.sort(rng.exponential(size=8))[::-1]
            assert jolliffe(ev) >= kaiser_guttman(ev)

    def test_flat_spectrum(self):
        assert kaiser_guttman([1.0, 1.0, 1.0]) == 0


class TestBrokenStick:
    """Test the broken stick model."""

    def test_reference_sums_to_100(self):
        for n in [1, 2, 5, 20]:
            assert broken_stick_reference(n).sum() == pytest.approx(100.0)

    def test_reference_values(self):
        expected = 25.0 * np.array([25 / 12, 13 / 12, 7 / 12, 1 / 4])
        assert np.allclose(broken_stick_reference(4), expected)

    def test_worked_spectrum(self):
        assert broken_stick(WORKED) == 1

    def test_first_component_below_reference(self):
        with pytest.raises(NoRetentionCrossingError) as exc:
            broken_stick([1.0, 1.0, 1.0, 1.0])
        assert exc.value.reason == "first_component"
        assert exc.value.stage == "retention"

    def test_no_crossing(self):
        # Observed percentages equal the reference exactly.
        with pytest.raises(NoRetentionCrossingError) as exc:
            broken_stick([3.0, 1.0])
        assert exc.value.reason == "no_crossing"

    def test_zero_variance(self):
        with pytest.raises(NoRetentionCrossingError) as exc:
            broken_stick([0.0, 0.0, 0.0])
        assert exc.value.reason == "zero_variance"

    def test_unknown_reason(self):
        with pytest.raises(ValueError):
            NoRetentionCrossingError("sideways")


class TestScreeFamily:
    """Test optimal coordinates, acceleration factor and parallel analysis."""

    def test_optimal_coordinates_default_reference(self):
        assert optimal_coordinates(WORKED) == 2

    def test_optimal_coordinates_gated_by_reference(self):
        assert optimal_coordinates(WORKED, [5.0, 5.0, 2.0, 1.0]) == 1
        assert optimal_coordinates(WORKED, [20.0, 3.0, 2.0, 1.0]) == 0

    def test_optimal_coordinates_linear_scree(self):
        # Each eigenvalue lies exactly on its extrapolated line.
        assert optimal_coordinates([4.0, 3.0, 2.0, 1.0], [0.0, 0.0, 0.0, 0.0]) == 2

    def test_acceleration_factor(self):
        assert acceleration_factor(WORKED) == 1
        assert acceleration_factor([10.0, 9.0, 8.0, 1.0, 0.5]) == 3

    def test_acceleration_factor_short_spectrum(self):
        assert acceleration_factor([3.0, 1.0]) == 1
        assert acceleration_factor([3.0]) == 1

    def test_parallel_analysis(self):
        assert parallel_analysis(WORKED, [5.0, 3.0, 2.0, 1.0]) == 2

    def test_parallel_analysis_never_below(self):
        assert parallel_analysis(WORKED, [0.1, 0.1, 0.1, 0.1]) == 4

    def test_reference_length_mismatch(self):
        with pytest.raises(ValueError):
            parallel_analysis(WORKED, [1.0, 1.0])


class TestParallelAnalysis:
    """Test the Monte-Carlo noise floor."""

    def test_seed_reproducible(self):
        first = ParallelAnalysis(rep=20, seed=1).simulate(10, 5)
        second = ParallelAnalysis(rep=20, seed=1).simulate(10, 5)
        assert np.array_equal(first.qevpea, second.qevpea)
        assert np.array_equal(first.eigenvalues, second.eigenvalues)

    def test_shapes(self):
        result = ParallelAnalysis(rep=20, seed=2).simulate(10, 5)
        assert result.eigenvalues.shape == (20, 5)
        assert result.qevpea.shape == (5,)
        assert result.mevpea.shape == (5,)
        assert result.reference(3).shape == (3,)

    def test_spectra_are_correlation_eigenvalues(self):
        result = ParallelAnalysis(rep=20, seed=3).simulate(10, 5)
        assert np.allclose(result.eigenvalues.sum(axis=1), 5.0)
        assert (np.diff(result.eigenvalues, axis=1) <= 1e-12).all()

    def test_repeated_calls_reproducible(self):
        analysis = ParallelAnalysis(rep=20, seed=1)
        first = analysis.simulate(10, 5)
        second = analysis.simulate(10, 5)
        assert np.array_equal(first.eigenvalues, second.eigenvalues)

    def test_shared_generator_advances(self):
        analysis = ParallelAnalysis(rep=5, seed=np.random.default_rng(1))
        first = analysis.simulate(10, 5)
        second = analysis.simulate(10, 5)
        assert not np.array_equal(first.eigenvalues, second.eigenvalues)
        assert analysis.seed is None

    @pytest.mark.parametrize("shape", [(12, 4), (5, 9)])
    def test_matches_correlation_matrix(self, shape):
        data = np.random.default_rng(4).standard_normal(shape)
        expected = np.linalg.eigvalsh(np.corrcoef(data, rowvar=False))[::-1]
        r = min(shape)
        assert np.allclose(correlation_spectrum(data), expected[:r], atol=1e-10)

    def test_wide_table_keeps_leading_ranks(self):
        result = ParallelAnalysis(rep=10, seed=6).simulate(6, 400)
        assert result.eigenvalues.shape == (10, 6)
        assert np.allclose(result.eigenvalues.sum(axis=1), 400.0)
        assert result.qevpea.shape == (6,)

    def test_plausible_noise_floor(self):
        result = ParallelAnalysis(rep=50).simulate(12, 6)
        assert result.qevpea[0] > 1.0
        assert (np.diff(result.qevpea) <= 1e-12).all()

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            ParallelAnalysis(rep=0)
        with pytest.raises(ValueError):
            ParallelAnalysis(cent=1.0)


class TestRetentionAdvisor:
    """Test the combined recommendation."""

    def test_worked_spectrum(self):
        advisor = RetentionAdvisor(rep=50, seed=5)
        rec = advisor.advise_spectrum(WORKED, n_subjects=4, n_variables=5)
        assert rec[KAISER_GUTTMAN] == 2
        assert rec[JOLLIFFE] == 2
        assert rec[BROKEN_STICK] == 1
        assert rec[ACCELERATION_FACTOR] == 1
        assert rec[OPTIMAL_COORDINATES] == 2
        assert 2 <= rec[PARALLEL_ANALYSIS] <= 4

    def test_all_heuristics_in_order(self):
        rec = RetentionAdvisor(rep=20, seed=5).advise_spectrum(WORKED, 4, 5)
        assert tuple(rec.counts) == HEURISTICS
        assert len(rec) == 6
        assert rec.reference.shape == WORKED.shape
        assert rec.broken_stick.shape == WORKED.shape

    def test_failed_rule_is_recorded(self):
        rec = RetentionAdvisor(rep=20, seed=5).advise_spectrum([1.0, 1.0, 1.0, 1.0], 6, 4)
        assert BROKEN_STICK not in rec
        assert rec.failures[BROKEN_STICK].reason == "first_component"
        assert KAISER_GUTTMAN in rec

        frame = rec.to_frame()
        row = frame[frame["heuristic"] == BROKEN_STICK].iloc[0]
        assert row["note"] == "first_component"
        assert frame["components"].isna().sum() == 1

    def test_seeded_advisor_repeatable(self):
        rng = np.random.default_rng(8)
        table = DataTable(values=rng.lognormal(size=(6, 8)), labels=tuple("abcdef"))
        model = decompose(table)
        advisor = RetentionAdvisor(rep=20, seed=7)
        first = advisor.advise(model)
        second = advisor.advise(model)
        assert np.array_equal(first.reference, second.reference)
        assert first.as_dict() == second.as_dict()

    def test_spectrum_longer_than_variables(self):
        with pytest.raises(ValueError):
            RetentionAdvisor(rep=5).advise_spectrum(WORKED, 10, 3)


class TestRetentionChoice:
    """Test selection policies and validation of k."""

    def test_policies(self):
        rec = _make_recommendation()
        assert rec.choose("median") == 2
        assert rec.choose("min") == 1
        assert rec.choose("max") == 3
        assert rec.choose(JOLLIFFE) == 3

    def test_median_takes_floor(self):
        rec = RetentionRecommendation(
            counts={KAISER_GUTTMAN: 1, JOLLIFFE: 2},
            eigenvalues=np.array([3.0, 1.0, 0.5]),
        )
        assert rec.choose("median") == 1

    def test_clipped_to_component_count(self):
        rec = _make_recommendation()
        assert rec.choose("max", n_components=2) == 2

    def test_clipped_to_one(self):
        rec = RetentionRecommendation(
            counts={KAISER_GUTTMAN: 0},
            eigenvalues=np.array([1.0, 1.0]),
        )
        assert rec.choose(KAISER_GUTTMAN) == 1

    def test_failed_heuristic_policy(self):
        rec = _make_recommendation(
            **{BROKEN_STICK: NoRetentionCrossingError("no_crossing")}
        )
        with pytest.raises(NoRetentionCrossingError):
            rec.choose(BROKEN_STICK)
        assert rec.choose("median") == 2

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            _make_recommendation().choose("mode")

    def test_validate_choice(self):
        assert validate_choice(3, 5) == 3
        for k in [0, 6, -1, 2.5, True, None, float("nan"), float("inf"), "2"]:
            with pytest.raises(InvalidRetentionChoiceError):
                validate_choice(k, 5)
