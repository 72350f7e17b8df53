"""
Unit tests for doc_similarity.similarity.cosine module.
"""

import numpy as np
import pytest

from doc_similarity.exceptions import DegenerateVector, DimensionMismatch
from doc_similarity.similarity.cosine import (
    compute_cross_similarity_matrix,
    cosine_similarity,
    dot,
    find_degenerate_rows,
    magnitude,
    validate_embedding,
    validate_similarity_score,
)


class TestPrimitives:
    """Tests for dot and magnitude."""

    def test_dot(self):
        assert dot([1.0, 2.0, 3.0], [4.0, 5.0, 6.0]) == pytest.approx(32.0)

    def test_dot_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            dot([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_magnitude(self):
        assert magnitude([3.0, 4.0]) == pytest.approx(5.0)

    def test_magnitude_zero_vector(self):
        assert magnitude([0.0, 0.0]) == 0.0


class TestCosineSimilarity:
    """Tests for cosine_similarity function."""

    @pytest.mark.parametrize(
        "vec",
        [[1.0, 2.0, 3.0], [0.5], [-3.0, 0.0, 7.5, 1e-3], np.array([0.1] * 1536)],
    )
    def test_self_similarity_is_one(self, vec):
        assert cosine_similarity(vec, vec) == pytest.approx(1.0)

    def test_symmetry(self):
        rng = np.random.default_rng(42)
        for _ in range(20):
            a = rng.normal(size=12)
            b = rng.normal(size=12)
            assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0, 0.0], [0.0, 1.0, 0.0]) == pytest.approx(0.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_result_within_bounds(self):
        score = cosine_similarity([1e-8, 1e-8], [1e-8, 1e-8])
        assert -1.0 <= score <= 1.0

    def test_dimension_mismatch_raises(self):
        with pytest.raises(DimensionMismatch) as exc_info:
            cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0])
        assert exc_info.value.len_a == 3
        assert exc_info.value.len_b == 2

    def test_empty_vectors_raise(self):
        with pytest.raises(DimensionMismatch):
            cosine_similarity([], [])

    def test_zero_vector_raises(self):
        with pytest.raises(DegenerateVector):
            cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0])

    def test_zero_vector_second_argument_raises(self):
        with pytest.raises(DegenerateVector, match="second vector"):
            cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0])

    def test_errors_are_value_errors(self):
        """Callers catching ValueError still see vector errors."""
        with pytest.raises(ValueError):
            cosine_similarity([0.0], [1.0])

    def test_never_returns_nan(self):
        with pytest.raises(DegenerateVector):
            cosine_similarity([0.0, 0.0], [0.0, 0.0])


class TestComputeCrossSimilarityMatrix:
    """Tests for compute_cross_similarity_matrix function."""

    def test_shape(self):
        a = [[1.0, 0.0], [0.0, 1.0], [1.0, 1.0]]
        b = [[1.0, 0.0], [0.5, 0.5]]
        result = compute_cross_similarity_matrix(a, b)
        assert result.shape == (3, 2)

    def test_matches_pairwise_cosine(self):
        rng = np.random.default_rng(7)
        a = rng.normal(size=(3, 5)).tolist()
        b = rng.normal(size=(4, 5)).tolist()
        result = compute_cross_similarity_matrix(a, b)
        for i, vec_a in enumerate(a):
            for j, vec_b in enumerate(b):
                assert result[i, j] == pytest.approx(cosine_similarity(vec_a, vec_b))

    def test_empty_side(self):
        result = compute_cross_similarity_matrix([], [[1.0, 0.0]])
        assert result.shape == (0, 1)
        assert result.size == 0

    def test_both_empty(self):
        assert compute_cross_similarity_matrix([], []).size == 0

    def test_mixed_dimensions_raise(self):
        with pytest.raises(DimensionMismatch):
            compute_cross_similarity_matrix([[1.0, 0.0]], [[1.0, 0.0, 0.0]])

    def test_zero_vector_raises(self):
        with pytest.raises(DegenerateVector, match="vector 1 of the second set"):
            compute_cross_similarity_matrix([[1.0, 0.0]], [[1.0, 1.0], [0.0, 0.0]])


class TestNumericalStability:
    """Extreme magnitudes and non-finite values."""

    def test_large_components_do_not_overflow(self):
        assert cosine_similarity([1e200, 1e200], [1e200, -1e200]) == pytest.approx(0.0, abs=1e-12)
        assert cosine_similarity([1e300, 2e300], [2e300, 4e300]) == pytest.approx(1.0)

    def test_tiny_components_are_not_degenerate(self):
        assert cosine_similarity([1e-200, 1e-200], [1e-200, 1e-200]) == pytest.approx(1.0)
        assert cosine_similarity([1e-320, 0.0], [0.0, 1e-320]) == pytest.approx(0.0)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_input_raises(self, bad):
        with pytest.raises(DegenerateVector, match="first vector contains NaN or Inf"):
            cosine_similarity([bad, 1.0], [1.0, 0.0])
        with pytest.raises(DegenerateVector, match="second vector"):
            cosine_similarity([1.0, 0.0], [1.0, bad])

    def test_matrix_large_and_tiny_components(self):
        matrix = compute_cross_similarity_matrix(
            [[1e200, 1e200], [1e-200, 0.0]], [[1e200, -1e200], [3e-300, 0.0]]
        )
        assert matrix == pytest.approx(np.array([[0.0, 2**-0.5], [2**-0.5, 1.0]]))
        assert np.all(np.isfinite(matrix))

    def test_matrix_non_finite_input_raises(self):
        with pytest.raises(DegenerateVector, match="vector 0 of the first set contains NaN"):
            compute_cross_similarity_matrix([[float("nan"), 1.0]], [[1.0, 0.0]])
        with pytest.raises(DegenerateVector, match="vector 1 of the second set"):
            compute_cross_similarity_matrix([[1.0, 0.0]], [[1.0, 0.0], [float("inf"), 0.0]])

    def test_magnitude_large_and_tiny(self):
        assert magnitude([3e200, 4e200]) == pytest.approx(5e200)
        assert magnitude([3e-200, 4e-200]) == pytest.approx(5e-200)

    def test_tiny_vector_not_reported_degenerate(self):
        assert find_degenerate_rows([[1e-320, 0.0], [0.0, 0.0]]) == [1]


class TestFindDegenerateRows:
    """Tests for find_degenerate_rows function."""

    def test_finds_zero_vectors(self):
        assert find_degenerate_rows([[1.0, 0.0], [0.0, 0.0], [0.0, 2.0], [0.0, 0.0]]) == [1, 3]

    def test_none_degenerate(self):
        assert find_degenerate_rows([[1.0], [2.0]]) == []


class TestValidateEmbedding:
    """Tests for validate_embedding function."""

    def test_valid_embedding(self):
        assert validate_embedding([0.1] * 1536) is True

    def test_none_embedding(self):
        assert validate_embedding(None) is False

    def test_empty_embedding(self):
        assert validate_embedding([]) is False

    def test_wrong_dimension(self):
        assert validate_embedding([0.1] * 100, expected_dimension=1536) is False

    def test_custom_dimension(self):
        assert validate_embedding([0.1] * 100, expected_dimension=100) is True

    def test_nan_values(self):
        assert validate_embedding([0.1] * 15 + [float("nan")]) is False

    def test_inf_values(self):
        assert validate_embedding([0.1] * 15 + [float("inf")]) is False


class TestValidateSimilarityScore:
    """Tests for validate_similarity_score function."""

    def test_valid_score(self):
        assert validate_similarity_score(0.5) is True
        assert validate_similarity_score(0.0) is True
        assert validate_similarity_score(1.0) is True
        assert validate_similarity_score(-0.5) is True

    def test_none_score(self):
        assert validate_similarity_score(None) is False

    def test_out_of_range_score(self):
        assert validate_similarity_score(1.5) is False
        assert validate_similarity_score(-1.5) is False

    def test_nan_score(self):
        assert validate_similarity_score(float("nan")) is False
