"""Unit tests for host-side tuples and 4x4 transforms.

Tests cover:
- Point/vector construction and vector helpers
- Matrix multiplication, transpose, determinant and inverse
- Singular matrices raising ConstructionError
- Translation, scaling, rotation and shearing builders
- Chained transforms applied right to left
- The view transform, including degenerate inputs
"""

import math

import numpy as np
import pytest

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import (
    Matrix,
    identity,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    shearing,
    translation,
    view_transform,
)
from src.glint.core.tuples import (
    approx_equal,
    as_color,
    cross,
    dot,
    is_point,
    is_vector,
    magnitude,
    normalize,
    point,
    reflect,
    vector,
)

SQRT2_2 = math.sqrt(2.0) / 2.0


class TestTuples:
    """Tests for point, vector and color helpers."""

    def test_point_and_vector_w(self):
        """Points carry w = 1, vectors w = 0."""
        assert is_point(point(4.3, -4.2, 3.1))
        assert is_vector(vector(4.3, -4.2, 3.1))
        assert not is_vector(point(0.0, 0.0, 0.0))

    def test_point_minus_point_is_vector(self):
        v = point(3, 2, 1) - point(5, 6, 7)
        assert approx_equal(v, vector(-2, -4, -6))
        assert is_vector(v)

    def test_magnitude_and_normalize(self):
        assert abs(magnitude(vector(1, 2, 3)) - math.sqrt(14.0)) < 1e-9
        n = normalize(vector(1, 2, 3))
        assert approx_equal(n, vector(0.26726, 0.53452, 0.80178))
        assert abs(magnitude(n) - 1.0) < 1e-9

    def test_normalize_zero_vector_raises(self):
        with pytest.raises(ValueError):
            normalize(vector(0, 0, 0))

    def test_dot_and_cross(self):
        a = vector(1, 2, 3)
        b = vector(2, 3, 4)
        assert dot(a, b) == 20.0
        assert approx_equal(cross(a, b), vector(-1, 2, -1))
        assert approx_equal(cross(b, a), vector(1, -2, 1))

    def test_reflect_slanted_surface(self):
        """A vector hitting a 45 degree surface reflects straight back out."""
        r = reflect(vector(0, -1, 0), vector(SQRT2_2, SQRT2_2, 0))
        assert approx_equal(r, vector(1, 0, 0))

    def test_as_color_validation(self):
        assert as_color([0.5, 1, 2]) == (0.5, 1.0, 2.0)
        with pytest.raises(ValueError):
            as_color([1.0, 2.0])
        with pytest.raises(ValueError):
            as_color([1.0, math.nan, 0.0])


class TestMatrixOperations:
    """Tests for matrix arithmetic."""

    def test_multiply_matrices(self):
        a = Matrix([[1, 2, 3, 4], [5, 6, 7, 8], [9, 8, 7, 6], [5, 4, 3, 2]])
        b = Matrix([[-2, 1, 2, 3], [3, 2, 1, -1], [4, 3, 6, 5], [1, 2, 7, 8]])
        expected = Matrix(
            [[20, 22, 50, 48], [44, 54, 114, 108], [40, 58, 110, 102], [16, 26, 46, 42]]
        )
        assert a @ b == expected

    def test_multiply_by_tuple(self):
        a = Matrix([[1, 2, 3, 4], [2, 4, 4, 2], [8, 6, 4, 1], [0, 0, 0, 1]])
        assert approx_equal(a @ np.array([1.0, 2.0, 3.0, 1.0]), [18, 24, 33, 1])

    def test_identity_is_neutral(self):
        a = Matrix([[0, 1, 2, 4], [1, 2, 4, 8], [2, 4, 8, 16], [4, 8, 16, 32]])
        assert a @ identity() == a

    def test_transpose(self):
        a = Matrix([[0, 9, 3, 0], [9, 8, 0, 8], [1, 8, 5, 3], [0, 0, 5, 8]])
        assert a.transpose() == Matrix([[0, 9, 1, 0], [9, 8, 8, 0], [3, 0, 5, 5], [0, 8, 3, 8]])
        assert identity().transpose() == identity()

    def test_determinant(self):
        a = Matrix([[-2, -8, 3, 5], [-3, 1, 7, 3], [1, 2, -9, 6], [-6, 7, 7, -9]])
        assert abs(a.determinant() - (-4071.0)) < 1e-6

    def test_inverse(self):
        a = Matrix([[-5, 2, 6, -8], [1, -5, 1, 8], [7, 7, -6, -7], [1, -3, 7, 4]])
        expected = Matrix(
            [
                [0.21805, 0.45113, 0.24060, -0.04511],
                [-0.80827, -1.45677, -0.44361, 0.52068],
                [-0.07895, -0.22368, -0.05263, 0.19737],
                [-0.52256, -0.81391, -0.30075, 0.30639],
            ]
        )
        assert a.inverse() == expected

    def test_product_times_inverse_restores(self):
        """C = A * B, then C * inverse(B) = A."""
        a = Matrix([[3, -9, 7, 3], [3, -8, 2, -9], [-4, 4, 4, 1], [-6, 5, -1, 1]])
        b = Matrix([[8, 2, 2, 2], [3, -1, 7, 0], [7, 0, 5, 4], [6, -2, 0, 5]])
        assert (a @ b) @ b.inverse() == a
        assert a @ a.inverse() == identity()

    @pytest.mark.parametrize(
        "m",
        [
            Matrix([[-5, 2, 6, -8], [1, -5, 1, 8], [7, 7, -6, -7], [1, -3, 7, 4]]),
            rotation_x(0.7) @ shearing(1, 0, 0, 1, 0.5, 0) @ scaling(2, 0.5, 3) @ translation(1, -2, 5),
            translation(-3, 4, 1) @ rotation_z(math.pi / 3) @ rotation_y(1.1) @ scaling(0.25, 4, 1),
            view_transform((1, 3, 2), (4, -2, 8), (1, 1, 0)),
        ],
    )
    def test_inverse_of_inverse_restores(self, m):
        assert m.inverse().inverse() == m

    def test_singular_matrix_raises(self):
        a = Matrix([[-4, 2, -2, -3], [9, 6, 2, 6], [0, -5, 1, -5], [0, 0, 0, 0]])
        assert not a.is_invertible()
        with pytest.raises(ConstructionError):
            a.inverse()

    def test_construction_error_is_value_error(self):
        with pytest.raises(ValueError):
            scaling(0, 1, 1).inverse()

    def test_invalid_shape_rejected(self):
        with pytest.raises(ValueError):
            Matrix([[1, 2], [3, 4]])

    def test_matrices_are_unhashable(self):
        with pytest.raises(TypeError):
            hash(identity())


class TestTransformBuilders:
    """Tests for translation, scaling, rotation and shearing."""

    def test_translation_moves_points_not_vectors(self):
        t = translation(5, -3, 2)
        assert approx_equal(t @ point(-3, 4, 5), point(2, 1, 7))
        assert approx_equal(t.inverse() @ point(-3, 4, 5), point(-8, 7, 3))
        assert approx_equal(t @ vector(-3, 4, 5), vector(-3, 4, 5))

    def test_scaling(self):
        s = scaling(2, 3, 4)
        assert approx_equal(s @ point(-4, 6, 8), point(-8, 18, 32))
        assert approx_equal(s @ vector(-4, 6, 8), vector(-8, 18, 32))
        assert approx_equal(s.inverse() @ vector(-4, 6, 8), vector(-2, 2, 2))
        assert approx_equal(scaling(-1, 1, 1) @ point(2, 3, 4), point(-2, 3, 4))

    def test_rotation_x(self):
        p = point(0, 1, 0)
        assert approx_equal(rotation_x(math.pi / 4) @ p, point(0, SQRT2_2, SQRT2_2))
        assert approx_equal(rotation_x(math.pi / 2) @ p, point(0, 0, 1))
        assert approx_equal(rotation_x(math.pi / 4).inverse() @ p, point(0, SQRT2_2, -SQRT2_2))

    def test_rotation_y(self):
        p = point(0, 0, 1)
        assert approx_equal(rotation_y(math.pi / 4) @ p, point(SQRT2_2, 0, SQRT2_2))
        assert approx_equal(rotation_y(math.pi / 2) @ p, point(1, 0, 0))

    def test_rotation_z(self):
        p = point(0, 1, 0)
        assert approx_equal(rotation_z(math.pi / 4) @ p, point(-SQRT2_2, SQRT2_2, 0))
        assert approx_equal(rotation_z(math.pi / 2) @ p, point(-1, 0, 0))

    @pytest.mark.parametrize(
        "params,expected",
        [
            ((1, 0, 0, 0, 0, 0), (5, 3, 4)),
            ((0, 1, 0, 0, 0, 0), (6, 3, 4)),
            ((0, 0, 1, 0, 0, 0), (2, 5, 4)),
            ((0, 0, 0, 1, 0, 0), (2, 7, 4)),
            ((0, 0, 0, 0, 1, 0), (2, 3, 6)),
            ((0, 0, 0, 0, 0, 1), (2, 3, 7)),
        ],
    )
    def test_shearing(self, params, expected):
        assert approx_equal(shearing(*params) @ point(2, 3, 4), point(*expected))

    def test_chained_transforms_apply_right_to_left(self):
        p = point(1, 0, 1)
        a = rotation_x(math.pi / 2)
        b = scaling(5, 5, 5)
        c = translation(10, 5, 7)
        stepwise = c @ (b @ (a @ p))
        assert approx_equal(stepwise, point(15, 0, 7))
        assert approx_equal((c @ b @ a) @ p, point(15, 0, 7))


class TestViewTransform:
    """Tests for the world-to-camera view transform."""

    def test_default_orientation_is_identity(self):
        t = view_transform((0, 0, 0), (0, 0, -1), (0, 1, 0))
        assert t == identity()

    def test_looking_in_positive_z_mirrors(self):
        t = view_transform((0, 0, 0), (0, 0, 1), (0, 1, 0))
        assert t == scaling(-1, 1, -1)

    def test_moves_the_world(self):
        t = view_transform((0, 0, 8), (0, 0, 0), (0, 1, 0))
        assert t == translation(0, 0, -8)

    def test_arbitrary_view(self):
        t = view_transform((1, 3, 2), (4, -2, 8), (1, 1, 0))
        expected = Matrix(
            [
                [-0.50709, 0.50709, 0.67612, -2.36643],
                [0.76772, 0.60609, 0.12122, -2.82843],
                [-0.35857, 0.59761, -0.71714, 0.00000],
                [0.00000, 0.00000, 0.00000, 1.00000],
            ]
        )
        assert t == expected

    def test_eye_equals_target_raises(self):
        with pytest.raises(ConstructionError):
            view_transform((1, 1, 1), (1, 1, 1), (0, 1, 0))

    def test_up_parallel_to_forward_raises(self):
        with pytest.raises(ConstructionError):
            view_transform((0, 0, 0), (0, 5, 0), (0, 1, 0))

    def test_up_nearly_parallel_to_forward_raises(self):
        with pytest.raises(ConstructionError):
            view_transform((0, 0, 0), (0, 5, 0), (0, 1, 1e-6))

    def test_tilted_up_is_not_renormalized(self):
        t = view_transform((0, 0, 0), (0, 0, -1), (0, 1, 1))
        left_row = np.array(t.tolist()[0][:3])
        assert abs(np.linalg.norm(left_row) - math.sqrt(0.5)) < 1e-5
