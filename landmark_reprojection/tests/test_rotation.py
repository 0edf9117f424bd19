"""
Tests for the axis-angle rotation primitive.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy.spatial.transform import Rotation

from landmark_reprojection.jet import Jet
from landmark_reprojection.rotation import (
    angle_axis_rotate_point,
    angle_axis_to_rotation_matrix,
    cross,
    dot,
    negate,
)


def is_rotation_matrix(R: np.ndarray, tol: float = 1e-9) -> bool:
    """Orthogonal with determinant +1."""
    return (
        R.shape == (3, 3)
        and np.allclose(R @ R.T, np.eye(3), atol=tol)
        and np.isclose(np.linalg.det(R), 1.0, atol=tol)
    )


class TestVectorHelpers:

    def test_cross(self):
        assert cross((1.0, 0.0, 0.0), (0.0, 1.0, 0.0)) == (0.0, 0.0, 1.0)
        assert_allclose(cross((1.0, 2.0, 3.0), (4.0, 5.0, 6.0)), np.cross([1, 2, 3], [4, 5, 6]))

    def test_dot(self):
        assert dot((1.0, 2.0, 3.0), (4.0, 5.0, 6.0)) == 32.0

    def test_negate(self):
        assert negate((0.1, -0.2, 0.3)) == (-0.1, 0.2, -0.3)


class TestAngleAxisRotatePoint:
    """Tests for Rodrigues rotation of a single point."""

    def test_zero_rotation(self):
        """Zero rotation returns the point unchanged."""
        assert angle_axis_rotate_point((0.0, 0.0, 0.0), (1.0, -2.0, 3.0)) == (1.0, -2.0, 3.0)

    @pytest.mark.parametrize("w", [
        [0.0, 0.0, np.pi / 2],
        [0.3, -0.2, 0.1],
        [1.0, 2.0, -0.5],
        [np.pi, 0.0, 0.0],
        [-2.5, 0.4, 1.9],
    ])
    def test_matches_scipy(self, w):
        """Agrees with scipy's rotation vector convention."""
        p = np.array([0.7, -1.3, 2.1])
        expected = Rotation.from_rotvec(w).apply(p)
        assert_allclose(angle_axis_rotate_point(w, p), expected, atol=1e-12)

    def test_small_angle_branch(self):
        """Below the threshold the first-order expansion is accurate."""
        w = np.array([1e-9, -2e-9, 5e-10])
        p = np.array([1.0, 2.0, 3.0])
        expected = Rotation.from_rotvec(w).apply(p)
        assert_allclose(angle_axis_rotate_point(w, p), expected, atol=1e-15)

    def test_preserves_norm(self):
        w = (0.4, 1.1, -0.6)
        p = (3.0, -4.0, 12.0)
        assert np.linalg.norm(angle_axis_rotate_point(w, p)) == pytest.approx(13.0, rel=1e-14)

    def test_negated_vector_inverts(self):
        w = (0.4, 1.1, -0.6)
        p = (3.0, -4.0, 12.0)
        back = angle_axis_rotate_point(negate(w), angle_axis_rotate_point(w, p))
        assert_allclose(back, p, atol=1e-12)

    def test_jet_derivative_at_zero_rotation(self):
        """
        At w = 0 the derivative of R(w) p with respect to w is -[p]x;
        the first-order branch reproduces it exactly.
        """
        w = [Jet.variable(0.0, i, 3) for i in range(3)]
        p = (1.0, 2.0, 3.0)
        result = angle_axis_rotate_point(w, p)

        J = np.array([r.v for r in result])
        p_cross = np.array([
            [0.0, -p[2], p[1]],
            [p[2], 0.0, -p[0]],
            [-p[1], p[0], 0.0],
        ])
        assert_allclose(J, -p_cross, atol=1e-15)

    def test_jet_values_match_float(self):
        w = (0.3, -0.2, 0.1)
        p = (0.7, -1.3, 2.1)
        w_jet = [Jet.variable(v, i, 3) for i, v in enumerate(w)]
        result = angle_axis_rotate_point(w_jet, p)
        assert_allclose([r.a for r in result], angle_axis_rotate_point(w, p), rtol=1e-15)


class TestAngleAxisToRotationMatrix:

    def test_identity(self):
        assert_allclose(angle_axis_to_rotation_matrix([0.0, 0.0, 0.0]), np.eye(3), atol=1e-15)

    @pytest.mark.parametrize("w", [[0.1, 0.2, 0.3], [np.pi / 2, 0.0, 0.0], [-1.0, 0.5, 2.0]])
    def test_valid_rotation(self, w):
        R = angle_axis_to_rotation_matrix(w)
        assert is_rotation_matrix(R)
        assert_allclose(R, Rotation.from_rotvec(w).as_matrix(), atol=1e-12)

    def test_matrix_matches_point_rotation(self):
        w = (0.5, -0.1, 0.8)
        p = np.array([1.5, 0.2, -0.7])
        assert_allclose(angle_axis_to_rotation_matrix(w) @ p, angle_axis_rotate_point(w, p), atol=1e-14)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
