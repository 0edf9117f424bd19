"""
Tests for the reprojection residual functor.
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from landmark_reprojection import residuals
from landmark_reprojection.autodiff import numeric_jacobians
from landmark_reprojection.errors import DegenerateProjectionError
from landmark_reprojection.jet import Jet
from landmark_reprojection.layout import make_intrinsics, make_pose
from landmark_reprojection.residuals import DegeneratePolicy, ReprojectionResidual
from landmark_reprojection.transforms import landmark_to_image


@pytest.fixture
def intrinsics():
    return make_intrinsics(f=600.0, u0=320.0, v0=240.0, alpha=1.0, beta=1.0)


@pytest.fixture
def scene(intrinsics):
    """A landmark 5 m in front of a slightly rotated camera, and one observed point."""
    lm_pose = make_pose(0.3, -0.2, 5.0, 0.05, -0.1, 0.2)
    cam_pose = make_pose(0.1, 0.0, -0.5, 0.01, 0.02, -0.03)
    point = (0.15, -0.1)
    pixel = landmark_to_image(*point, lm_pose, cam_pose, intrinsics).unwrap()
    return point, pixel, lm_pose, cam_pose


class TestReprojectionResidual:

    def test_zero_at_observation(self, scene, intrinsics):
        point, pixel, lm_pose, cam_pose = scene
        residual = ReprojectionResidual(point, pixel)
        assert_allclose(residual(lm_pose, cam_pose, intrinsics), [0.0, 0.0], atol=1e-9)

    def test_offset_measurement(self, scene, intrinsics):
        point, pixel, lm_pose, cam_pose = scene
        residual = ReprojectionResidual(point, (pixel[0] + 2.0, pixel[1] - 3.0))
        assert_allclose(residual(lm_pose, cam_pose, intrinsics), [-2.0, 3.0], atol=1e-9)

    def test_evaluate_jacobians(self, scene, intrinsics):
        """Jet Jacobians of the residual agree with finite differences."""
        point, pixel, lm_pose, cam_pose = scene
        residual = ReprojectionResidual(point, (pixel[0] + 1.0, pixel[1] + 1.0))

        values, blocks, valid = residual.evaluate(lm_pose, cam_pose, intrinsics)
        _, numeric = numeric_jacobians(residual, lm_pose, cam_pose, intrinsics)

        assert valid
        assert_allclose(values, [-1.0, -1.0], atol=1e-9)
        assert [J.shape for J in blocks] == [(2, 6)] * 3
        for J, N in zip(blocks, numeric):
            assert_allclose(J, N, rtol=1e-5, atol=1e-5)

    def test_evaluate_projects_once(self, scene, intrinsics, monkeypatch):
        """Values, Jacobians and validity all come from one jet projection."""
        point, pixel, lm_pose, cam_pose = scene
        calls = []

        def counting(*args, **kwargs):
            calls.append(args)
            return landmark_to_image(*args, **kwargs)

        monkeypatch.setattr(residuals, "landmark_to_image", counting)
        residual = ReprojectionResidual(point, pixel)
        _, _, valid = residual.evaluate(lm_pose, cam_pose, intrinsics)

        assert valid
        assert len(calls) == 1
        assert isinstance(calls[0][2][0], Jet)

    def test_policy_from_string(self):
        residual = ReprojectionResidual((0.0, 0.0), (0.0, 0.0), policy="skip")
        assert residual.policy is DegeneratePolicy.SKIP
        assert "skip" in repr(residual)


class TestDegeneratePolicies:
    """Identity landmark seen from an identity camera: the landmark origin has zero depth."""

    @pytest.fixture
    def blocks(self, intrinsics):
        return make_pose(), make_pose(), intrinsics

    def test_skip(self, blocks):
        residual = ReprojectionResidual((0.0, 0.0), (320.0, 240.0), policy=DegeneratePolicy.SKIP)
        assert residual(*blocks) == [0.0, 0.0]
        assert residual.is_degenerate(*blocks)

    def test_penalty(self, blocks):
        residual = ReprojectionResidual(
            (0.0, 0.0), (320.0, 240.0), policy=DegeneratePolicy.PENALTY, penalty=50.0
        )
        assert residual(*blocks) == [50.0, 50.0]

    def test_raise(self, blocks):
        residual = ReprojectionResidual((0.0, 0.0), (320.0, 240.0), policy=DegeneratePolicy.RAISE)
        with pytest.raises(DegenerateProjectionError):
            residual(*blocks)

    def test_evaluate_degenerate_has_zero_jacobians(self, blocks):
        residual = ReprojectionResidual((0.0, 0.0), (320.0, 240.0), policy=DegeneratePolicy.PENALTY)
        values, jacobians, valid = residual.evaluate(*blocks)

        assert not valid
        assert_allclose(values, [1e3, 1e3])
        for J in jacobians:
            assert not np.any(J)

    def test_never_returns_nan(self, blocks):
        for policy in (DegeneratePolicy.SKIP, DegeneratePolicy.PENALTY):
            residual = ReprojectionResidual((0.0, 0.0), (320.0, 240.0), policy=policy)
            assert np.all(np.isfinite(residual(*blocks)))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
