"""
Tests for solver option loading and validation.
"""

import pytest
import yaml

from landmark_reprojection.config import SolverOptions
from landmark_reprojection.transforms import DEFAULT_MIN_DEPTH


class TestSolverOptions:

    def test_defaults(self):
        options = SolverOptions()
        assert options.loss == 'linear'
        assert options.degenerate_policy == 'penalty'
        assert options.optimize_intrinsics is False
        assert options.min_depth == DEFAULT_MIN_DEPTH

    @pytest.mark.parametrize("kwargs", [
        {'loss': 'l2'},
        {'degenerate_policy': 'ignore'},
        {'ftol': 0.0},
        {'f_scale': -1.0},
        {'max_nfev': 0},
        {'min_depth': -1e-3},
        {'verbose': 3},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            SolverOptions(**kwargs)

    def test_from_dict(self):
        options = SolverOptions.from_dict({'loss': 'huber', 'f_scale': 2.0, 'max_nfev': 50})
        assert options.loss == 'huber'
        assert options.f_scale == 2.0
        assert options.max_nfev == 50

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="max_iterations"):
            SolverOptions.from_dict({'max_iterations': 10})


class TestYaml:

    def test_from_yaml_with_solver_section(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text(
            "solver:\n"
            "  loss: soft_l1\n"
            "  optimize_intrinsics: true\n"
            "  degenerate_policy: skip\n"
        )

        options = SolverOptions.from_yaml(str(path))

        assert options.loss == 'soft_l1'
        assert options.optimize_intrinsics is True
        assert options.degenerate_policy == 'skip'

    def test_from_yaml_top_level(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("max_nfev: 20\n")
        assert SolverOptions.from_yaml(str(path)).max_nfev == 20

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert SolverOptions.from_yaml(str(path)) == SolverOptions()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            SolverOptions.from_yaml(str(tmp_path / "missing.yaml"))

    def test_to_yaml(self, tmp_path):
        path = tmp_path / "out.yaml"
        SolverOptions(loss='cauchy', f_scale=3.0).to_yaml(str(path))

        data = yaml.safe_load(path.read_text())
        assert data['solver']['loss'] == 'cauchy'
        assert SolverOptions.from_yaml(str(path)).f_scale == 3.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
