"""
Configuration module for landmark / camera pose refinement.

Handles loading and validation of solver options from dictionaries and YAML
files.
"""

import yaml
from pathlib import Path
from dataclasses import dataclass, asdict
from typing import Any, Dict
import logging

from .transforms import DEFAULT_MIN_DEPTH

logger = logging.getLogger(__name__)

LOSS_FUNCTIONS = ('linear', 'huber', 'soft_l1', 'cauchy', 'arctan')
DEGENERATE_POLICIES = ('skip', 'penalty', 'raise')


@dataclass
class SolverOptions:
    """
    Options for the least-squares refinement.

    Attributes:
        max_nfev: Maximum number of residual evaluations
        ftol: Tolerance on the change of the cost function
        xtol: Tolerance on the change of the parameters
        gtol: Tolerance on the norm of the gradient
        loss: Robust loss ('linear', 'huber', 'soft_l1', 'cauchy', 'arctan')
        f_scale: Inlier residual scale for robust losses (pixels)
        optimize_intrinsics: Refine the intrinsics block along with the poses
        degenerate_policy: What a residual does on zero camera depth
            ('skip', 'penalty' or 'raise')
        degenerate_penalty: Residual value used by the 'penalty' policy (pixels)
        min_depth: Depth magnitude treated as zero
        verbose: Verbosity passed to scipy (0, 1 or 2)
    """
    max_nfev: int = 100
    ftol: float = 1e-8
    xtol: float = 1e-8
    gtol: float = 1e-8
    loss: str = 'linear'
    f_scale: float = 1.0
    optimize_intrinsics: bool = False
    degenerate_policy: str = 'penalty'
    degenerate_penalty: float = 1e3
    min_depth: float = DEFAULT_MIN_DEPTH
    verbose: int = 0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """
        Check option values.

        Raises:
            ValueError: If an option is out of range or unknown
        """
        if self.loss not in LOSS_FUNCTIONS:
            raise ValueError(f"Unknown loss '{self.loss}', expected one of {LOSS_FUNCTIONS}")
        if self.degenerate_policy not in DEGENERATE_POLICIES:
            raise ValueError(
                f"Unknown degenerate_policy '{self.degenerate_policy}', "
                f"expected one of {DEGENERATE_POLICIES}"
            )
        for name in ('ftol', 'xtol', 'gtol', 'f_scale'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_nfev < 1:
            raise ValueError(f"max_nfev must be at least 1, got {self.max_nfev}")
        if self.min_depth < 0:
            raise ValueError(f"min_depth must be non-negative, got {self.min_depth}")
        if self.verbose not in (0, 1, 2):
            raise ValueError(f"verbose must be 0, 1 or 2, got {self.verbose}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SolverOptions":
        """
        Build options from a dictionary.

        Args:
            data: Mapping of option names to values

        Returns:
            SolverOptions

        Raises:
            ValueError: For unknown keys or invalid values
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown solver options: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, config_path: str) -> "SolverOptions":
        """
        Load solver options from a YAML file.

        The options may sit at the top level or under a 'solver' key.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            SolverOptions with loaded parameters

        Example YAML structure:
            solver:
              max_nfev: 200
              loss: huber
              f_scale: 2.0
              optimize_intrinsics: false
              degenerate_policy: penalty
              degenerate_penalty: 1000.0
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loading solver options from {config_path}")

        if 'solver' in data:
            data = data['solver'] or {}

        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self, config_path: str) -> None:
        """Save solver options to a YAML file."""
        with open(config_path, 'w') as f:
            yaml.dump({'solver': self.to_dict()}, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Solver options saved to {config_path}")
