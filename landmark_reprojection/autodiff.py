"""
Jacobians of functions over flat parameter blocks.

`jacobians` evaluates a function once on jets and reads off exact
derivatives; `numeric_jacobians` uses central finite differences and is
meant for gradient checking.

A function handed to these helpers takes one argument per parameter block
and returns a sequence of scalar outputs (floats or jets).
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import numpy as np

from .jet import Jet, seed_blocks


def _split_columns(matrix: np.ndarray, blocks: Sequence[Sequence]) -> List[np.ndarray]:
    out = []
    offset = 0
    for block in blocks:
        out.append(matrix[:, offset:offset + len(block)])
        offset += len(block)
    return out


def collect_jets(
    outputs: Sequence,
    *blocks: Sequence,
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Split jet outputs into values and per-block Jacobians.

    Args:
        outputs: Scalar outputs (jets seeded by seed_blocks(*blocks), or plain numbers)
        *blocks: The parameter blocks the jets were seeded from

    Returns:
        Same layout as `jacobians`
    """
    outputs = list(outputs)
    size = sum(len(block) for block in blocks)

    values = np.zeros(len(outputs))
    J = np.zeros((len(outputs), size))
    for i, out in enumerate(outputs):
        if isinstance(out, Jet):
            values[i] = out.a
            J[i] = out.v
        else:
            values[i] = out

    return values, _split_columns(J, blocks)


def jacobians(
    func: Callable[..., Sequence],
    *blocks: Sequence,
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Evaluate a function and its Jacobians with forward-mode differentiation.

    Args:
        func: Function of the parameter blocks returning a sequence of outputs
        *blocks: Parameter blocks at which to evaluate

    Returns:
        Tuple of:
            - values: (m,) array of outputs
            - jacobians: one (m, len(block)) array per block
    """
    jet_blocks, _ = seed_blocks(*blocks)
    return collect_jets(func(*jet_blocks), *blocks)


def numeric_jacobians(
    func: Callable[..., Sequence],
    *blocks: Sequence,
    step: float = 1e-6,
) -> Tuple[np.ndarray, List[np.ndarray]]:
    """
    Central finite-difference Jacobians.

    Each parameter p is perturbed by h = step * max(1, |p|).

    Args:
        func: Function of the parameter blocks returning a sequence of outputs
        *blocks: Parameter blocks at which to evaluate
        step: Relative step size

    Returns:
        Same layout as `jacobians`
    """
    base = [np.array(block, dtype=np.float64) for block in blocks]
    values = np.asarray(func(*base), dtype=np.float64)

    out = []
    for b, block in enumerate(base):
        J = np.zeros((len(values), len(block)))
        for k in range(len(block)):
            h = step * max(1.0, abs(block[k]))
            plus = [p.copy() for p in base]
            minus = [p.copy() for p in base]
            plus[b][k] += h
            minus[b][k] -= h
            f_plus = np.asarray(func(*plus), dtype=np.float64)
            f_minus = np.asarray(func(*minus), dtype=np.float64)
            J[:, k] = (f_plus - f_minus) / (2 * h)
        out.append(J)

    return values, out


@dataclass
class GradientCheckResult:
    """Comparison of jet and finite-difference Jacobians."""
    max_abs_error: float
    max_rel_error: float
    ok: bool
    jacobians: List[np.ndarray]
    numeric: List[np.ndarray]


def check_gradients(
    func: Callable[..., Sequence],
    *blocks: Sequence,
    rtol: float = 1e-5,
    atol: float = 1e-7,
    step: float = 1e-6,
) -> GradientCheckResult:
    """
    Compare jet Jacobians against central finite differences.

    An entry passes if |J - N| <= atol + rtol * |N|.

    Args:
        func: Function of the parameter blocks returning a sequence of outputs
        *blocks: Parameter blocks at which to evaluate
        rtol: Relative tolerance
        atol: Absolute tolerance
        step: Finite-difference relative step

    Returns:
        GradientCheckResult
    """
    _, analytic = jacobians(func, *blocks)
    _, numeric = numeric_jacobians(func, *blocks, step=step)

    max_abs = 0.0
    max_rel = 0.0
    ok = True
    for J, N in zip(analytic, numeric):
        if J.size == 0:
            continue
        diff = np.abs(J - N)
        max_abs = max(max_abs, float(diff.max()))
        scale = np.maximum(np.abs(N), np.finfo(np.float64).tiny)
        max_rel = max(max_rel, float((diff / scale).max()))
        ok = ok and bool(np.all(diff <= atol + rtol * np.abs(N)))

    return GradientCheckResult(
        max_abs_error=max_abs,
        max_rel_error=max_rel,
        ok=ok,
        jacobians=analytic,
        numeric=numeric,
    )
