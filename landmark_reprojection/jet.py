"""
Forward-mode dual numbers ("jets") for automatic differentiation.

A Jet carries a value ``a`` and a derivative vector ``v`` holding the partial
derivatives of that value with respect to N seeded parameters. Arithmetic on
jets applies the chain rule, so any function written with plain operators
and the ``sqrt`` / ``sin`` / ``cos`` helpers below evaluates both
on floats and on jets, and in the latter case yields exact Jacobians.

Derivative rules:
    (a, v) + (b, w) = (a + b, v + w)
    (a, v) * (b, w) = (a * b, b * v + a * w)
    (a, v) / (b, w) = (a / b, (v - (a / b) * w) / b)
    sqrt(a, v)      = (sqrt(a), v / (2 sqrt(a)))
    sin(a, v)       = (sin(a), cos(a) * v)
    cos(a, v)       = (cos(a), -sin(a) * v)
"""

import math
from numbers import Number
from typing import List, Sequence, Tuple

import numpy as np


class Jet:
    """Scalar value together with its gradient with respect to N parameters."""

    __slots__ = ("a", "v")

    # Make numpy scalars and arrays defer to the reflected Jet operators
    # instead of wrapping jets into object arrays.
    __array_ufunc__ = None

    def __init__(self, a, v):
        self.a = float(a)
        self.v = np.asarray(v, dtype=np.float64)

    @classmethod
    def constant(cls, value, size: int) -> "Jet":
        """Jet with a zero derivative vector."""
        return cls(value, np.zeros(size))

    @classmethod
    def variable(cls, value, index: int, size: int) -> "Jet":
        """Jet seeded as the ``index``-th of ``size`` independent parameters."""
        v = np.zeros(size)
        v[index] = 1.0
        return cls(value, v)

    @property
    def size(self) -> int:
        return self.v.shape[0]

    def __repr__(self) -> str:
        return f"Jet({self.a!r}, {self.v!r})"

    def __float__(self) -> float:
        return self.a

    # Arithmetic

    def __pos__(self) -> "Jet":
        return Jet(self.a, self.v)

    def __neg__(self) -> "Jet":
        return Jet(-self.a, -self.v)

    def __abs__(self) -> "Jet":
        return -self if self.a < 0 else +self

    def __add__(self, other):
        if isinstance(other, Jet):
            return Jet(self.a + other.a, self.v + other.v)
        if isinstance(other, Number):
            return Jet(self.a + other, self.v)
        return NotImplemented

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, Jet):
            return Jet(self.a - other.a, self.v - other.v)
        if isinstance(other, Number):
            return Jet(self.a - other, self.v)
        return NotImplemented

    def __rsub__(self, other):
        if isinstance(other, Number):
            return Jet(other - self.a, -self.v)
        return NotImplemented

    def __mul__(self, other):
        if isinstance(other, Jet):
            return Jet(self.a * other.a, other.a * self.v + self.a * other.v)
        if isinstance(other, Number):
            return Jet(self.a * other, self.v * other)
        return NotImplemented

    __rmul__ = __mul__

    def __truediv__(self, other):
        if isinstance(other, Jet):
            q = self.a / other.a
            return Jet(q, (self.v - q * other.v) / other.a)
        if isinstance(other, Number):
            return Jet(self.a / other, self.v / other)
        return NotImplemented

    def __rtruediv__(self, other):
        if isinstance(other, Number):
            q = other / self.a
            return Jet(q, -q / self.a * self.v)
        return NotImplemented

    # Comparisons look at the value part only.

    def __eq__(self, other):
        return self.a == value_of(other)

    def __ne__(self, other):
        return self.a != value_of(other)

    def __lt__(self, other):
        return self.a < value_of(other)

    def __le__(self, other):
        return self.a <= value_of(other)

    def __gt__(self, other):
        return self.a > value_of(other)

    def __ge__(self, other):
        return self.a >= value_of(other)

    __hash__ = None


def value_of(x) -> float:
    """Value part of a jet, or the number itself."""
    if isinstance(x, Jet):
        return x.a
    return x


def sqrt(x):
    if isinstance(x, Jet):
        s = math.sqrt(x.a)
        return Jet(s, x.v / (2.0 * s))
    return math.sqrt(x)


def sin(x):
    if isinstance(x, Jet):
        return Jet(math.sin(x.a), math.cos(x.a) * x.v)
    return math.sin(x)


def cos(x):
    if isinstance(x, Jet):
        return Jet(math.cos(x.a), -math.sin(x.a) * x.v)
    return math.cos(x)


def seed_blocks(*blocks: Sequence) -> Tuple[List[List[Jet]], int]:
    """
    Turn parameter blocks into lists of jet variables.

    Every parameter of every block gets its own derivative slot, in block
    order, so the derivative vector of any output is the concatenated
    gradient with respect to all blocks.

    Args:
        *blocks: Flat parameter blocks (sequences of numbers)

    Returns:
        Tuple of (jet_blocks, total_size)
    """
    size = sum(len(block) for block in blocks)
    jet_blocks = []
    offset = 0
    for block in blocks:
        jet_blocks.append([
            Jet.variable(float(value), offset + i, size)
            for i, value in enumerate(block)
        ])
        offset += len(block)
    return jet_blocks, size
