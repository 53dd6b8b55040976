"""
Relativistic three- and four-vectors.

FourVector components are (x0, x1, x2, x3) and are read as either
(t, x, y, z) [fm/c, fm] or (E, px, py, pz) [GeV], depending on use.
Metric signature is (+, -, -, -).
"""

import math
import numpy as np
from typing import Iterator


class ThreeVector:
    """Spatial vector (x1, x2, x3)."""

    __slots__ = ('x1', 'x2', 'x3')

    def __init__(self, x1: float = 0.0, x2: float = 0.0, x3: float = 0.0):
        self.x1 = float(x1)
        self.x2 = float(x2)
        self.x3 = float(x3)

    def __getitem__(self, i: int) -> float:
        return (self.x1, self.x2, self.x3)[i]

    def __iter__(self) -> Iterator[float]:
        return iter((self.x1, self.x2, self.x3))

    def __len__(self) -> int:
        return 3

    def __eq__(self, other) -> bool:
        if not isinstance(other, ThreeVector):
            return NotImplemented
        return (self.x1, self.x2, self.x3) == (other.x1, other.x2, other.x3)

    def __neg__(self) -> 'ThreeVector':
        return ThreeVector(-self.x1, -self.x2, -self.x3)

    def __add__(self, other: 'ThreeVector') -> 'ThreeVector':
        return ThreeVector(self.x1 + other.x1, self.x2 + other.x2, self.x3 + other.x3)

    def __sub__(self, other: 'ThreeVector') -> 'ThreeVector':
        return ThreeVector(self.x1 - other.x1, self.x2 - other.x2, self.x3 - other.x3)

    def __mul__(self, a: float) -> 'ThreeVector':
        return ThreeVector(self.x1 * a, self.x2 * a, self.x3 * a)

    def __rmul__(self, a: float) -> 'ThreeVector':
        return self.__mul__(a)

    def __truediv__(self, a: float) -> 'ThreeVector':
        a_inv = 1.0 / a
        return ThreeVector(self.x1 * a_inv, self.x2 * a_inv, self.x3 * a_inv)

    def dot(self, other: 'ThreeVector') -> float:
        """Euclidean inner product."""
        return self.x1 * other.x1 + self.x2 * other.x2 + self.x3 * other.x3

    def sqr(self) -> float:
        """Squared norm."""
        return self.dot(self)

    def abs(self) -> float:
        """Norm."""
        return math.sqrt(self.sqr())

    def __abs__(self) -> float:
        return self.abs()

    def to_array(self) -> np.ndarray:
        return np.array([self.x1, self.x2, self.x3], dtype=np.float64)

    def __repr__(self) -> str:
        return f"ThreeVector({self.x1:.6g}, {self.x2:.6g}, {self.x3:.6g})"


class FourVector:
    """
    Minkowski four-vector (x0, x1, x2, x3).

    Example:
        p = FourVector(1.0, 0.1, 0.0, 0.3)
        p_rest = p.lorentz_boost(p.velocity())   # spatial part ~ 0
    """

    __slots__ = ('x0', 'x1', 'x2', 'x3')

    def __init__(self, x0: float = 0.0, x1: float = 0.0,
                 x2: float = 0.0, x3: float = 0.0):
        self.x0 = float(x0)
        self.x1 = float(x1)
        self.x2 = float(x2)
        self.x3 = float(x3)

    @classmethod
    def from_threevec(cls, x0: float, v: ThreeVector) -> 'FourVector':
        """Build from a time/energy component and a spatial part."""
        return cls(x0, v.x1, v.x2, v.x3)

    @classmethod
    def from_array(cls, a) -> 'FourVector':
        return cls(a[0], a[1], a[2], a[3])

    def to_array(self) -> np.ndarray:
        return np.array([self.x0, self.x1, self.x2, self.x3], dtype=np.float64)

    def __getitem__(self, i: int) -> float:
        return (self.x0, self.x1, self.x2, self.x3)[i]

    def __iter__(self) -> Iterator[float]:
        return iter((self.x0, self.x1, self.x2, self.x3))

    def __len__(self) -> int:
        return 4

    def __eq__(self, other) -> bool:
        if not isinstance(other, FourVector):
            return NotImplemented
        return tuple(self) == tuple(other)

    def __neg__(self) -> 'FourVector':
        return FourVector(-self.x0, -self.x1, -self.x2, -self.x3)

    def __add__(self, other: 'FourVector') -> 'FourVector':
        return FourVector(self.x0 + other.x0, self.x1 + other.x1,
                          self.x2 + other.x2, self.x3 + other.x3)

    def __sub__(self, other: 'FourVector') -> 'FourVector':
        return FourVector(self.x0 - other.x0, self.x1 - other.x1,
                          self.x2 - other.x2, self.x3 - other.x3)

    def __mul__(self, a: float) -> 'FourVector':
        return FourVector(self.x0 * a, self.x1 * a, self.x2 * a, self.x3 * a)

    def __rmul__(self, a: float) -> 'FourVector':
        return self.__mul__(a)

    def __truediv__(self, a: float) -> 'FourVector':
        a_inv = 1.0 / a
        return self * a_inv

    def threevec(self) -> ThreeVector:
        """Spatial part."""
        return ThreeVector(self.x1, self.x2, self.x3)

    def velocity(self) -> ThreeVector:
        """
        Three-velocity x/x0.

        For a momentum this is the velocity of the particle (or of the
        rest frame of a sum of momenta). Raises ZeroDivisionError for x0 == 0.
        """
        return self.threevec() / self.x0

    def dot(self, other: 'FourVector') -> float:
        """Minkowski inner product with (+, -, -, -) metric."""
        return (self.x0 * other.x0 - self.x1 * other.x1
                - self.x2 * other.x2 - self.x3 * other.x3)

    def sqr(self) -> float:
        """Minkowski square (invariant mass squared for a momentum)."""
        return self.dot(self)

    def abs(self) -> float:
        """Invariant length; negative for space-like vectors."""
        s = self.sqr()
        return math.copysign(math.sqrt(abs(s)), s)

    def sqr3(self) -> float:
        return self.threevec().sqr()

    def abs3(self) -> float:
        """Magnitude of the spatial part."""
        return self.threevec().abs()

    def lorentz_boost(self, v: ThreeVector) -> 'FourVector':
        """
        Boost into a frame moving with three-velocity v.

        x0' = gamma * (x0 - x.v)
        x'  = x - v * gamma / (gamma + 1) * (x0' + x0)

        For |v| >= 1 gamma is set to 0, which returns (0, x) instead of
        raising.

        Parameters:
            v: Velocity of the target frame (units of c)

        Returns:
            Boosted four-vector
        """
        velocity_squared = v.sqr()
        gamma = 1.0 / math.sqrt(1.0 - velocity_squared) if velocity_squared < 1.0 else 0.0

        spatial = self.threevec()
        xprime_0 = gamma * (self.x0 - spatial.dot(v))
        # Common to all three spatial components
        constantpart = gamma / (gamma + 1.0) * (xprime_0 + self.x0)
        return FourVector.from_threevec(xprime_0, spatial - v * constantpart)

    def __repr__(self) -> str:
        return (f"FourVector({self.x0:.6g}, {self.x1:.6g}, "
                f"{self.x2:.6g}, {self.x3:.6g})")
