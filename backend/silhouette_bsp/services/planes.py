"""
Plane representation shared by the polyhedron model and the BSP.

A plane is stored as a unit normal ``(x, y, z)`` and a signed offset
``d`` such that ``n·p + d`` is the signed distance of ``p``.  The same
type serves as a polyhedron face and as a BSP splitting plane.  Two
planes compare equal when all four components agree within
``EPSILON``; because that relation is not transitive, planes are not
hashable and deduplication is done with linear scans.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..config import EPSILON
from .vectors import Vec3, cross, dot, normalize, scale, sub


@dataclass(frozen=True, eq=False)
class Plane:
    """Oriented plane ``x*px + y*py + z*pz + d = 0``.

    Attributes:
        x, y, z: Components of the unit normal.
        d: Signed offset from the origin along the normal.
    """

    x: float
    y: float
    z: float
    d: float

    __hash__ = None  # type: ignore[assignment]

    @classmethod
    def from_points(cls, a: Vec3, b: Vec3, c: Vec3) -> "Plane":
        """Plane through three points, normal along ``(b-a)×(c-a)``.

        Raises:
            ValueError: If the points are collinear.
        """
        n = cross(sub(b, a), sub(c, a))
        if n == (0.0, 0.0, 0.0):
            raise ValueError("cannot build a plane from collinear points")
        n = normalize(n)
        return cls(n[0], n[1], n[2], -dot(n, a))

    @classmethod
    def from_normal_distance(cls, normal: Vec3, distance: float) -> "Plane":
        n = normalize(normal)
        return cls(n[0], n[1], n[2], float(distance))

    @classmethod
    def from_normal_point(cls, normal: Vec3, point: Vec3) -> "Plane":
        """Plane with the given (not renormalised) normal through ``point``."""
        return cls(normal[0], normal[1], normal[2], -dot(normal, point))

    @property
    def normal(self) -> Vec3:
        return (self.x, self.y, self.z)

    @property
    def flipped(self) -> "Plane":
        return Plane(-self.x, -self.y, -self.z, -self.d)

    def distance(self, p: Vec3) -> float:
        return self.x * p[0] + self.y * p[1] + self.z * p[2] + self.d

    def side(self, p: Vec3) -> bool:
        """True if ``p`` lies strictly on the positive side."""
        return self.distance(p) > 0

    def closest_point(self, p: Vec3) -> Vec3:
        return sub(p, scale(self.normal, self.distance(p)))

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.z, self.d)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Plane):
            return NotImplemented
        return (
            abs(other.x - self.x) <= EPSILON
            and abs(other.y - self.y) <= EPSILON
            and abs(other.z - self.z) <= EPSILON
            and abs(other.d - self.d) <= EPSILON
        )
