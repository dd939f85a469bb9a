"""
Small 3D vector helpers operating on plain tuples.

The geometry services represent points and directions as
``(x, y, z)`` tuples of floats.  These helpers keep the arithmetic in
one place without depending on NumPy for the many tiny per‑edge
computations the BSP and silhouette code performs, where array
overhead would dominate.
"""

from __future__ import annotations

import math
from typing import Iterable, Tuple

from ..config import EPSILON

Vec3 = Tuple[float, float, float]

ZERO: Vec3 = (0.0, 0.0, 0.0)


def add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale(a: Vec3, s: float) -> Vec3:
    return (a[0] * s, a[1] * s, a[2] * s)


def neg(a: Vec3) -> Vec3:
    return (-a[0], -a[1], -a[2])


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def length(a: Vec3) -> float:
    return math.sqrt(dot(a, a))


def distance(a: Vec3, b: Vec3) -> float:
    return length(sub(b, a))


def normalize(a: Vec3) -> Vec3:
    """Return ``a`` scaled to unit length.

    A zero vector is returned unchanged instead of raising, so callers
    that feed degenerate geometry (for example a triangle seen exactly
    edge‑on) get a vector whose dot products are all zero.
    """
    n = length(a)
    if n == 0.0:
        return ZERO
    return (a[0] / n, a[1] / n, a[2] / n)


def lerp(a: Vec3, b: Vec3, t: float) -> Vec3:
    """Linear interpolation with ``t`` clamped to ``[0, 1]``."""
    t = clamp(t, 0.0, 1.0)
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


def centroid(points: Iterable[Vec3]) -> Vec3:
    sx = sy = sz = 0.0
    count = 0
    for p in points:
        sx += p[0]
        sy += p[1]
        sz += p[2]
        count += 1
    if count == 0:
        return ZERO
    return (sx / count, sy / count, sz / count)


def approx_equal(a: Vec3, b: Vec3, eps: float = EPSILON) -> bool:
    """Component‑wise equality within ``eps``."""
    return (
        abs(a[0] - b[0]) <= eps
        and abs(a[1] - b[1]) <= eps
        and abs(a[2] - b[2]) <= eps
    )


def clamp(x: float, low: float, high: float) -> float:
    return low if x < low else high if x > high else x


def divide_safe(a: float, b: float, eps: float = EPSILON) -> float:
    """Divide ``a`` by ``b`` with ``|b|`` pushed away from zero.

    Denominators inside ``(-eps, eps)`` are replaced by ``±eps`` keeping
    their sign (zero counts as positive).
    """
    if -eps < b < eps:
        b = -eps if b < 0 else eps
    return a / b


def sign(x: float, eps: float = 0.0) -> int:
    if x > eps:
        return 1
    if x < -eps:
        return -1
    return 0


def angle(a: Vec3, b: Vec3) -> float:
    """Unsigned angle between ``a`` and ``b`` in radians (0 for tiny inputs)."""
    denominator = math.sqrt(dot(a, a) * dot(b, b))
    if denominator < 1e-6:
        return 0.0
    return math.acos(clamp(dot(a, b) / denominator, -1.0, 1.0))


def signed_angle(src: Vec3, dst: Vec3, axis: Vec3) -> float:
    """Angle from ``src`` to ``dst`` measured around ``axis``.

    Both vectors are projected onto the plane orthogonal to ``axis``;
    the result is positive for counter‑clockwise rotation when looking
    down ``axis``.
    """
    s = 1.0 if dot(cross(src, dst), axis) > 0 else -1.0
    return s * angle(cross(axis, src), cross(axis, dst))
