"""
Tests for the plane helpers.
"""

import sys
from pathlib import Path

import pytest

# Add the backend directory to sys.path so we can import the package
sys.path.append(str(Path(__file__).resolve().parents[1]))

from silhouette_bsp.services.planes import Plane  # type: ignore


def test_plane_constructors_agree() -> None:
    through_points = Plane.from_points((0.0, 0.0, 2.0), (1.0, 0.0, 2.0), (0.0, 1.0, 2.0))
    assert through_points.normal == pytest.approx((0.0, 0.0, 1.0))
    assert through_points.d == pytest.approx(-2.0)
    assert Plane.from_normal_distance((0.0, 0.0, 5.0), -2.0) == through_points
    assert Plane.from_normal_point((0.0, 0.0, 1.0), (3.0, -4.0, 2.0)) == through_points


def test_collinear_points_are_rejected() -> None:
    with pytest.raises(ValueError):
        Plane.from_points((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (2.0, 2.0, 2.0))


def test_side_distance_and_projection() -> None:
    plane = Plane(1.0, 0.0, 0.0, -1.0)
    assert plane.distance((3.0, 5.0, 7.0)) == pytest.approx(2.0)
    assert plane.side((3.0, 0.0, 0.0))
    assert not plane.side((1.0, 0.0, 0.0))
    assert not plane.flipped.side((3.0, 0.0, 0.0))
    assert plane.closest_point((3.0, 5.0, 7.0)) == pytest.approx((1.0, 5.0, 7.0))


def test_equality_is_approximate_and_oriented() -> None:
    plane = Plane(0.0, 1.0, 0.0, 0.5)
    assert plane == Plane(0.0, 1.0 + 1e-7, 0.0, 0.5 - 1e-7)
    assert plane != plane.flipped
    assert plane.flipped.flipped == plane
    with pytest.raises(TypeError):
        hash(plane)
