"""Small meshes shared by the tests."""

from typing import List, Tuple

# Corners of the unit cube, bottom face first, counter-clockwise seen from above
_CORNERS = [
    (0, 0, 0), (1, 0, 0), (1, 1, 0), (0, 1, 0),
    (0, 0, 1), (1, 0, 1), (1, 1, 1), (0, 1, 1),
]

# Outward facing (counter-clockwise) triangles
CUBE_TRIANGLES = [
    (0, 2, 1), (0, 3, 2),  # bottom
    (4, 5, 6), (4, 6, 7),  # top
    (0, 1, 5), (0, 5, 4),  # front (y = 0)
    (3, 7, 6), (3, 6, 2),  # back (y = 1)
    (0, 4, 7), (0, 7, 3),  # left (x = 0)
    (1, 2, 6), (1, 6, 5),  # right (x = 1)
]


def cube_mesh(
    center=(0.0, 0.0, 0.0), size: float = 1.0, index_offset: int = 0
) -> Tuple[List[float], List[int]]:
    """Flat vertex and index lists of an axis aligned cube."""
    vertices: List[float] = []
    for corner in _CORNERS:
        for axis in range(3):
            vertices.append(center[axis] + (corner[axis] - 0.5) * size)
    indices = [i + index_offset for triangle in CUBE_TRIANGLES for i in triangle]
    return vertices, indices


def unindexed_cube_mesh(size: float = 1.0) -> Tuple[List[float], List[int]]:
    """The unit cube with three private vertices per triangle."""
    corners, indices = cube_mesh(size=size)
    vertices: List[float] = []
    for i in indices:
        vertices.extend(corners[3 * i:3 * i + 3])
    return vertices, list(range(len(indices)))


def two_cube_mesh() -> Tuple[List[float], List[int]]:
    """A unit cube at the origin and a second one further down -z."""
    vertices_a, indices_a = cube_mesh()
    vertices_b, indices_b = cube_mesh(center=(0.3, 0.3, -3.0), index_offset=8)
    return vertices_a + vertices_b, indices_a + indices_b


def dented_cube_mesh(depth: float = 0.3) -> Tuple[List[float], List[int]]:
    """Unit cube whose top face is pushed in to a point below its centre.

    Vertex 8 is the bottom of the dent.
    """
    vertices, _ = cube_mesh()
    vertices += [0.0, 0.0, 0.5 - depth]
    triangles = [t for t in CUBE_TRIANGLES if t not in ((4, 5, 6), (4, 6, 7))]
    triangles += [(4, 5, 8), (5, 6, 8), (6, 7, 8), (7, 4, 8)]
    return vertices, [i for t in triangles for i in t]


def frame_mesh(outer: float = 1.0, inner: float = 0.5, thickness: float = 0.2) -> Tuple[List[float], List[int]]:
    """A square picture frame lying in the xy plane with a square hole.

    Vertices 0-3 and 4-7 are the outer corners at the bottom and top,
    8-11 and 12-15 the corners of the hole, all counter-clockwise seen
    from above.
    """
    h = thickness / 2.0
    square = [(-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0)]
    vertices: List[float] = []
    for half, z in ((outer, -h), (outer, h), (inner, -h), (inner, h)):
        for x, y in square:
            vertices.extend((x * half, y * half, z))

    triangles = []
    for k in range(4):
        n = (k + 1) % 4
        ob, ot, ib, it = k, 4 + k, 8 + k, 12 + k
        obn, otn, ibn, itn = n, 4 + n, 8 + n, 12 + n
        triangles += [(ot, otn, itn), (ot, itn, it)]  # top
        triangles += [(ob, ibn, obn), (ob, ib, ibn)]  # bottom
        triangles += [(ob, obn, otn), (ob, otn, ot)]  # outer wall
        triangles += [(ib, itn, ibn), (ib, it, itn)]  # wall of the hole
    return vertices, [i for t in triangles for i in t]
