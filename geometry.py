"""
Geometry primitives for the label mesh.

Points are plain value types stored in an arena owned by the mesh.
Edges and triangles refer to points by arena index, so "same point"
always means "same index" regardless of coordinates.
"""

from dataclasses import dataclass
from typing import Sequence
import math


class DegenerateGeometryError(ValueError):
    """Raised when a computation needs a non-degenerate triangle."""


@dataclass(frozen=True)
class Point:
    """A 2D point."""
    x: float
    y: float

    def __iter__(self):
        yield self.x
        yield self.y

    def __sub__(self, other: 'Point') -> 'Vector':
        return Vector(self.x - other.x, self.y - other.y)

    def to_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Vector:
    """A 2D displacement."""
    x: float
    y: float

    def cross(self, other: 'Vector') -> float:
        """Z component of the 3D cross product."""
        return self.x * other.y - self.y * other.x

    def dot(self, other: 'Vector') -> float:
        return self.x * other.x + self.y * other.y

    @property
    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    @property
    def length(self) -> float:
        return math.sqrt(self.length_squared)


@dataclass(frozen=True)
class Edge:
    """An unordered pair of point indices."""
    a: int
    b: int

    @property
    def key(self) -> tuple[int, int]:
        """Canonical key, identical for (a, b) and (b, a)."""
        return (self.a, self.b) if self.a <= self.b else (self.b, self.a)

    def __eq__(self, other):
        if not isinstance(other, Edge):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __iter__(self):
        yield self.a
        yield self.b

    def other(self, index: int) -> int:
        """Return the endpoint that is not `index`."""
        return self.b if index == self.a else self.a


@dataclass(frozen=True)
class Triangle:
    """Three point indices with no enforced winding."""
    p1: int
    p2: int
    p3: int

    def __iter__(self):
        yield self.p1
        yield self.p2
        yield self.p3

    def edges(self) -> list[Edge]:
        """The three boundary edges (p1,p2), (p2,p3), (p3,p1)."""
        return [Edge(self.p1, self.p2), Edge(self.p2, self.p3), Edge(self.p3, self.p1)]

    def has_vertex(self, index: int) -> bool:
        return index in (self.p1, self.p2, self.p3)

    def opposite(self, edge: Edge) -> int:
        """Return the vertex not on `edge`."""
        for v in self:
            if v != edge.a and v != edge.b:
                return v
        raise ValueError(f"Edge {edge.key} has no opposite vertex in {tuple(self)}")


@dataclass(frozen=True)
class Circle:
    """A circle, typically the circumcircle of a triangle."""
    center: Point
    radius: float

    def contains(self, p: Point) -> bool:
        """True if p is inside or on the circle."""
        return (p - self.center).length_squared <= self.radius * self.radius


def edges_of(t: Triangle) -> list[Edge]:
    """Return the three edges of a triangle."""
    return t.edges()


def triangle_area(a: Point, b: Point, c: Point) -> float:
    """Unsigned area of triangle abc."""
    return abs((b - a).cross(c - a)) / 2.0


def is_collinear(a: Point, b: Point, c: Point, eps: float = 1e-12) -> bool:
    """True if abc spans no area relative to its longest edge."""
    scale = max((b - a).length_squared, (c - a).length_squared, (c - b).length_squared)
    return scale == 0 or abs((b - a).cross(c - a)) <= eps * scale


def circumcircle(a: Point, b: Point, c: Point) -> Circle:
    """
    Compute the circle through three points.

    Solves for the point equidistant from a, b and c.

    Raises:
        DegenerateGeometryError: if the points are (near) collinear.
    """
    if is_collinear(a, b, c):
        raise DegenerateGeometryError(
            f"Collinear points have no circumcircle: {a.to_tuple()}, {b.to_tuple()}, {c.to_tuple()}"
        )

    d = 2.0 * (a.x * (b.y - c.y) + b.x * (c.y - a.y) + c.x * (a.y - b.y))
    a2 = a.x * a.x + a.y * a.y
    b2 = b.x * b.x + b.y * b.y
    c2 = c.x * c.x + c.y * c.y
    ux = (a2 * (b.y - c.y) + b2 * (c.y - a.y) + c2 * (a.y - b.y)) / d
    uy = (a2 * (c.x - b.x) + b2 * (a.x - c.x) + c2 * (b.x - a.x)) / d
    center = Point(ux, uy)
    return Circle(center, (center - a).length)


def point_in_triangle(a: Point, b: Point, c: Point, p: Point, tolerance: float = 1e-9) -> bool:
    """
    Check if p lies inside (or on the boundary of) triangle abc.

    Compares the triangle's area with the sum of the three sub-triangles
    formed with p. The comparison is relative to the triangle's area.
    """
    area = triangle_area(a, b, c)
    total = triangle_area(p, b, c) + triangle_area(a, p, c) + triangle_area(a, b, p)
    return abs(total - area) <= tolerance * max(area, 1e-300)


def in_circumcircle(circle: Circle, p: Point) -> bool:
    """True if p lies within or on the circle."""
    return circle.contains(p)


def between(v: Vector, v1: Vector, v2: Vector) -> bool:
    """
    Check if direction v lies strictly between directions v1 and v2.

    Uses the sign of the 2D cross product; coincidence with either ray
    counts as not between.
    """
    s1 = _sign(v.cross(v1))
    s2 = _sign(v.cross(v2))
    return s1 != 0 and s2 != 0 and s1 != s2


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def distance_squared_to_line(p: Point, a: Point, b: Point) -> float:
    """Squared distance from p to the infinite line through a and b."""
    ab = b - a
    length_sq = ab.length_squared
    if length_sq == 0:
        return (p - a).length_squared
    cross = ab.cross(p - a)
    return cross * cross / length_sq


def project_onto_segment(p: Point, a: Point, b: Point) -> tuple[float, Point]:
    """
    Project p onto the line through a and b.

    Returns:
        (t, point) where t is the parameter along a->b (0 at a, 1 at b).
    """
    ab = b - a
    length_sq = ab.length_squared
    if length_sq == 0:
        return 0.0, a
    t = (p - a).dot(ab) / length_sq
    return t, Point(a.x + t * ab.x, a.y + t * ab.y)


def segments_cross(p1: Point, p2: Point, q1: Point, q2: Point) -> bool:
    """True if segment p1-p2 properly crosses segment q1-q2."""
    d1 = (q2 - q1).cross(p1 - q1)
    d2 = (q2 - q1).cross(p2 - q1)
    d3 = (p2 - p1).cross(q1 - p1)
    d4 = (p2 - p1).cross(q2 - p1)
    return ((d1 > 0 > d2) or (d1 < 0 < d2)) and ((d3 > 0 > d4) or (d3 < 0 < d4))


# =============================================================================
# Polygon winding
# =============================================================================

def signed_area(polygon: Sequence[Point]) -> float:
    """
    Calculate signed area of polygon using shoelace formula.

    Returns:
        Positive for CCW winding, negative for CW winding.
    """
    n = len(polygon)
    if n < 3:
        return 0.0
    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += polygon[i].x * polygon[j].y
        area -= polygon[j].x * polygon[i].y
    return area / 2.0


def loop_signed_area(loop: Sequence[int], points: Sequence[Point]) -> float:
    """Signed area of a loop given as point indices."""
    return signed_area([points[i] for i in loop])


def ensure_cw(loop: list[int], points: Sequence[Point]) -> list[int]:
    """Ensure an index loop has clockwise winding order."""
    if loop_signed_area(loop, points) > 0:
        return list(reversed(loop))
    return list(loop)


def ensure_ccw(loop: list[int], points: Sequence[Point]) -> list[int]:
    """Ensure an index loop has counter-clockwise winding order."""
    if loop_signed_area(loop, points) < 0:
        return list(reversed(loop))
    return list(loop)
