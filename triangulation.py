"""
Constrained incremental Delaunay triangulation.

Inserting a point removes the unconstrained triangles whose circumcircle
contains it (the cavity) and refills the hole with a fan of triangles
around the new point. Labeled triangles are never removed, and cavity
triangles not visible from the new point are kept so the hole stays
star-shaped.

Algorithm (for a new point p):
1. Split triangles into unconstrained (label unknown) and constrained
2. Unconstrained triangles whose circumcircle contains p are "bad"
3. Keep only bad triangles edge-connected to the triangle(s) containing p
4. Drop bad triangles with no vertex visible from p past the cavity
   boundary
5. Drop triangles owning a boundary edge that does not face p (the
   cavity must have p in its kernel), then repeat 3-5 until stable
6. Connect each cavity boundary edge to p
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

import structlog

try:
    from .geometry import (
        Point, Edge, Triangle, Circle, DegenerateGeometryError,
        circumcircle, point_in_triangle, triangle_area, is_collinear, between,
        segments_cross, distance_squared_to_line, project_onto_segment,
    )
    from .labels import Label
except ImportError:
    from geometry import (
        Point, Edge, Triangle, Circle, DegenerateGeometryError,
        circumcircle, point_in_triangle, triangle_area, is_collinear, between,
        segments_cross, distance_squared_to_line, project_onto_segment,
    )
    from labels import Label


logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class LabeledTriangle:
    """
    A mesh triangle with a mutable label.

    The circumcircle is computed once from the vertex coordinates at
    creation time. Triangles whose vertices move must be rebuilt.
    Equality is identity.
    """
    triangle: Triangle
    vertices: tuple[Point, Point, Point]
    label: Label = Label.UNKNOWN
    circle: Circle = field(init=False, repr=False)

    def __post_init__(self):
        self.circle = circumcircle(*self.vertices)

    @classmethod
    def build(cls, points: Sequence[Point], triangle: Triangle,
              label: Label = Label.UNKNOWN) -> "LabeledTriangle":
        """Create from point indices, snapshotting the arena coordinates."""
        vertices = (points[triangle.p1], points[triangle.p2], points[triangle.p3])
        return cls(triangle, vertices, label)

    def edges(self) -> list[Edge]:
        return self.triangle.edges()

    @property
    def area(self) -> float:
        return triangle_area(*self.vertices)

    @property
    def centroid(self) -> Point:
        a, b, c = self.vertices
        return Point((a.x + b.x + c.x) / 3, (a.y + b.y + c.y) / 3)

    def contains(self, p: Point, tolerance: float = 1e-9) -> bool:
        """Area-equality point-in-triangle test (boundary counts as inside)."""
        return point_in_triangle(*self.vertices, p, tolerance)

    def circumcircle_contains(self, p: Point) -> bool:
        return self.circle.contains(p)


@dataclass
class Cavity:
    """
    Result of the cavity computation for one insertion.

    Attributes:
        retained: Triangles that survive, in their original order
        removed: Triangles to delete
        boundary: Boundary edges of the removed set, to be fanned to p
        occluded: Bad triangles kept because p cannot see them
    """
    retained: list[LabeledTriangle] = field(default_factory=list)
    removed: list[LabeledTriangle] = field(default_factory=list)
    boundary: list[Edge] = field(default_factory=list)
    occluded: list[LabeledTriangle] = field(default_factory=list)


def boundary_edges(triangles: Iterable[LabeledTriangle]) -> list[Edge]:
    """
    Edges that belong to exactly one triangle of the set.

    Returned in order of first appearance.
    """
    counts: dict[Edge, int] = {}
    for tri in triangles:
        for edge in tri.edges():
            counts[edge] = counts.get(edge, 0) + 1
    return [edge for edge, count in counts.items() if count == 1]


def build_edge_map(triangles: Iterable[LabeledTriangle]) -> dict[Edge, list[LabeledTriangle]]:
    """Map each edge to the (at most two) triangles sharing it."""
    edge_map: dict[Edge, list[LabeledTriangle]] = {}
    for tri in triangles:
        for edge in tri.edges():
            edge_map.setdefault(edge, []).append(tri)
    return edge_map


def _edge_connected(seeds: list[LabeledTriangle],
                    candidates: list[LabeledTriangle]) -> list[LabeledTriangle]:
    """Candidates reachable from the seeds across shared edges."""
    edge_map = build_edge_map(candidates)
    reached = {id(s) for s in seeds}
    stack = list(seeds)
    while stack:
        tri = stack.pop()
        for edge in tri.edges():
            for neighbor in edge_map[edge]:
                if id(neighbor) not in reached:
                    reached.add(id(neighbor))
                    stack.append(neighbor)
    return [t for t in candidates if id(t) in reached]


def _vertex_visible(points: Sequence[Point], p: Point, vertex: int,
                    occluders: list[Edge]) -> bool:
    """
    Check whether the segment from p to a vertex clears every occluder.

    A vertex is hidden by an occluder edge when its direction from p lies
    strictly between the directions to the edge's endpoints and the edge
    actually separates it from p.
    """
    v = points[vertex]
    direction = v - p
    for edge in occluders:
        if vertex == edge.a or vertex == edge.b:
            continue
        a = points[edge.a]
        b = points[edge.b]
        if between(direction, a - p, b - p) and segments_cross(p, v, a, b):
            return False
    return True


def _oriented_edges(points: Sequence[Point], tri: LabeledTriangle) -> list[tuple[int, int]]:
    """Edges of a triangle directed with its interior on the left."""
    p1, p2, p3 = tri.triangle
    if (points[p2] - points[p1]).cross(points[p3] - points[p1]) < 0:
        p2, p3 = p3, p2
    return [(p1, p2), (p2, p3), (p3, p1)]


def _faces_point(a: Point, b: Point, p: Point) -> bool:
    """True if p is on the inner (left) side of directed edge a->b, or on the segment."""
    if is_collinear(a, b, p):
        t, _ = project_onto_segment(p, a, b)
        return 0.0 < t < 1.0
    return (b - a).cross(p - a) > 0


def find_back_facing(points: Sequence[Point], p: Point,
                     cavity: list[LabeledTriangle]) -> list[LabeledTriangle]:
    """
    Cavity triangles owning a boundary edge that does not face p.

    A fan around p only fills the cavity exactly when p lies on the inner
    side of every boundary edge.
    """
    boundary = set(boundary_edges(cavity))
    facing_away = []
    for tri in cavity:
        for a, b in _oriented_edges(points, tri):
            if Edge(a, b) in boundary and not _faces_point(points[a], points[b], p):
                facing_away.append(tri)
                break
    return facing_away


def find_occluded(points: Sequence[Point], p: Point,
                  cavity: list[LabeledTriangle]) -> list[LabeledTriangle]:
    """Cavity triangles none of whose vertices is visible from p."""
    occluders = boundary_edges(cavity)
    return [
        tri for tri in cavity
        if not any(_vertex_visible(points, p, v, occluders) for v in tri.triangle)
    ]


def compute_cavity(points: Sequence[Point], triangles: list[LabeledTriangle],
                   p_index: int, tolerance: float = 1e-9) -> Cavity:
    """
    Partition the triangles for inserting points[p_index].

    Args:
        points: Point arena (must already contain the new point)
        triangles: Current triangle set
        p_index: Arena index of the new point
        tolerance: Relative tolerance of the point-in-triangle test

    Returns:
        Cavity with retained, removed and boundary edges.
    """
    p = points[p_index]

    unconstrained = [t for t in triangles if not t.label.is_constrained]
    bad = [t for t in unconstrained if t.circumcircle_contains(p)]
    seeds = [t for t in bad if t.contains(p, tolerance)]

    removed = _edge_connected(seeds, bad)
    occluded: list[LabeledTriangle] = []
    while True:
        hidden = find_occluded(points, p, removed) or find_back_facing(points, p, removed)
        if not hidden:
            break
        occluded.extend(hidden)
        hidden_ids = {id(t) for t in hidden}
        remaining = [t for t in removed if id(t) not in hidden_ids]
        removed = _edge_connected([s for s in seeds if id(s) not in hidden_ids], remaining)

    removed_ids = {id(t) for t in removed}
    retained = [t for t in triangles if id(t) not in removed_ids]

    logger.debug(
        "cavity computed",
        point=p_index,
        constrained=len(triangles) - len(unconstrained),
        bad=len(bad),
        occluded=len(occluded),
        removed=len(removed),
    )
    return Cavity(retained, removed, boundary_edges(removed), occluded)


def retriangulate(points: Sequence[Point], cavity: Cavity, p_index: int) -> list[LabeledTriangle]:
    """
    Fill the cavity with a fan of unknown triangles around p.

    Boundary edges collinear with p (p inserted on the mesh border) would
    give zero-area triangles and are skipped.
    """
    p = points[p_index]
    fan = []
    for edge in cavity.boundary:
        if p_index in (edge.a, edge.b):
            continue
        if is_collinear(points[edge.a], points[edge.b], p):
            continue
        fan.append(LabeledTriangle.build(points, Triangle(edge.a, edge.b, p_index)))
    return cavity.retained + fan


# =============================================================================
# Degeneracy maintenance
# =============================================================================

def _worst_vertex(points: Sequence[Point], tri: LabeledTriangle) -> tuple[float, int, Edge]:
    """(distance, vertex, opposite edge) for the vertex closest to its opposite edge."""
    candidates = []
    for edge in tri.edges():
        v = tri.triangle.opposite(edge)
        d2 = distance_squared_to_line(points[v], points[edge.a], points[edge.b])
        candidates.append((d2, v, edge))
    d2, v, edge = min(candidates, key=lambda c: c[0])
    return d2 ** 0.5, v, edge


def partition_degenerate_triangles(
    points: Sequence[Point],
    triangles: list[LabeledTriangle],
    threshold: float
) -> tuple[list[LabeledTriangle], list[LabeledTriangle]]:
    """
    Split triangles into (regular, degenerate).

    A triangle is degenerate when some vertex lies closer than `threshold`
    to the line through its opposite edge.
    """
    regular = []
    degenerate = []
    for tri in triangles:
        distance, _, _ = _worst_vertex(points, tri)
        if distance < threshold:
            degenerate.append(tri)
        else:
            regular.append(tri)
    return regular, degenerate


def collapse_degenerate(
    points: Sequence[Point],
    triangles: list[LabeledTriangle],
    target: LabeledTriangle
) -> tuple[list[Point], list[LabeledTriangle]]:
    """
    Collapse a sliver by moving its worst vertex onto the opposite edge.

    The flattened triangle is removed and the neighbor across that edge is
    split in two at the moved vertex (keeping its label). Triangles that
    touch the moved vertex are rebuilt so their circumcircles match.

    Returns:
        (new_points, new_triangles); the inputs are not modified.

    Raises:
        DegenerateGeometryError: if the projection falls outside the edge or
            a rebuilt triangle would be flat.
    """
    _, v, edge = _worst_vertex(points, target)
    t, projected = project_onto_segment(points[v], points[edge.a], points[edge.b])
    if not 0.0 < t < 1.0:
        raise DegenerateGeometryError(f"Vertex {v} does not project inside edge {edge.key}")

    new_points = list(points)
    new_points[v] = projected

    neighbor: Optional[LabeledTriangle] = None
    for tri in triangles:
        if tri is not target and edge in tri.edges():
            neighbor = tri
            break

    result = []
    for tri in triangles:
        if tri is target:
            continue
        if tri is neighbor:
            c = tri.triangle.opposite(edge)
            result.append(LabeledTriangle.build(new_points, Triangle(edge.a, v, c), tri.label))
            result.append(LabeledTriangle.build(new_points, Triangle(v, edge.b, c), tri.label))
        elif tri.triangle.has_vertex(v):
            result.append(LabeledTriangle.build(new_points, tri.triangle, tri.label))
        else:
            result.append(tri)

    logger.debug("collapsed sliver", vertex=v, edge=edge.key, split_neighbor=neighbor is not None)
    return new_points, result
