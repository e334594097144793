"""
Label region extraction.

Groups triangles into connected components of equal label and recovers
each component's boundary as polygon loops (hull plus holes).

Algorithm:
1. Build an edge -> triangles map; neighbors share an edge and a label
2. Flood fill (explicit stack) to get the components
3. Collect each component's boundary edges, directed so the component's
   interior lies to their left
4. Split boundary edges into groups connected through shared endpoints
   and walk each group as an Eulerian circuit
5. The loop with the largest |signed area| is the hull (made clockwise);
   all others are holes (made counter-clockwise)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Sequence

import structlog

try:
    from .geometry import Point, Edge, signed_area, loop_signed_area, ensure_cw, ensure_ccw
    from .labels import Label, FIRST_DYNAMIC_REGION_ID
    from .triangulation import LabeledTriangle, build_edge_map
except ImportError:
    from geometry import Point, Edge, signed_area, loop_signed_area, ensure_cw, ensure_ccw
    from labels import Label, FIRST_DYNAMIC_REGION_ID
    from triangulation import LabeledTriangle, build_edge_map


logger = structlog.get_logger(__name__)

# Directed boundary edge (from, to)
DirectedEdge = tuple[int, int]
Loop = list[int]


class MalformedBoundaryError(ValueError):
    """A boundary graph that is not a union of closed walks."""

    def __init__(self, message: str, vertices: Sequence[int] = ()):
        super().__init__(message)
        self.vertices = list(vertices)


@dataclass
class Region:
    """
    A connected, uniformly labeled set of triangles.

    Loops are lists of point indices without the closing repeat.
    The hull winds clockwise, holes counter-clockwise.
    """
    id: int
    label: Label
    hull: Loop
    holes: list[Loop] = field(default_factory=list)
    triangles: list[LabeledTriangle] = field(default_factory=list, repr=False)

    def hull_points(self, points: Sequence[Point]) -> list[Point]:
        return [points[i] for i in self.hull]

    def hole_points(self, points: Sequence[Point]) -> list[list[Point]]:
        return [[points[i] for i in hole] for hole in self.holes]

    def area(self, points: Sequence[Point]) -> float:
        """Area of hull minus holes."""
        area = abs(signed_area(self.hull_points(points)))
        for hole in self.hole_points(points):
            area -= abs(signed_area(hole))
        return area


# =============================================================================
# Connected components
# =============================================================================

def _flood(edge_map: dict[Edge, list[LabeledTriangle]], start: LabeledTriangle,
           seen: set[int]) -> list[LabeledTriangle]:
    """Same-label triangles reachable from start across shared edges."""
    seen.add(id(start))
    component = []
    stack = [start]
    while stack:
        tri = stack.pop()
        component.append(tri)
        for edge in tri.edges():
            for neighbor in edge_map[edge]:
                if neighbor.label == tri.label and id(neighbor) not in seen:
                    seen.add(id(neighbor))
                    stack.append(neighbor)
    return component


def connected_triangles(triangles: Sequence[LabeledTriangle]) -> list[list[LabeledTriangle]]:
    """
    Partition triangles into same-label, edge-connected components.

    Components are returned in discovery order (by first triangle).
    """
    edge_map = build_edge_map(triangles)
    seen: set[int] = set()
    components = []
    for tri in triangles:
        if id(tri) not in seen:
            components.append(_flood(edge_map, tri, seen))
    return components


def component_of(triangles: Sequence[LabeledTriangle],
                 target: LabeledTriangle) -> list[LabeledTriangle]:
    """The connected same-label component containing target."""
    return _flood(build_edge_map(triangles), target, set())


# =============================================================================
# Boundary loops
# =============================================================================

def directed_boundary_edges(points: Sequence[Point],
                            component: Sequence[LabeledTriangle]) -> list[DirectedEdge]:
    """
    Boundary edges of a component, each directed with the component on its left.
    """
    owner: dict[Edge, DirectedEdge] = {}
    counts: dict[Edge, int] = {}
    for tri in component:
        p1, p2, p3 = tri.triangle
        if signed_area([points[p1], points[p2], points[p3]]) < 0:
            p2, p3 = p3, p2
        for a, b in ((p1, p2), (p2, p3), (p3, p1)):
            edge = Edge(a, b)
            counts[edge] = counts.get(edge, 0) + 1
            owner[edge] = (a, b)
    return [owner[edge] for edge, count in counts.items() if count == 1]


def validate_boundary(edges: Sequence[DirectedEdge]) -> None:
    """
    Check that a boundary graph decomposes into closed walks.

    Raises:
        MalformedBoundaryError: on an odd-degree vertex, or a vertex whose
            incoming and outgoing edge counts differ.
    """
    degree: dict[int, int] = {}
    balance: dict[int, int] = {}
    for a, b in edges:
        degree[a] = degree.get(a, 0) + 1
        degree[b] = degree.get(b, 0) + 1
        balance[a] = balance.get(a, 0) + 1
        balance[b] = balance.get(b, 0) - 1

    odd = sorted(v for v, d in degree.items() if d % 2)
    if odd:
        raise MalformedBoundaryError(f"Boundary has odd-degree vertices: {odd}", odd)

    unbalanced = sorted(v for v, b in balance.items() if b)
    if unbalanced:
        raise MalformedBoundaryError(f"Boundary direction is inconsistent at vertices: {unbalanced}",
                                     unbalanced)


def group_boundary_edges(edges: Sequence[DirectedEdge]) -> list[list[DirectedEdge]]:
    """Split edges into groups connected through shared endpoints."""
    incident: dict[int, list[int]] = {}
    for i, (a, b) in enumerate(edges):
        incident.setdefault(a, []).append(i)
        incident.setdefault(b, []).append(i)

    visited = [False] * len(edges)
    groups = []
    for first in range(len(edges)):
        if visited[first]:
            continue
        visited[first] = True
        group = []
        stack = [first]
        while stack:
            i = stack.pop()
            group.append(edges[i])
            for v in edges[i]:
                for j in incident[v]:
                    if not visited[j]:
                        visited[j] = True
                        stack.append(j)
        groups.append(group)
    return groups


def eulerian_circuit(edges: Sequence[DirectedEdge]) -> Loop:
    """
    Walk every directed edge exactly once (Hierholzer's algorithm).

    Returns:
        Vertex sequence of the closed walk without the repeated start.

    Raises:
        MalformedBoundaryError: if the edges do not form one closed walk.
    """
    if not edges:
        return []

    outgoing: dict[int, list[int]] = {}
    for a, b in reversed(edges):
        outgoing.setdefault(a, []).append(b)

    start = edges[0][0]
    stack = [start]
    walk = []
    while stack:
        v = stack[-1]
        successors = outgoing.get(v)
        if successors:
            stack.append(successors.pop())
        else:
            walk.append(stack.pop())
    walk.reverse()

    if len(walk) != len(edges) + 1 or walk[0] != walk[-1]:
        raise MalformedBoundaryError(
            f"Boundary edges do not form a closed walk ({len(walk) - 1} of {len(edges)} edges visited)"
        )
    return walk[:-1]


def boundary_loops(points: Sequence[Point], component: Sequence[LabeledTriangle]) -> list[Loop]:
    """Recover the ordered boundary loops of a component."""
    edges = directed_boundary_edges(points, component)
    validate_boundary(edges)
    return [eulerian_circuit(group) for group in group_boundary_edges(edges)]


# =============================================================================
# Region assembly
# =============================================================================

def orient_loops(points: Sequence[Point], loops: list[Loop]) -> tuple[Loop, list[Loop]]:
    """
    Pick the hull (largest |signed area|) and orient hull CW, holes CCW.
    """
    hull_index = max(range(len(loops)), key=lambda i: abs(loop_signed_area(loops[i], points)))
    hull = ensure_cw(loops[hull_index], points)
    holes = [ensure_ccw(loop, points) for i, loop in enumerate(loops) if i != hull_index]
    return hull, holes


def extract_regions(points: Sequence[Point], triangles: Sequence[LabeledTriangle]) -> list[Region]:
    """
    Build the label regions of a triangle set.

    unknown, background and ignore regions always get IDs 0, 1 and 2;
    every other component gets the next sequential ID from 3 in
    discovery order.
    """
    regions = []
    next_id = FIRST_DYNAMIC_REGION_ID
    for component in connected_triangles(triangles):
        label = component[0].label
        loops = boundary_loops(points, component)
        hull, holes = orient_loops(points, loops)

        region_id = label.fixed_region_id
        if region_id is None:
            region_id = next_id
            next_id += 1

        regions.append(Region(region_id, label, hull, holes, component))

    logger.debug("regions extracted", regions=len(regions), triangles=len(triangles))
    return regions
