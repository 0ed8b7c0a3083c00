"""Connectivity over the implicit polygon graph formed by edge links.

Polygon A is adjacent to polygon B whenever some edge of A has a
``linked_edge_id`` owned by B.  Rigid-body groups are exactly the
connected components of this graph with more than one member.
"""

from __future__ import annotations

import uuid
from collections import deque
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set

from .floorplan import FloorPlan


def link_adjacency(plan: FloorPlan) -> Dict[str, List[str]]:
    """Return polygon adjacency map based purely on edge links."""
    neighbors: Dict[str, Set[str]] = {pid: set() for pid in plan.polygons}
    for poly in plan:
        for edge in poly.linked_edges():
            other = plan.owner_of(edge.linked_edge_id)
            if other is None or other == poly.id:
                continue
            neighbors[poly.id].add(other)
            neighbors[other].add(poly.id)
    return {pid: sorted(neigh) for pid, neigh in neighbors.items()}


def connected_group(
    start_id: str,
    plan: FloorPlan,
    exclude: Optional[str] = None,
) -> Set[str]:
    """Ids of every polygon reachable from *start_id* through links.

    Traversal never steps into *exclude*, which isolates the cluster on
    one side of a particular link.  *start_id* is always included.
    """
    group = {start_id}
    queue = deque([start_id])
    while queue:
        current = queue.popleft()
        poly = plan.polygons.get(current)
        if poly is None:
            continue
        for edge in poly.linked_edges():
            neighbor = plan.owner_of(edge.linked_edge_id)
            if neighbor is None or neighbor == exclude or neighbor in group:
                continue
            group.add(neighbor)
            queue.append(neighbor)
    return group


def connected_components(plan: FloorPlan) -> List[Set[str]]:
    """All link components, in first-seen polygon order."""
    seen: Set[str] = set()
    components: List[Set[str]] = []
    for pid in plan.polygons:
        if pid in seen:
            continue
        component = connected_group(pid, plan)
        seen |= component
        components.append(component)
    return components


def mint_group_id(taken: Iterable[str]) -> str:
    """Return a group id that collides with none of *taken*."""
    used = set(taken)
    while True:
        candidate = f"group-{uuid.uuid4().hex[:12]}"
        if candidate not in used:
            return candidate


def recalculate_groups(plan: FloorPlan) -> FloorPlan:
    """Recompute every group from scratch.

    Needed after any unlink or polygon deletion, since removing a single
    link can split one assembly into several.  Each component with more
    than one polygon gets a freshly minted id; singletons lose theirs.
    """
    taken = {p.group_id for p in plan if p.group_id is not None}
    assignment: Dict[str, Optional[str]] = {}
    for component in connected_components(plan):
        if len(component) > 1:
            group_id = mint_group_id(taken)
            taken.add(group_id)
        else:
            group_id = None
        for pid in component:
            assignment[pid] = group_id

    return FloorPlan(
        (
            p if p.group_id == assignment[p.id] else replace(p, group_id=assignment[p.id])
            for p in plan
        ),
        dict(plan.metadata),
    )
