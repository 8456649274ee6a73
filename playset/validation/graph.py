"""Connection graph helpers shared by the rule sets."""

from __future__ import annotations

from collections import deque

from playset.design.models import Design


def build_connection_graph(design: Design) -> dict[str, set[str]]:
    """Undirected adjacency keyed by instance ID.

    Every component gets an entry, even with no connections.  Edges to
    instance IDs missing from the design are ignored.
    """
    graph: dict[str, set[str]] = {c.instance_id: set() for c in design.components}
    for conn in design.all_connections():
        a, b = conn.from_instance_id, conn.to_instance_id
        if a in graph and b in graph and a != b:
            graph[a].add(b)
            graph[b].add(a)
    return graph


def find_connected(start: str, graph: dict[str, set[str]]) -> set[str]:
    """Every instance reachable from *start* (BFS), *start* included."""
    if start not in graph:
        return set()
    seen = {start}
    queue = deque([start])
    while queue:
        node = queue.popleft()
        for nb in graph[node]:
            if nb not in seen:
                seen.add(nb)
                queue.append(nb)
    return seen


def are_connected(a: str, b: str, graph: dict[str, set[str]]) -> bool:
    return b in find_connected(a, graph)
