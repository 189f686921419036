# src/todo_planner/planner/order_solver.py

from __future__ import annotations

"""
Order solver.

Turns a priority graph into one recommended visiting order using a greedy
nearest-unvisited walk:

- start at the node that is cheapest to enter (highest priority in a complete graph),
- from the current node run Dijkstra over the whole graph,
- move to the unvisited node with the smallest shortest-path distance,
- repeat until every node is visited.

Ties are broken by ascending todo id, so the same graph always yields the same order.
This is a heuristic, not a travelling-salesman solution.
"""

import heapq
import logging
import math

from ..core.errors import InvalidGraphError
from .graph import Graph

logger = logging.getLogger(__name__)


def validate_weights(graph: Graph) -> None:
    for edge in graph.edges():
        w = edge.weight
        if not math.isfinite(w) or w <= 0.0:
            raise InvalidGraphError(
                f"invalid edge weight {w!r} on {edge.source}->{edge.target}"
            )


def shortest_distances(graph: Graph, source: int) -> dict[int, float]:
    """Single-source shortest path (Dijkstra, binary heap keyed by (distance, id))."""
    dist: dict[int, float] = {source: 0.0}
    heap: list[tuple[float, int]] = [(0.0, source)]
    settled: set[int] = set()

    while heap:
        d, node = heapq.heappop(heap)
        if node in settled:
            continue
        settled.add(node)

        for neighbor, weight in graph.neighbors(node).items():
            nd = d + weight
            if nd < dist.get(neighbor, math.inf):
                dist[neighbor] = nd
                heapq.heappush(heap, (nd, neighbor))

    return dist


def _entry_costs(graph: Graph) -> dict[int, float]:
    # Cheapest edge leading into each node; nodes nobody points at cost 0.
    costs = {todo_id: math.inf for todo_id in graph.nodes}
    for edge in graph.edges():
        if edge.weight < costs[edge.target]:
            costs[edge.target] = edge.weight
    return {k: (0.0 if math.isinf(v) else v) for k, v in costs.items()}


def _pick(candidates: dict[int, float]) -> int:
    return min(candidates.items(), key=lambda kv: (kv[1], kv[0]))[0]


def optimal_order(graph: Graph) -> list[int]:
    """
    Return a permutation of the graph's todo ids in recommended order.

    Raises InvalidGraphError when any edge weight is non-positive or non-finite.
    The graph is not modified.
    """
    validate_weights(graph)

    if not graph.nodes:
        return []
    if len(graph.nodes) == 1:
        return list(graph.nodes)

    entry = _entry_costs(graph)
    unvisited = set(graph.nodes)

    current = _pick(entry)
    order = [current]
    unvisited.discard(current)

    while unvisited:
        dist = shortest_distances(graph, current)
        reachable = {n: dist[n] for n in unvisited if n in dist}

        if reachable:
            current = _pick(reachable)
        else:
            # Disconnected remainder: restart from its cheapest entry point.
            current = _pick({n: entry[n] for n in unvisited})
            logger.debug("Order solver restart at todo_id=%s (unreachable remainder)", current)

        order.append(current)
        unvisited.discard(current)

    return order
