# src/todo_planner/planner/graph.py

from __future__ import annotations

"""
Priority graph.

Every open todo becomes a node. Every ordered pair of distinct nodes gets a directed
edge whose weight is the inverse of the *target's* priority:

    weight(i -> j) = 1 / (score_j + 1)

so moving towards an important todo is cheap. Because the weight only depends on the
target, i -> j and j -> i usually differ, and the graph is stored as directed.
"""

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from ..todos.todo_models import PriorityRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Node:
    todo_id: int
    priority_score: float


@dataclass(slots=True, frozen=True)
class Edge:
    source: int
    target: int
    weight: float


@dataclass(slots=True)
class Graph:
    """Directed weighted graph keyed by todo id (insertion order is kept)."""

    nodes: dict[int, Node] = field(default_factory=dict)
    adjacency: dict[int, dict[int, float]] = field(default_factory=dict)

    def add_node(self, node: Node) -> None:
        self.nodes[node.todo_id] = node
        self.adjacency.setdefault(node.todo_id, {})

    def add_edge(self, source: int, target: int, weight: float) -> None:
        if source not in self.nodes or target not in self.nodes:
            raise KeyError(f"unknown node in edge {source}->{target}")
        self.adjacency[source][target] = float(weight)

    def neighbors(self, todo_id: int) -> dict[int, float]:
        return self.adjacency.get(todo_id, {})

    def edges(self) -> Iterator[Edge]:
        for source, targets in self.adjacency.items():
            for target, weight in targets.items():
                yield Edge(source=source, target=target, weight=weight)

    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.adjacency.values())

    def weight(self, source: int, target: int) -> float | None:
        return self.adjacency.get(source, {}).get(target)

    def __len__(self) -> int:
        return len(self.nodes)


def edge_weight(priority_score: float) -> float:
    """Weight of an edge that leads into a node with the given score."""
    denom = float(priority_score) + 1.0
    if denom == 0.0:
        return math.inf
    return 1.0 / denom


def build_graph(records: Iterable[PriorityRecord]) -> Graph:
    """
    Build the complete directed priority graph.

    Todo ids are expected to be unique; scores are not validated here (the order
    solver rejects graphs whose weights came out non-positive or non-finite).
    """
    graph = Graph()
    for rec in records:
        graph.add_node(Node(todo_id=int(rec.todo_id), priority_score=float(rec.priority_score)))

    nodes = list(graph.nodes.values())
    for node in nodes:
        for neighbor in nodes:
            if node.todo_id == neighbor.todo_id:
                continue
            graph.add_edge(node.todo_id, neighbor.todo_id, edge_weight(neighbor.priority_score))

    logger.debug("Priority graph built nodes=%d edges=%d", len(graph), graph.edge_count())
    return graph
