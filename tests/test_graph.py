# tests/test_graph.py

from __future__ import annotations

import math

import pytest

from todo_planner.planner.graph import Graph, Node, build_graph, edge_weight
from todo_planner.todos.todo_models import PriorityRecord


def _records(*pairs: tuple[int, float]) -> list[PriorityRecord]:
    return [PriorityRecord(todo_id=i, priority_score=s) for i, s in pairs]


@pytest.mark.parametrize("n", [0, 1, 2, 5, 12])
def test_edge_count_is_n_times_n_minus_one(n: int) -> None:
    graph = build_graph(_records(*[(i, float(i % 4)) for i in range(1, n + 1)]))

    assert len(graph) == n
    assert graph.edge_count() == n * (n - 1)
    pairs = {(e.source, e.target) for e in graph.edges()}
    assert len(pairs) == n * (n - 1)
    assert all(s != t for s, t in pairs)


def test_build_graph_is_complete_and_directed() -> None:
    graph = build_graph(_records((1, 5.0), (2, 0.0), (3, 2.0)))

    assert len(graph) == 3
    assert graph.edge_count() == 6
    for edge in graph.edges():
        assert edge.source != edge.target

    # weight depends on the target only
    assert graph.weight(1, 2) == pytest.approx(1.0)
    assert graph.weight(3, 2) == pytest.approx(1.0)
    assert graph.weight(2, 1) == pytest.approx(1 / 6)
    assert graph.weight(1, 3) == pytest.approx(1 / 3)
    assert graph.weight(1, 1) is None


def test_non_negative_scores_give_weights_in_unit_interval() -> None:
    graph = build_graph(_records((1, 0.0), (2, 0.5), (3, 12.0), (4, 1e6)))
    for edge in graph.edges():
        assert 0.0 < edge.weight <= 1.0


def test_empty_input_builds_empty_graph() -> None:
    graph = build_graph([])
    assert len(graph) == 0
    assert graph.edge_count() == 0
    assert list(graph.edges()) == []


def test_single_record_has_no_edges() -> None:
    graph = build_graph(_records((7, 3.0)))
    assert list(graph.nodes) == [7]
    assert graph.edge_count() == 0


def test_edge_weight_of_minus_one_is_infinite() -> None:
    assert math.isinf(edge_weight(-1.0))
    assert edge_weight(-2.0) == pytest.approx(-1.0)


def test_add_edge_rejects_unknown_nodes() -> None:
    graph = Graph()
    graph.add_node(Node(todo_id=1, priority_score=0.0))
    with pytest.raises(KeyError):
        graph.add_edge(1, 2, 0.5)
