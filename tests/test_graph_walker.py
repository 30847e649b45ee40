import random

import pytest

import musicbox.graph_walker
import musicbox.relation_graph


RelationGraph = musicbox.relation_graph.RelationGraph
GraphWalker = musicbox.graph_walker.GraphWalker


def _ring (size: int) -> RelationGraph:
	return RelationGraph.build(list(range(size)), lambda a, b: (b - a) % size in (1, size - 1))


def test_zero_length_walk_is_empty () -> None:

	walker = GraphWalker(_ring(5), random.Random(1))

	assert walker.random_walk(0) == []


def test_negative_length_rejected () -> None:

	walker = GraphWalker(_ring(5), random.Random(1))

	with pytest.raises(ValueError):
		walker.random_walk(-1)


def test_walk_follows_edges () -> None:

	"""Consecutive nodes of a walk on a connected graph are neighbors."""

	graph = _ring(6)
	walker = GraphWalker(graph, random.Random(3), start=0)
	walk = walker.random_walk(50)

	assert walk[0] == 0
	assert len(walk) == 50

	for a, b in zip(walk, walk[1:]):
		assert (b - a) % 6 in (1, 5)


def test_isolated_node_restarts_walk () -> None:

	"""A walk never gets stuck: an isolated node jumps to a random node."""

	graph = RelationGraph(["a", "b", "c"], [[1], [0], []])
	walker = GraphWalker(graph, random.Random(7), start=2)
	walk = walker.random_walk(20)

	assert len(walk) == 20
	assert walk[0] == "c"
	assert set(walk) <= {"a", "b", "c"}


def test_walks_continue_from_cursor () -> None:

	"""Two short walks equal one long walk with the same seed."""

	graph = _ring(8)
	split = GraphWalker(graph, random.Random(11), start=4)
	whole = GraphWalker(graph, random.Random(11), start=4)

	assert split.random_walk(5) + split.random_walk(5) == whole.random_walk(10)


def test_random_start () -> None:

	walker = GraphWalker(_ring(4), random.Random(2))

	assert walker.current() in range(4)


def test_out_of_range_start_rejected () -> None:

	with pytest.raises(ValueError):
		GraphWalker(_ring(3), start=3)


def test_empty_graph () -> None:

	"""Walking an empty graph yields nothing and reading the cursor fails."""

	walker = GraphWalker(RelationGraph([], []), random.Random(1))

	assert walker.index is None
	assert walker.random_walk(4) == []

	walker.advance()

	with pytest.raises(ValueError):
		walker.current()
