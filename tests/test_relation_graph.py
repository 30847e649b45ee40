import logging

import pytest

import musicbox.pitch_class_set
import musicbox.relation_graph


PitchClassSet = musicbox.pitch_class_set.PitchClassSet
RelationGraph = musicbox.relation_graph.RelationGraph


def _pcs (*pitch_classes: int) -> PitchClassSet:
	return PitchClassSet.from_pitch_classes(pitch_classes)


def _path_graph () -> RelationGraph:
	return RelationGraph.build([1, 2, 3, 4], lambda a, b: abs(a - b) == 1)


def test_build_tests_each_pair () -> None:

	"""Related pairs become undirected edges with sorted neighbor lists."""

	graph = _path_graph()

	assert graph.nodes == (1, 2, 3, 4)
	assert graph.adjacency == ((1,), (0, 2), (1, 3), (2,))
	assert graph.edge_count() == 3


def test_components_and_isolated_nodes () -> None:

	graph = RelationGraph.build([1, 2, 5, 6, 9], lambda a, b: abs(a - b) == 1)

	assert graph.connected_components() == [[0, 1], [2, 3], [4]]
	assert graph.isolated_nodes() == [4]


def test_empty_graph () -> None:

	graph = RelationGraph([], [])

	assert len(graph) == 0
	assert graph.connected_components() == []


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def test_asymmetric_adjacency_rejected () -> None:

	with pytest.raises(ValueError, match="symmetric"):
		RelationGraph(["a", "b"], [[1], []])


def test_self_loop_rejected () -> None:

	with pytest.raises(ValueError, match="itself"):
		RelationGraph(["a", "b"], [[0, 1], [0]])


def test_out_of_range_neighbor_rejected () -> None:

	with pytest.raises(ValueError, match="out-of-range"):
		RelationGraph(["a"], [[3]])


def test_row_count_must_match_nodes () -> None:

	with pytest.raises(ValueError):
		RelationGraph(["a", "b"], [[]])


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def test_save_and_load_rhythm_style_graph (tmp_path) -> None:

	"""String nodes survive a JSON round trip."""

	graph = RelationGraph(["8000", "8080", "8888"], [[1], [0, 2], [1]])
	path = str(tmp_path / "graph.json")

	graph.save(path)
	loaded = RelationGraph.load(path, str)

	assert loaded.nodes == graph.nodes
	assert loaded.adjacency == graph.adjacency


def test_save_and_load_chord_graph (tmp_path, chord_graph: RelationGraph) -> None:

	"""Pitch-class-set nodes are stored as binary strings."""

	path = str(tmp_path / "chords.json")

	chord_graph.save(path, musicbox.relation_graph.encode_pitch_class_set)
	loaded = RelationGraph.load(path, musicbox.relation_graph.decode_pitch_class_set)

	assert loaded.nodes == chord_graph.nodes
	assert loaded.adjacency == chord_graph.adjacency


def test_from_dict_requires_keys () -> None:

	with pytest.raises(ValueError):
		RelationGraph.from_dict({"nodes": []}, str)


# ---------------------------------------------------------------------------
# Chord predicates
# ---------------------------------------------------------------------------


def test_relative_major_and_minor_are_related () -> None:

	"""C major and A minor share two tones and the same interval content."""

	relation = musicbox.relation_graph.chord_relation(min_common=1)

	assert relation(_pcs(0, 4, 7), _pcs(9, 0, 4))
	assert relation(_pcs(9, 0, 4), _pcs(0, 4, 7))


def test_relation_requires_enough_common_tones () -> None:

	relation = musicbox.relation_graph.chord_relation(min_common=3)

	assert not relation(_pcs(0, 4, 7), _pcs(9, 0, 4))


def test_relation_excludes_identical_sets () -> None:

	relation = musicbox.relation_graph.chord_relation(min_common=1)

	assert not relation(_pcs(0, 4, 7), _pcs(0, 4, 7))


def test_relation_respects_cardinality () -> None:

	strict = musicbox.relation_graph.chord_relation(min_common=1, interval_similarity=False)
	loose = musicbox.relation_graph.chord_relation(min_common=1, equal_cardinality=False, interval_similarity=False)

	assert not strict(_pcs(0, 4, 7), _pcs(0, 4, 7, 11))
	assert loose(_pcs(0, 4, 7), _pcs(0, 4, 7, 11))


def test_interval_vector_rotation_and_reversal () -> None:

	"""(1,0,0,0,0,0) matches its rotations and its reversal."""

	semitone = _pcs(0, 1)

	assert musicbox.relation_graph.interval_vectors_rotation_or_reversal(semitone, _pcs(0, 2))
	assert musicbox.relation_graph.interval_vectors_rotation_or_reversal(semitone, _pcs(0, 6))


def test_distant_interval_vectors () -> None:

	"""A chromatic cluster and an augmented triad share nothing in interval content."""

	cluster = _pcs(0, 1, 2)
	augmented = _pcs(0, 4, 8)

	assert not musicbox.relation_graph.close_interval_vectors(cluster, augmented)
	assert not musicbox.relation_graph.interval_vectors_rotation_or_reversal(cluster, augmented)

	relation = musicbox.relation_graph.chord_relation(min_common=1)
	assert not relation(cluster, augmented)


def test_is_consonant () -> None:

	assert musicbox.relation_graph.is_consonant(_pcs(0, 4, 7, 10))
	assert not musicbox.relation_graph.is_consonant(_pcs(0, 4, 7, 11))


# ---------------------------------------------------------------------------
# Tetrad graph
# ---------------------------------------------------------------------------


def test_tetrad_graph_nodes (chord_graph: RelationGraph) -> None:

	"""105 four-note sets avoid every minor second."""

	assert len(chord_graph) == 105
	assert all(pcs.cardinality == 4 for pcs in chord_graph.nodes)
	assert all(musicbox.relation_graph.is_consonant(pcs) for pcs in chord_graph.nodes)


def test_tetrad_graph_edges_share_three_tones (chord_graph: RelationGraph) -> None:

	for i, neighbors in enumerate(chord_graph.adjacency):
		for j in neighbors:
			assert i in chord_graph.neighbors(j)
			assert chord_graph.nodes[i].common_tones(chord_graph.nodes[j]) >= 3


def test_build_chord_graph_logs_summary (caplog: pytest.LogCaptureFixture) -> None:

	universe = [_pcs(0, 4, 7), _pcs(0, 3, 7), _pcs(2, 6, 9)]

	with caplog.at_level(logging.INFO, logger="musicbox.relation_graph"):
		graph = musicbox.relation_graph.build_chord_graph(universe, cardinality=3, min_common=2)

	assert graph.adjacency == ((1,), (0,), ())
	assert "Chord graph: 3 nodes, 1 edges" in caplog.text
