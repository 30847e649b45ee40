import json
import logging
import typing

import musicbox.pitch_class_set


logger = logging.getLogger(__name__)

NodeType = typing.TypeVar("NodeType")
RelationType = typing.Callable[[typing.Any, typing.Any], bool]

PitchClassSet = musicbox.pitch_class_set.PitchClassSet


class RelationGraph (typing.Generic[NodeType]):

	"""
	An immutable undirected graph stored as a node list plus index adjacency.
	"""

	def __init__ (self, nodes: typing.Sequence[NodeType], adjacency: typing.Sequence[typing.Sequence[int]]) -> None:

		"""
		Validate and store the graph. Adjacency must be symmetric and loop-free.
		"""

		if len(nodes) != len(adjacency):
			raise ValueError(f"Adjacency has {len(adjacency)} rows for {len(nodes)} nodes")

		count = len(nodes)
		rows: typing.List[typing.Tuple[int, ...]] = []

		for i, neighbors in enumerate(adjacency):

			for j in neighbors:
				if not 0 <= j < count:
					raise ValueError(f"Node {i} has out-of-range neighbor {j}")
				if j == i:
					raise ValueError(f"Node {i} is adjacent to itself")

			rows.append(tuple(sorted(set(neighbors))))

		for i, neighbors in enumerate(rows):
			for j in neighbors:
				if i not in rows[j]:
					raise ValueError(f"Adjacency is not symmetric: {i} -> {j} has no reverse edge")

		self._nodes: typing.Tuple[NodeType, ...] = tuple(nodes)
		self._adjacency: typing.Tuple[typing.Tuple[int, ...], ...] = tuple(rows)


	@classmethod
	def build (cls, nodes: typing.Sequence[NodeType], relation: RelationType) -> "RelationGraph[NodeType]":

		"""Test every unordered pair once and connect the related ones."""

		adjacency: typing.List[typing.List[int]] = [[] for _ in nodes]

		for i in range(len(nodes)):
			for j in range(i + 1, len(nodes)):
				if relation(nodes[i], nodes[j]):
					adjacency[i].append(j)
					adjacency[j].append(i)

		return cls(nodes, adjacency)


	@property
	def nodes (self) -> typing.Tuple[NodeType, ...]:
		return self._nodes


	@property
	def adjacency (self) -> typing.Tuple[typing.Tuple[int, ...], ...]:
		return self._adjacency


	def __len__ (self) -> int:
		return len(self._nodes)


	def neighbors (self, index: int) -> typing.Tuple[int, ...]:

		"""Return the sorted neighbor indices of a node."""

		return self._adjacency[index]


	def edge_count (self) -> int:

		return sum(len(row) for row in self._adjacency) // 2


	def isolated_nodes (self) -> typing.List[int]:

		return [i for i, row in enumerate(self._adjacency) if not row]


	def connected_components (self) -> typing.List[typing.List[int]]:

		"""
		Return the connected components as sorted index lists.
		"""

		visited: typing.Set[int] = set()
		components: typing.List[typing.List[int]] = []

		for start in range(len(self._nodes)):

			if start in visited:
				continue

			stack = [start]
			component: typing.List[int] = []

			while stack:
				node = stack.pop()
				if node in visited:
					continue
				visited.add(node)
				component.append(node)
				stack.extend(n for n in self._adjacency[node] if n not in visited)

			components.append(sorted(component))

		return components


	def log_summary (self, label: str) -> None:

		"""Log node, edge, component and isolated-node counts."""

		logger.info(
			f"{label} graph: {len(self)} nodes, {self.edge_count()} edges, "
			f"{len(self.connected_components())} components ({len(self.isolated_nodes())} isolated)"
		)


	def to_dict (self, encode: typing.Callable[[NodeType], typing.Any] = str) -> typing.Dict[str, typing.Any]:

		return {
			"nodes": [encode(node) for node in self._nodes],
			"adjacency": [list(row) for row in self._adjacency],
		}


	@classmethod
	def from_dict (cls, data: typing.Dict[str, typing.Any], decode: typing.Callable[[typing.Any], NodeType]) -> "RelationGraph[NodeType]":

		if "nodes" not in data or "adjacency" not in data:
			raise ValueError("Graph data needs 'nodes' and 'adjacency' keys")

		return cls([decode(node) for node in data["nodes"]], data["adjacency"])


	def save (self, path: str, encode: typing.Callable[[NodeType], typing.Any] = str) -> None:

		"""Write the graph as ``{"nodes": [...], "adjacency": [[...], ...]}`` JSON."""

		with open(path, "w") as f:
			json.dump(self.to_dict(encode), f)

		logger.info(f"Wrote graph with {len(self)} nodes to {path}")


	@classmethod
	def load (cls, path: str, decode: typing.Callable[[typing.Any], NodeType]) -> "RelationGraph[NodeType]":

		with open(path, "r") as f:
			data = json.load(f)

		return cls.from_dict(data, decode)


# ---------------------------------------------------------------------------
# Chord-similarity predicates
# ---------------------------------------------------------------------------

def pcs_different (a: PitchClassSet, b: PitchClassSet) -> bool:

	"""True when the two sets have different members."""

	return a != b


def close_interval_vectors (a: PitchClassSet, b: PitchClassSet, max_differences: int = 2) -> bool:

	"""True when the interval vectors differ in at most ``max_differences`` positions."""

	differences = sum(1 for x, y in zip(a.interval_vector(), b.interval_vector()) if x != y)

	return differences <= max_differences


def interval_vectors_rotation_or_reversal (a: PitchClassSet, b: PitchClassSet) -> bool:

	"""
	True when ``b``'s interval vector equals some rotation of ``a``'s vector
	or of its reversal.
	"""

	va = list(a.interval_vector())
	vb = list(b.interval_vector())

	for candidate in (va, va[::-1]):
		for r in range(len(candidate)):
			if candidate[r:] + candidate[:r] == vb:
				return True

	return False


def share_common_notes (a: PitchClassSet, b: PitchClassSet, min_common: int, equal_cardinality: bool = True) -> bool:

	"""
	True when the sets share at least ``min_common`` pitch classes.

	With ``equal_cardinality`` the sets must also be the same size.
	"""

	if equal_cardinality and a.cardinality != b.cardinality:
		return False

	return a.common_tones(b) >= min_common


def chord_relation (min_common: int = 1, equal_cardinality: bool = True, interval_similarity: bool = True) -> typing.Callable[[PitchClassSet, PitchClassSet], bool]:

	"""Create a chord-similarity predicate.

	Parameters:
		min_common: Minimum number of shared pitch classes.
		equal_cardinality: Only relate sets of the same size.
		interval_similarity: Also require the interval vectors to be close
			(at most 2 differing entries) or equal under rotation/reversal.

	Example:
		```python
		# The full similarity test: close content, shared tone, same size.
		relation = chord_relation(min_common=1)

		# Common-tone test alone, as used for the default tetrad graph.
		relation = chord_relation(min_common=3, interval_similarity=False)
		```
	"""

	def relation (a: PitchClassSet, b: PitchClassSet) -> bool:

		if not pcs_different(a, b):
			return False

		if interval_similarity and not (close_interval_vectors(a, b) or interval_vectors_rotation_or_reversal(a, b)):
			return False

		return share_common_notes(a, b, min_common, equal_cardinality)

	return relation


def is_consonant (pcs: PitchClassSet) -> bool:

	"""True when the set contains no minor-second (interval class 1) pairs."""

	return pcs.interval_vector()[0] == 0


def build_chord_graph (
	universe: typing.Iterable[PitchClassSet],
	cardinality: typing.Optional[int] = 4,
	consonant_only: bool = True,
	min_common: int = 3,
	equal_cardinality: bool = True,
	interval_similarity: bool = False
) -> RelationGraph[PitchClassSet]:

	"""
	Filter a pitch-class-set universe and connect similar chords.

	The defaults give the tetrad graph: four-note sets with no minor seconds,
	related when they share three pitch classes.
	"""

	nodes = [
		pcs for pcs in universe
		if (cardinality is None or pcs.cardinality == cardinality)
		and (not consonant_only or is_consonant(pcs))
	]

	graph = RelationGraph.build(
		nodes,
		chord_relation(
			min_common = min_common,
			equal_cardinality = equal_cardinality,
			interval_similarity = interval_similarity
		)
	)

	graph.log_summary("Chord")

	return graph


def encode_pitch_class_set (pcs: PitchClassSet) -> str:
	return pcs.to_binary_string()


def decode_pitch_class_set (text: typing.Any) -> PitchClassSet:
	return PitchClassSet.from_binary_string(str(text))
