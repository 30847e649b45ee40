import random
import typing

import musicbox.relation_graph


NodeType = typing.TypeVar("NodeType")


class GraphWalker (typing.Generic[NodeType]):

	"""
	A random-walk cursor over an immutable relation graph.

	Several walkers may share one graph; only the cursor is mutable.
	"""

	def __init__ (
		self,
		graph: musicbox.relation_graph.RelationGraph[NodeType],
		rng: typing.Optional[random.Random] = None,
		start: typing.Optional[int] = None
	) -> None:

		"""
		Place the cursor on ``start``, or on a uniformly random node.
		"""

		self.graph = graph
		self.rng = rng or random.Random()

		if start is not None and not 0 <= start < len(graph):
			raise ValueError(f"Start index {start} is outside a graph of {len(graph)} nodes")

		if start is None and len(graph) > 0:
			start = self.rng.randrange(len(graph))

		self.index: typing.Optional[int] = start


	def current (self) -> NodeType:

		"""
		Return the node under the cursor.
		"""

		if self.index is None:
			raise ValueError("Cannot read the current node of an empty graph")

		return self.graph.nodes[self.index]


	def advance (self) -> None:

		"""
		Move to a uniformly random neighbor, or restart anywhere from an isolated node.
		"""

		if self.index is None:
			return

		neighbors = self.graph.neighbors(self.index)

		if neighbors:
			self.index = self.rng.choice(neighbors)
		else:
			self.index = self.rng.randrange(len(self.graph))


	def random_walk (self, length: int) -> typing.List[NodeType]:

		"""
		Collect ``length`` nodes, stepping after each one.

		The cursor is left after the last node so consecutive walks continue
		from where the previous one stopped. An empty graph yields an empty list.
		"""

		if length < 0:
			raise ValueError("Walk length cannot be negative")

		if self.index is None:
			return []

		walk: typing.List[NodeType] = []

		for _ in range(length):
			walk.append(self.current())
			self.advance()

		return walk
