"""Rhythm cells and the co-occurrence rhythm graph.

A rhythm cell is one bar of sixteen sixteenth-note slots written as four
hexadecimal digits. Each digit covers one beat; its most significant bit is the
earliest slot of that beat, so ``"8000"`` is a single downbeat and ``"AAAA"``
is straight eighth notes.

Cells are related when they appear as the two halves of an eight-digit,
two-bar pattern in a reference corpus.
"""

import csv
import dataclasses
import importlib.resources
import io
import logging
import typing

import musicbox.relation_graph


logger = logging.getLogger(__name__)

STEPS_PER_BAR = 16
STEPS_PER_BEAT = 4
CELL_DIGITS = 4
PAIR_DIGITS = 8
DEFAULT_CELL = "8000"

BUNDLED_CORPUS = "rhythms.csv"


def normalize_cell (digits: str) -> str:

	"""Strip whitespace and upper-case a hex digit string (``"a 5 3 c"`` -> ``"A53C"``)."""

	return "".join(digits.split()).upper()


def parse_rhythm_hex (cell: str) -> typing.List[int]:

	"""Decode a hex rhythm cell into sorted sixteenth-note onset positions.

	Digit ``i`` covers slots ``4i`` to ``4i + 3``, most significant bit first.

	Example:
		```python
		parse_rhythm_hex("A53C")
		# [0, 2, 5, 7, 10, 11, 12, 13]
		```
	"""

	cell = normalize_cell(cell)

	if not cell:
		raise ValueError("Rhythm cell cannot be empty")

	onsets: typing.List[int] = []

	for i, digit in enumerate(cell):

		try:
			value = int(digit, 16)
		except ValueError:
			raise ValueError(f"Invalid hex digit {digit!r} in rhythm cell {cell!r}") from None

		for bit in range(3, -1, -1):
			if value & (1 << bit):
				onsets.append(i * STEPS_PER_BEAT + (3 - bit))

	return onsets


def split_pair (pair: str) -> typing.Tuple[str, str]:

	"""Split an eight-digit two-bar pattern into its two four-digit cells."""

	pair = normalize_cell(pair)

	if len(pair) != PAIR_DIGITS:
		raise ValueError(f"Expected {PAIR_DIGITS} hex digits, got {pair!r}")

	return pair[:CELL_DIGITS], pair[CELL_DIGITS:]


@dataclasses.dataclass(frozen=True)
class RhythmRecord:

	"""One corpus line."""

	mode: str
	numerator: int
	denominator: int
	onsets: int
	digits: str
	name: str = ""


def parse_rhythm_corpus (text: str) -> typing.List[RhythmRecord]:

	"""
	Parse corpus CSV text into records.

	The first line is a header. Each record is
	``mode,numerator,denominator,onsets,"digits"[,"name"]``. Lines that do
	not fit are skipped with a warning.
	"""

	records: typing.List[RhythmRecord] = []
	reader = csv.reader(io.StringIO(text.strip()))

	for line_number, row in enumerate(reader, start=1):

		if line_number == 1 or not row:
			continue

		if len(row) not in (5, 6) or not row[0].strip().isalnum():
			logger.warning(f"Could not parse rhythm corpus line {line_number}: {row}")
			continue

		try:
			record = RhythmRecord(
				mode = row[0].strip(),
				numerator = int(row[1]),
				denominator = int(row[2]),
				onsets = int(row[3]),
				digits = normalize_cell(row[4]),
				name = row[5] if len(row) > 5 else ""
			)
		except ValueError:
			logger.warning(f"Could not parse rhythm corpus line {line_number}: {row}")
			continue

		if not record.digits:
			logger.warning(f"Rhythm corpus line {line_number} has no digits")
			continue

		records.append(record)

	return records


def extract_cells_and_pairs (records: typing.Iterable[RhythmRecord]) -> typing.Tuple[typing.Set[str], typing.List[str]]:

	"""
	Pick out one-bar cells and two-bar pairs from hex-mode records.
	"""

	cells: typing.Set[str] = set()
	pairs: typing.List[str] = []

	for record in records:

		if record.mode != "hex":
			continue

		if record.numerator == 4 and len(record.digits) == CELL_DIGITS:
			cells.add(record.digits)

		elif record.numerator == 8 and len(record.digits) == PAIR_DIGITS:
			pairs.append(record.digits)

	return cells, pairs


def build_rhythm_graph (pairs: typing.Iterable[str]) -> musicbox.relation_graph.RelationGraph[str]:

	"""Connect cells that form the two halves of a pair.

	Only cells that occur in some pair become nodes, so the graph has no
	isolated nodes. A pair that repeats one cell relates nothing and is ignored.
	"""

	connections: typing.Dict[str, typing.Set[str]] = {}

	for pair in pairs:

		first, second = split_pair(pair)

		if first == second:
			continue

		connections.setdefault(first, set()).add(second)
		connections.setdefault(second, set()).add(first)

	nodes = sorted(connections)
	index = {node: i for i, node in enumerate(nodes)}
	adjacency = [sorted(index[other] for other in connections[node]) for node in nodes]

	graph = musicbox.relation_graph.RelationGraph(nodes, adjacency)
	graph.log_summary("Rhythm")

	return graph


def read_bundled_corpus () -> str:

	"""Return the text of the corpus shipped with the package."""

	return importlib.resources.files("musicbox").joinpath("data").joinpath(BUNDLED_CORPUS).read_text(encoding="utf-8")


def load_rhythm_graph (path: typing.Optional[str] = None) -> musicbox.relation_graph.RelationGraph[str]:

	"""
	Build the rhythm graph from a corpus file, or from the bundled corpus.
	"""

	if path is None:
		text = read_bundled_corpus()
	else:
		with open(path, "r", encoding="utf-8") as f:
			text = f.read()

	cells, pairs = extract_cells_and_pairs(parse_rhythm_corpus(text))

	logger.info(f"Rhythm corpus: {len(cells)} one-bar cells, {len(pairs)} two-bar pairs")

	return build_rhythm_graph(pairs)
