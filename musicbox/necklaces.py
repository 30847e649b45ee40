"""Necklace enumeration and the pitch-class-set universe built from it.

Necklaces are generated with the fixed-density FKM recursion: positions are
filled left to right, each either copying the symbol one period back or
raising it (which starts a new period). A completed string is kept only when
its length is a multiple of the current period, which yields every canonical
(lexicographically least) rotation representative exactly once, in
lexicographic order.

The pitch-class-set universe is derived from the binary necklaces of length 12
and must come out in the same order on every run, because precomputed graph
files refer to nodes by index.
"""

import typing

import musicbox.pitch_class_set


Necklace = typing.Tuple[int, ...]


def generate_necklaces (length: int, alphabet_size: int, buffer: typing.Optional[typing.List[int]] = None) -> typing.List[Necklace]:

	"""Return every canonical necklace of ``length`` symbols drawn from ``range(alphabet_size)``.

	Parameters:
		length: Number of beads (must be positive).
		alphabet_size: Number of distinct symbols (must be positive).
		buffer: Optional scratch list of at least ``length + 1`` integers. It is
			overwritten and can be reused across calls to avoid reallocating.

	Example:
		```python
		generate_necklaces(4, 2)
		# [(0, 0, 0, 0), (0, 0, 0, 1), (0, 0, 1, 1), (0, 1, 0, 1), (0, 1, 1, 1), (1, 1, 1, 1)]
		```
	"""

	if length <= 0:
		raise ValueError("Necklace length must be positive")

	if alphabet_size <= 0:
		raise ValueError("Alphabet size must be positive")

	if buffer is None:
		buffer = [0] * (length + 1)

	elif len(buffer) < length + 1:
		raise ValueError(f"Scratch buffer needs at least {length + 1} slots")

	for i in range(length + 1):
		buffer[i] = 0

	output: typing.List[Necklace] = []

	def extend (t: int, p: int) -> None:

		if t > length:
			if length % p == 0:
				output.append(tuple(buffer[1:length + 1]))
			return

		buffer[t] = buffer[t - p]
		extend(t + 1, p)

		for symbol in range(buffer[t - p] + 1, alphabet_size):
			buffer[t] = symbol
			extend(t + 1, t)

	extend(1, 1)

	return output


def necklace_period (necklace: typing.Sequence[int]) -> int:

	"""Return the smallest ``p`` dividing the length such that the string repeats every ``p`` symbols."""

	n = len(necklace)

	for p in range(1, n + 1):
		if n % p == 0 and all(necklace[i] == necklace[i % p] for i in range(n)):
			return p

	return n


def generate_all_pitch_class_sets () -> typing.List[musicbox.pitch_class_set.PitchClassSet]:

	"""
	Enumerate every pitch-class set in the 12-tone universe, plus the empty set.

	Necklaces are visited in descending order of their last differing bead.
	Each one contributes one set per distinct rotation (its period), tagged
	with a running per-cardinality ``order`` (1-based) and the rotation as
	``transpose``. Bead ``i`` maps to pitch class ``11 - i`` before rotation.
	The empty set comes last.
	"""

	size = musicbox.pitch_class_set.UNIVERSE_SIZE
	necklaces = sorted(generate_necklaces(size, 2), key=lambda n: tuple(-bead for bead in reversed(n)))

	output: typing.List[musicbox.pitch_class_set.PitchClassSet] = []
	order_count = [0] * size

	for necklace in necklaces:

		period = necklace_period(necklace)
		k = sum(necklace)

		if k == 0:
			continue

		for rotation in range(period):

			pitches = [((size - (i + 1)) + rotation) % size for i in range(size) if necklace[i] == 1]

			output.append(
				musicbox.pitch_class_set.PitchClassSet.from_pitch_classes(
					pitches,
					order = order_count[k - 1] + 1,
					transpose = rotation
				)
			)

		order_count[k - 1] += 1

	output.append(musicbox.pitch_class_set.EMPTY_SET)

	return output
