"""Pitch-class sets over the twelve-tone universe.

A :class:`PitchClassSet` is a 12-slot membership vector (index 0 = C) with two
integer tags carried over from enumeration:

- ``order`` - position of the set's necklace within its cardinality class.
- ``transpose`` - rotation offset from the canonical representative.

The tags never take part in equality or hashing, so two sets with the same
members are the same chord regardless of how they were produced.
"""

import dataclasses
import typing


UNIVERSE_SIZE = 12
INTERVAL_CLASSES = 6


@dataclasses.dataclass(frozen=True)
class PitchClassSet:

	"""
	An immutable set of pitch classes with enumeration tags.
	"""

	bits: typing.Tuple[bool, ...]
	order: int = dataclasses.field(default=0, compare=False)
	transpose: int = dataclasses.field(default=0, compare=False)


	def __post_init__ (self) -> None:

		if len(self.bits) != UNIVERSE_SIZE:
			raise ValueError(f"Membership vector must have {UNIVERSE_SIZE} entries, got {len(self.bits)}")


	@classmethod
	def from_pitch_classes (cls, pitch_classes: typing.Iterable[int], order: int = 0, transpose: int = 0) -> "PitchClassSet":

		"""Build a set from pitch class integers. Values outside 0-11 are ignored."""

		members = {pc for pc in pitch_classes if 0 <= pc < UNIVERSE_SIZE}

		return cls(
			bits = tuple(pc in members for pc in range(UNIVERSE_SIZE)),
			order = order,
			transpose = transpose
		)


	@classmethod
	def from_binary_string (cls, text: str) -> "PitchClassSet":

		"""
		Parse a 12-character ``0``/``1`` string (first character = pitch class 0).
		"""

		if len(text) != UNIVERSE_SIZE or any(c not in "01" for c in text):
			raise ValueError(f"Expected a {UNIVERSE_SIZE}-digit binary string, got {text!r}")

		return cls(bits=tuple(c == "1" for c in text))


	@property
	def cardinality (self) -> int:

		"""Number of pitch classes in the set."""

		return sum(1 for b in self.bits if b)


	def __contains__ (self, pitch_class: object) -> bool:

		if not isinstance(pitch_class, int) or not 0 <= pitch_class < UNIVERSE_SIZE:
			return False

		return self.bits[pitch_class]


	def pitch_classes (self) -> typing.List[int]:

		"""Return the members in ascending order."""

		return [pc for pc in range(UNIVERSE_SIZE) if self.bits[pc]]


	def interval_vector (self) -> typing.Tuple[int, ...]:

		"""
		Return the interval-class vector.

		Entry ``i`` counts unordered member pairs whose distance, folded into
		1-6 semitones, equals ``i + 1``. The entries always sum to C(k, 2).
		"""

		pitches = self.pitch_classes()
		vector = [0] * INTERVAL_CLASSES

		for i, low in enumerate(pitches):
			for high in pitches[i + 1:]:
				interval = high - low
				if interval > 6:
					interval = UNIVERSE_SIZE - interval
				vector[interval - 1] += 1

		return tuple(vector)


	def rotate (self, steps: int) -> "PitchClassSet":

		"""Transpose every member by ``steps`` semitones (mod 12)."""

		return PitchClassSet.from_pitch_classes(
			((pc + steps) % UNIVERSE_SIZE for pc in self.pitch_classes()),
			order = self.order,
			transpose = (self.transpose + steps) % UNIVERSE_SIZE
		)


	def common_tones (self, other: "PitchClassSet") -> int:

		"""Count the pitch classes shared with another set."""

		return sum(1 for a, b in zip(self.bits, other.bits) if a and b)


	def to_binary_string (self) -> str:

		return "".join("1" if b else "0" for b in self.bits)


	def __str__ (self) -> str:

		return self.to_binary_string()


EMPTY_SET = PitchClassSet(bits=(False,) * UNIVERSE_SIZE, order=1)
