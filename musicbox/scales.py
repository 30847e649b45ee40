"""The reference eight-note scale and the chord subsets drawn from it.

The scale is the bebop set ``{0, 1, 2, 3, 5, 7, 8, 10}``. Each phrase moves it
a perfect fifth up or down, so harmony drifts around the circle of fifths. The
key of a rotation sits four semitones below the rotation offset.
"""

import itertools
import random
import typing

import musicbox.pitch_class_set
import musicbox.relation_graph


REFERENCE_SCALE: typing.Tuple[int, ...] = (0, 1, 2, 3, 5, 7, 8, 10)
KEY_OFFSET = 4
FIFTH = 7

SUBSET_SIZES: typing.Tuple[int, ...] = (3, 4, 4, 5)


def rotated_scale (rotation: int) -> typing.List[int]:

	"""Return the reference scale transposed by ``rotation``, sorted ascending."""

	return sorted((pc + rotation) % 12 for pc in REFERENCE_SCALE)


def key_from_rotation (rotation: int) -> int:

	return (rotation - KEY_OFFSET) % 12


def rotate_by_fifth (rotation: int, rng: random.Random) -> int:

	"""Move the rotation a fifth up or down with equal probability."""

	direction = FIFTH if rng.random() < 0.5 else -FIFTH

	return (rotation + direction) % 12


def consonant_subsets (scale: typing.Sequence[int], size: int) -> typing.List[musicbox.pitch_class_set.PitchClassSet]:

	"""
	Return every ``size``-note subset of ``scale`` without minor-second content,
	in combination order.
	"""

	subsets = []

	for combination in itertools.combinations(sorted(scale), size):
		pcs = musicbox.pitch_class_set.PitchClassSet.from_pitch_classes(combination)
		if musicbox.relation_graph.is_consonant(pcs):
			subsets.append(pcs)

	return subsets


def key_relative_sort_key (key: int) -> typing.Callable[[musicbox.pitch_class_set.PitchClassSet], typing.List[int]]:

	"""Sort chords by their members after transposing the key down to C.

	Lists compare element by element and a proper prefix sorts first, so this
	is lexicographic order with length as the tie-break.
	"""

	def sort_key (pcs: musicbox.pitch_class_set.PitchClassSet) -> typing.List[int]:
		return pcs.rotate(-key).pitch_classes()

	return sort_key


def sort_by_key (chords: typing.Iterable[musicbox.pitch_class_set.PitchClassSet], key: int) -> typing.List[musicbox.pitch_class_set.PitchClassSet]:

	return sorted(chords, key=key_relative_sort_key(key))
