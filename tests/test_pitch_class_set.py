import itertools

import pytest

import musicbox.necklaces
import musicbox.pitch_class_set


PitchClassSet = musicbox.pitch_class_set.PitchClassSet


def test_interval_vector_of_major_triad () -> None:

	"""C major holds one minor third, one major third and one perfect fourth."""

	triad = PitchClassSet.from_pitch_classes([0, 4, 7])

	assert triad.interval_vector() == (0, 0, 1, 1, 1, 0)


def test_interval_vector_sums_to_pair_count () -> None:

	"""Every set's interval vector counts each unordered pair exactly once."""

	for pcs in musicbox.necklaces.generate_all_pitch_class_sets():
		k = pcs.cardinality
		assert sum(pcs.interval_vector()) == k * (k - 1) // 2


def test_interval_vector_is_transposition_invariant () -> None:

	"""Rotating a set never changes its interval content."""

	chord = PitchClassSet.from_pitch_classes([0, 1, 4, 6])

	for steps in range(12):
		assert chord.rotate(steps).interval_vector() == chord.interval_vector()


def test_rotate_wraps_around () -> None:

	"""Transposition is modulo 12 and tracks the rotation tag."""

	chord = PitchClassSet.from_pitch_classes([9, 11])
	rotated = chord.rotate(4)

	assert rotated.pitch_classes() == [1, 3]
	assert rotated.transpose == 4
	assert chord.rotate(-4).pitch_classes() == [5, 7]


def test_equality_ignores_tags () -> None:

	"""Order and transpose tags do not make two equal sets different."""

	a = PitchClassSet.from_pitch_classes([0, 4, 7], order=3, transpose=2)
	b = PitchClassSet.from_pitch_classes([7, 4, 0])

	assert a == b
	assert hash(a) == hash(b)
	assert len({a, b}) == 1


def test_membership_and_common_tones () -> None:

	"""Membership is by pitch class; common tones count the intersection."""

	c_major = PitchClassSet.from_pitch_classes([0, 4, 7])
	a_minor = PitchClassSet.from_pitch_classes([9, 0, 4])

	assert 4 in c_major
	assert 5 not in c_major
	assert 12 not in c_major
	assert c_major.common_tones(a_minor) == 2


# ---------------------------------------------------------------------------
# Binary strings
# ---------------------------------------------------------------------------


def test_binary_string_round_trip () -> None:

	"""The first character of the binary string is pitch class 0."""

	pcs = PitchClassSet.from_binary_string("100010010000")

	assert pcs.pitch_classes() == [0, 4, 7]
	assert str(pcs) == "100010010000"


@pytest.mark.parametrize("text", ["", "10001001000", "1000100100001", "10001001000x", "2000100100000"])
def test_binary_string_rejects_malformed_input (text: str) -> None:

	"""Wrong length or characters other than 0 and 1 are rejected."""

	with pytest.raises(ValueError):
		PitchClassSet.from_binary_string(text)


def test_wrong_sized_membership_vector_rejected () -> None:

	with pytest.raises(ValueError):
		PitchClassSet(bits=(True, False))


def test_empty_set () -> None:

	"""The empty set has no members and an all-zero interval vector."""

	empty = musicbox.pitch_class_set.EMPTY_SET

	assert empty.cardinality == 0
	assert empty.pitch_classes() == []
	assert empty.interval_vector() == (0,) * 6


def test_out_of_range_pitch_classes_ignored () -> None:

	pcs = PitchClassSet.from_pitch_classes([-1, 0, 12, 11])

	assert pcs.pitch_classes() == [0, 11]


def test_every_subset_round_trips_through_binary () -> None:

	"""Each of the 2^12 subsets keeps its members through the string form."""

	for bits in itertools.product([False, True], repeat=12):
		pcs = PitchClassSet(bits=bits)
		assert PitchClassSet.from_binary_string(pcs.to_binary_string()) == pcs
