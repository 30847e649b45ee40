import dataclasses
import enum
import logging
import random
import typing

import musicbox.graph_walker
import musicbox.pitch_class_set
import musicbox.rhythm
import musicbox.scales


logger = logging.getLogger(__name__)

BARS_PER_PHRASE = 8
WALK_LENGTH = 5

# Walk position held by each bar: the walk's start sits in bar 3, its far end in bar 7.
ARCH_PATTERN: typing.Tuple[int, ...] = (3, 2, 1, 0, 1, 2, 3, 4)

# Sorted chord index held by each two-bar slot.
CHORD_ORDER: typing.Tuple[int, ...] = (0, 2, 3, 1)
BARS_PER_CHORD = 2

PitchClassSet = musicbox.pitch_class_set.PitchClassSet


class PhraseStrategy (enum.Enum):

	"""How a phrase chooses its chords."""

	GRAPH_WALK = "graph_walk"
	SCALE_SUBSET = "scale_subset"


@dataclasses.dataclass(frozen=True)
class Phrase:

	"""
	An eight-bar cycle binding one chord and one rhythm cell to each bar.

	``rotation`` and ``key`` are set by the scale-subset strategy only.
	``degraded`` marks a phrase built from fallback material.
	"""

	chords: typing.Tuple[PitchClassSet, ...]
	rhythms: typing.Tuple[str, ...]
	strategy: PhraseStrategy
	rotation: typing.Optional[int] = None
	key: typing.Optional[int] = None
	degraded: bool = False


	def __post_init__ (self) -> None:

		if len(self.chords) != BARS_PER_PHRASE or len(self.rhythms) != BARS_PER_PHRASE:
			raise ValueError(f"A phrase needs {BARS_PER_PHRASE} chords and {BARS_PER_PHRASE} rhythm cells")


	def chord_at (self, bar: int) -> PitchClassSet:
		return self.chords[bar % BARS_PER_PHRASE]


	def rhythm_at (self, bar: int) -> str:
		return self.rhythms[bar % BARS_PER_PHRASE]


def arrange_arch (walk: typing.Sequence[typing.Any]) -> typing.List[typing.Any]:

	"""Lay a five-step walk out over eight bars as ``[w3, w2, w1, w0, w1, w2, w3, w4]``."""

	if len(walk) < WALK_LENGTH:
		raise ValueError(f"Arch arrangement needs {WALK_LENGTH} walk steps, got {len(walk)}")

	return [walk[i] for i in ARCH_PATTERN]


class PhraseGenerator:

	"""
	Builds successive phrases from the chord and rhythm graphs.

	Walk cursors and the scale rotation carry over from one phrase to the next.
	"""

	def __init__ (
		self,
		chord_walker: musicbox.graph_walker.GraphWalker[PitchClassSet],
		rhythm_walker: musicbox.graph_walker.GraphWalker[str],
		strategy: PhraseStrategy = PhraseStrategy.SCALE_SUBSET,
		rng: typing.Optional[random.Random] = None,
		rotation: typing.Optional[int] = None
	) -> None:

		self.chord_walker = chord_walker
		self.rhythm_walker = rhythm_walker
		self.strategy = strategy
		self.rng = rng or random.Random()

		self.rotation = rotation if rotation is not None else self.rng.randrange(12)
		self.last_chord: typing.Optional[PitchClassSet] = None


	def generate (self) -> Phrase:

		"""Build the next phrase with the configured strategy."""

		rhythms, rhythms_degraded = self._arch_rhythms()

		if self.strategy == PhraseStrategy.GRAPH_WALK:
			chords, chords_degraded = self._graph_walk_chords()
			phrase = Phrase(
				chords = tuple(chords),
				rhythms = tuple(rhythms),
				strategy = self.strategy,
				degraded = rhythms_degraded or chords_degraded
			)

		else:
			chords, chords_degraded = self._scale_subset_chords()
			phrase = Phrase(
				chords = tuple(chords),
				rhythms = tuple(rhythms),
				strategy = self.strategy,
				rotation = self.rotation,
				key = musicbox.scales.key_from_rotation(self.rotation),
				degraded = rhythms_degraded or chords_degraded
			)

		self.last_chord = phrase.chords[-1]

		logger.info(
			f"New phrase ({self.strategy.value}): chords {[str(c) for c in phrase.chords]}, "
			f"rhythms {list(phrase.rhythms)}"
		)

		return phrase


	def _arch_rhythms (self) -> typing.Tuple[typing.List[str], bool]:

		walk = self.rhythm_walker.random_walk(WALK_LENGTH)

		if len(walk) < WALK_LENGTH:
			fallback = walk[0] if walk else musicbox.rhythm.DEFAULT_CELL
			logger.warning(f"Rhythm walk too short ({len(walk)} steps), repeating {fallback}")
			return [fallback] * BARS_PER_PHRASE, True

		return arrange_arch(walk), False


	def _graph_walk_chords (self) -> typing.Tuple[typing.List[PitchClassSet], bool]:

		walk = self.chord_walker.random_walk(WALK_LENGTH)

		if len(walk) < WALK_LENGTH:

			if walk:
				fallback = walk[0]
			elif self.last_chord is not None:
				fallback = self.last_chord
			else:
				fallback = PitchClassSet.from_pitch_classes(musicbox.scales.rotated_scale(self.rotation))

			logger.warning(f"Chord walk too short ({len(walk)} steps), repeating {fallback}")

			return [fallback] * BARS_PER_PHRASE, True

		return arrange_arch(walk), False


	def _scale_subset_chords (self) -> typing.Tuple[typing.List[PitchClassSet], bool]:

		"""
		Move the scale a fifth, draw four distinct consonant subsets, sort them
		by key and lay them out two bars each.
		"""

		self.rotation = musicbox.scales.rotate_by_fifth(self.rotation, self.rng)
		scale = musicbox.scales.rotated_scale(self.rotation)
		key = musicbox.scales.key_from_rotation(self.rotation)

		logger.info(f"Scale rotation {self.rotation}, key {key}, scale {scale}")

		chosen: typing.List[PitchClassSet] = []
		degraded = False

		for size in musicbox.scales.SUBSET_SIZES:

			pool = [pcs for pcs in musicbox.scales.consonant_subsets(scale, size) if pcs not in chosen]

			if pool:
				chosen.append(self.rng.choice(pool))
			else:
				logger.warning(f"No consonant {size}-note subset left in scale {scale}, using the whole scale")
				chosen.append(PitchClassSet.from_pitch_classes(scale))
				degraded = True

		ordered = musicbox.scales.sort_by_key(chosen, key)

		chords: typing.List[PitchClassSet] = []

		for index in CHORD_ORDER:
			chords.extend([ordered[index]] * BARS_PER_CHORD)

		return chords, degraded
