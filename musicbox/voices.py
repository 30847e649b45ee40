"""Voices that turn the active chord into dated note onsets.

Three kinds share one interface (:class:`Voice`):

- :class:`FloridVoice` places notes with a self-exciting Hawkes process.
- :class:`StrumVoice` plays on the rhythm cell's onsets, stepping through a
  strum shape chosen afresh at each chord change.
- :class:`ArpeggioVoice` steps on a fixed metrical grid through a permuted,
  multi-octave arpeggio of the chord.

Every voice owns an :class:`OctaveRegister`, a bounded random walk that moves
at most one octave per note.
"""

import dataclasses
import logging
import math
import random
import typing

import musicbox.config
import musicbox.durations
import musicbox.hawkes
import musicbox.pitch_class_set
import musicbox.rhythm


logger = logging.getLogger(__name__)

PitchClassSet = musicbox.pitch_class_set.PitchClassSet


@dataclasses.dataclass(frozen=True, order=True)
class OnsetEvent:

	"""
	A dated note. Events sort by time only.
	"""

	time: float
	voice: str = dataclasses.field(compare=False)
	pitch_class: int = dataclasses.field(compare=False)
	octave: int = dataclasses.field(compare=False)
	duration: float = dataclasses.field(compare=False)
	velocity: int = dataclasses.field(compare=False, default=70)
	channel: int = dataclasses.field(compare=False, default=0)


	@property
	def midi_note (self) -> int:
		return max(0, min(127, self.octave * 12 + self.pitch_class))


@dataclasses.dataclass
class BarContext:

	"""What a voice needs to know about the bar it is filling."""

	index: int
	start: float
	seconds: float
	bpm: float
	chord: PitchClassSet
	rhythm: str
	next_rhythm: str


	@property
	def end (self) -> float:
		return self.start + self.seconds


	@property
	def sixteenth_seconds (self) -> float:
		return self.seconds / musicbox.rhythm.STEPS_PER_BAR


	def rhythm_times (self) -> typing.List[float]:

		"""Absolute onset times of this bar's rhythm cell."""

		return [self.start + step * self.sixteenth_seconds for step in musicbox.rhythm.parse_rhythm_hex(self.rhythm)]


	def next_rhythm_times (self) -> typing.List[float]:

		return [self.end + step * self.sixteenth_seconds for step in musicbox.rhythm.parse_rhythm_hex(self.next_rhythm)]


class OctaveRegister:

	"""A random walk over octaves, one step at most per note, clamped to a range."""

	def __init__ (self, low: int, high: int, start: int, rng: random.Random) -> None:

		if low > high:
			raise ValueError(f"Octave range {low}-{high} is empty")

		self.low = low
		self.high = high
		self.current = max(low, min(high, start))
		self.rng = rng


	def step (self) -> int:

		"""Move by -1, 0 or +1 (uniformly), stay inside the range, and return the octave."""

		self.current = max(self.low, min(self.high, self.current + self.rng.randint(-1, 1)))

		return self.current


# ---------------------------------------------------------------------------
# Strum shapes: orderings of chord-tone indices for an n-note chord.
# ---------------------------------------------------------------------------

def sweep_up (n: int) -> typing.List[int]:
	return list(range(n))


def sweep_down (n: int) -> typing.List[int]:
	return list(range(n - 1, -1, -1))


def alternating_bass (n: int) -> typing.List[int]:

	"""Bass between every upper tone: ``0 1 0 2 0 3``."""

	if n < 2:
		return [0] * n

	shape: typing.List[int] = []

	for i in range(1, n):
		shape.extend([0, i])

	return shape


def broken_skip (n: int) -> typing.List[int]:

	"""Rising thirds through the chord: ``0 2 1 3 2 4``."""

	if n < 3:
		return sweep_up(n)

	shape: typing.List[int] = []

	for i in range(n - 2):
		shape.extend([i, i + 2])

	return shape


def pendulum (n: int) -> typing.List[int]:

	"""Up and back down without repeating the turning points: ``0 1 2 3 2 1``."""

	return sweep_up(n) + list(range(n - 2, 0, -1))


def cascade (n: int) -> typing.List[int]:

	"""Overlapping three-note runs, each starting one tone higher: ``0 1 2 1 2 3``."""

	if n < 3:
		return sweep_up(n)

	shape: typing.List[int] = []

	for i in range(n - 2):
		shape.extend([i, i + 1, i + 2])

	return shape


def travis (n: int) -> typing.List[int]:

	"""Thumb on the two lowest tones under the top two: ``0 3 1 2``."""

	if n < 3:
		return sweep_up(n)

	return [0, n - 1, 1, max(n - 2, 2)]


STRUM_SHAPES: typing.Dict[str, typing.Callable[[int], typing.List[int]]] = {
	"sweep_up": sweep_up,
	"sweep_down": sweep_down,
	"alternating_bass": alternating_bass,
	"broken_skip": broken_skip,
	"pendulum": pendulum,
	"cascade": cascade,
	"travis": travis,
}


class StrumPattern:

	"""
	A cursor over one strum shape, wrapping at the end.

	With ``divider`` above 1 only every ``divider``-th trigger sounds.
	"""

	def __init__ (self, chord: PitchClassSet, shape: str, divider: int = 1) -> None:

		if shape not in STRUM_SHAPES:
			raise ValueError(f"Unknown strum shape {shape!r}")

		self.pitch_classes = chord.pitch_classes()
		self.shape = shape
		self.indices = STRUM_SHAPES[shape](len(self.pitch_classes))
		self.divider = max(1, divider)
		self.cursor = 0
		self.triggers = 0


	def next (self) -> typing.Optional[int]:

		"""Return the next pitch class, or ``None`` for a suppressed trigger."""

		trigger = self.triggers
		self.triggers += 1

		if trigger % self.divider != 0 or not self.indices:
			return None

		pitch_class = self.pitch_classes[self.indices[self.cursor]]
		self.cursor = (self.cursor + 1) % len(self.indices)

		return pitch_class


# ---------------------------------------------------------------------------
# Arpeggio sequences
# ---------------------------------------------------------------------------

def coprimes (n: int) -> typing.List[int]:

	"""Return every ``k`` in ``1..n`` (``[1]`` for ``n == 1``) with ``gcd(k, n) == 1``."""

	if n < 1:
		raise ValueError("n must be positive")

	if n == 1:
		return [1]

	return [k for k in range(1, n) if math.gcd(k, n) == 1]


def multiplicative_permutation (n: int, k: int) -> typing.List[int]:

	"""Return ``[(i * k) % n for i in range(n)]``; a permutation whenever ``gcd(k, n) == 1``."""

	if math.gcd(k, n) != 1:
		raise ValueError(f"{k} is not coprime to {n}")

	return [(i * k) % n for i in range(n)]


class ArpeggioSequence:

	"""
	A permuted multi-octave arpeggio walked in short runs.

	The chord tones are repeated over ``span`` octaves, then reordered with
	``i -> (i * k) mod n`` for a random ``k`` coprime to ``n``. The cursor moves
	2 to 6 steps in one direction before picking a direction again. Running off
	either end wraps around and moves the base octave one step that way, or
	turns back when the register has no room.
	"""

	MIN_RUN = 2
	MAX_RUN = 6

	def __init__ (self, chord: PitchClassSet, register: OctaveRegister, rng: random.Random, span: int = 2) -> None:

		pitch_classes = chord.pitch_classes()

		if not pitch_classes:
			raise ValueError("Cannot arpeggiate an empty chord")

		self.rng = rng
		self.register = register
		self.span = max(1, min(span, register.high - register.low + 1))

		# (pitch class, octave offset) in ascending pitch order.
		tones = [(pc, offset) for offset in range(self.span) for pc in pitch_classes]

		self.multiplier = rng.choice(coprimes(len(tones)))
		self.sequence = [tones[i] for i in multiplicative_permutation(len(tones), self.multiplier)]

		self.cursor = 0
		self.direction = 1
		self.remaining = 0

		# Keep the whole span inside the register.
		self.register.current = min(self.register.current, self.register.high - self.span + 1)


	def next (self) -> typing.Tuple[int, int]:

		"""Return the next ``(pitch_class, octave)`` and advance the cursor."""

		if self.remaining <= 0:
			self.direction = self.rng.choice((-1, 1))
			self.remaining = self.rng.randint(self.MIN_RUN, self.MAX_RUN)

		pitch_class, offset = self.sequence[self.cursor]
		octave = self.register.current + offset

		self._advance()
		self.remaining -= 1

		return pitch_class, octave


	def _advance (self) -> None:

		n = len(self.sequence)

		if n == 1:
			return

		target = self.cursor + self.direction

		if 0 <= target < n:
			self.cursor = target
			return

		shifted = self.register.current + self.direction

		if self.register.low <= shifted and shifted + self.span - 1 <= self.register.high:
			self.register.current = shifted
			self.cursor = target % n
		else:
			self.direction = -self.direction
			self.cursor += self.direction


# ---------------------------------------------------------------------------
# Voices
# ---------------------------------------------------------------------------

class Voice:

	"""
	Base class: fill a time window of one bar with onsets.
	"""

	def __init__ (self, config: musicbox.config.VoiceConfig, rng: random.Random) -> None:

		self.config = config
		self.name = config.name
		self.rng = rng

		if config.octave_min is None or config.octave_max is None or config.octave_start is None:
			config.inherit_octaves(musicbox.config.DEFAULT_OCTAVE_MIN, musicbox.config.DEFAULT_OCTAVE_MAX)

		self.register = OctaveRegister(config.octave_min, config.octave_max, config.octave_start, rng)


	def on_chord (self, chord: PitchClassSet) -> None:

		"""Called when the active chord changes."""


	def on_bar (self, bar: BarContext) -> None:

		"""Called once when a bar starts, before any window of it is collected."""


	def collect (self, bar: BarContext, start: float, end: float) -> typing.List[OnsetEvent]:

		raise NotImplementedError


	def _event (self, time: float, pitch_class: int, octave: int, duration: float) -> OnsetEvent:

		return OnsetEvent(
			time = time,
			voice = self.name,
			pitch_class = pitch_class,
			octave = octave,
			duration = duration,
			velocity = self.config.velocity,
			channel = self.config.channel
		)


class FloridVoice (Voice):

	"""
	Free melodic line placed by a Hawkes process.

	A sampled time that falls past the current window is kept for the next
	call, so splitting a bar into windows never drops or duplicates notes.
	"""

	def __init__ (
		self,
		config: musicbox.config.VoiceConfig,
		rng: random.Random,
		process: musicbox.hawkes.HawkesProcess,
		max_note_duration: str = "1/4",
		min_onset_gap: float = 0.01
	) -> None:

		super().__init__(config, rng)

		self.process = process
		self.max_note_duration = max_note_duration
		self.min_onset_gap = min_onset_gap

		self.check_time: typing.Optional[float] = None
		self.pending: typing.Optional[float] = None


	def on_bar (self, bar: BarContext) -> None:

		self.process.bpm = bar.bpm
		self.process.set_rhythm_onsets(bar.rhythm_times() + bar.next_rhythm_times())


	def collect (self, bar: BarContext, start: float, end: float) -> typing.List[OnsetEvent]:

		pitch_classes = bar.chord.pitch_classes()
		events: typing.List[OnsetEvent] = []

		if self.check_time is None or (self.pending is None and self.check_time < start):
			self.check_time = start

		while True:

			if self.pending is None:
				self.pending = self.process.sample_next(self.check_time)

			time = self.pending

			if time >= end:
				break

			self.pending = None
			self.check_time = time + self.min_onset_gap

			if not pitch_classes:
				continue

			self.process.record(time)

			pitch_class = self.rng.choice(pitch_classes)
			octave = self.register.step()
			duration = musicbox.durations.duration_to_seconds(self.max_note_duration, bar.bpm) * (0.3 + 0.7 * self.rng.random())

			logger.debug(f"Florid onset at {time:.3f}s: pc {pitch_class} octave {octave}, intensity {self.process.intensity(time):.2f}/s")

			events.append(self._event(time, pitch_class, octave, duration))

		return events


	def reset (self) -> None:

		self.check_time = None
		self.pending = None
		self.process.reset()


class StrumVoice (Voice):

	"""Plays on the onsets of the bar's rhythm cell."""

	def __init__ (self, config: musicbox.config.VoiceConfig, rng: random.Random) -> None:

		super().__init__(config, rng)

		self.pattern: typing.Optional[StrumPattern] = None


	def on_chord (self, chord: PitchClassSet) -> None:

		shape = self.rng.choice(sorted(STRUM_SHAPES))
		self.pattern = StrumPattern(chord, shape, self.config.divider)

		logger.debug(f"Voice {self.name!r} strums {chord} with shape {shape}")


	def collect (self, bar: BarContext, start: float, end: float) -> typing.List[OnsetEvent]:

		if self.pattern is None:
			self.on_chord(bar.chord)

		duration = musicbox.durations.duration_to_seconds(self.config.duration, bar.bpm)
		events: typing.List[OnsetEvent] = []

		for time in bar.rhythm_times():

			if not start <= time < end:
				continue

			pitch_class = self.pattern.next()  # type: ignore[union-attr]

			if pitch_class is None:
				continue

			events.append(self._event(time, pitch_class, self.register.step(), duration))

		return events


class ArpeggioVoice (Voice):

	"""Steps on a fixed grid through a permuted arpeggio of the chord."""

	def __init__ (self, config: musicbox.config.VoiceConfig, rng: random.Random) -> None:

		super().__init__(config, rng)

		self.sequence: typing.Optional[ArpeggioSequence] = None
		self.triggers = 0


	def on_chord (self, chord: PitchClassSet) -> None:

		if chord.cardinality == 0:
			self.sequence = None
			return

		self.sequence = ArpeggioSequence(chord, self.register, self.rng)


	def grid_times (self, bar: BarContext) -> typing.List[float]:

		"""Grid positions inside the bar, one per ``step`` duration."""

		step = musicbox.durations.duration_to_seconds(self.config.step, bar.bpm)
		count = int(math.floor(bar.seconds / step + 1e-9))

		return [bar.start + i * step for i in range(count)]


	def collect (self, bar: BarContext, start: float, end: float) -> typing.List[OnsetEvent]:

		if self.sequence is None:
			self.on_chord(bar.chord)

		if self.sequence is None:
			return []

		duration = musicbox.durations.duration_to_seconds(self.config.duration, bar.bpm)
		events: typing.List[OnsetEvent] = []

		for time in self.grid_times(bar):

			if not start <= time < end:
				continue

			trigger = self.triggers
			self.triggers += 1

			if trigger % self.config.divider != 0:
				continue

			pitch_class, octave = self.sequence.next()
			events.append(self._event(time, pitch_class, octave, duration))

		return events


def create_voice (
	config: musicbox.config.VoiceConfig,
	engine_config: musicbox.config.EngineConfig,
	rng: random.Random
) -> Voice:

	"""Build the voice described by ``config``."""

	if config.kind == "strum":
		return StrumVoice(config, rng)

	if config.kind == "arpeggio":
		return ArpeggioVoice(config, rng)

	hawkes = engine_config.hawkes

	process = musicbox.hawkes.HawkesProcess(
		base_rate = hawkes.base_rate,
		excitation = hawkes.excitation,
		decay = hawkes.decay,
		rhythm_boost = hawkes.rhythm_boost,
		bpm = engine_config.bpm,
		beats_per_bar = engine_config.beats_per_bar,
		rng = rng
	)

	return FloridVoice(
		config,
		rng,
		process,
		max_note_duration = engine_config.max_note_duration,
		min_onset_gap = engine_config.min_onset_gap
	)
