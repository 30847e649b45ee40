"""Self-exciting onset process.

Note onsets follow a Hawkes process whose intensity is::

	λ(t) = base + Σ excitation · exp(-decay · (t - tᵢ)) + boost(t)

The sum runs over onsets emitted during the last bar. ``boost(t)`` rises
sharply as ``t`` approaches an onset of the current rhythm cell, pulling notes
towards the written rhythm without forcing them onto it.

``base_rate``, ``excitation`` and ``decay`` are given per bar and converted to
per-second values from the tempo, so the texture sounds the same at any BPM.
Samples are drawn with Ogata's thinning: propose from a homogeneous process
at an upper bound ``M`` and accept each proposal with probability ``λ/M``.
"""

import logging
import math
import random
import typing


logger = logging.getLogger(__name__)

BOUND_HEADROOM = 24.0
BOOST_WINDOW_SIXTEENTHS = 2.0
BOOST_TIME_CONSTANT_SIXTEENTHS = 0.5


class HawkesProcess:

	"""
	Intensity state and thinning sampler for one voice.
	"""

	def __init__ (
		self,
		base_rate: float = 8.0,
		excitation: float = 3.2,
		decay: float = 12.0,
		rhythm_boost: float = 3.0,
		bpm: float = 45.0,
		beats_per_bar: int = 4,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""Create a process with an empty history.

		Parameters:
			base_rate: Background onsets per bar.
			excitation: Jump in intensity (per bar) after each onset.
			decay: Excitation decay rate (per bar).
			rhythm_boost: Peak extra intensity (per beat) just before a rhythm onset.
			bpm: Tempo used to convert per-bar values to per-second values.
			beats_per_bar: Beats in one bar.
			rng: Random source for sampling.
		"""

		self.base_rate = base_rate
		self.excitation = excitation
		self.decay = decay
		self.rhythm_boost = rhythm_boost
		self.bpm = bpm
		self.beats_per_bar = beats_per_bar
		self.rng = rng or random.Random()

		self.history: typing.List[float] = []
		self.rhythm_onsets: typing.List[float] = []
		self.fallback_count = 0


	@property
	def beats_per_second (self) -> float:
		return self.bpm / 60.0


	@property
	def bars_per_second (self) -> float:
		return self.beats_per_second / self.beats_per_bar


	@property
	def bar_seconds (self) -> float:
		return 1.0 / self.bars_per_second


	@property
	def sixteenth_seconds (self) -> float:
		return 0.25 / self.beats_per_second


	def set_rhythm_onsets (self, onsets: typing.Iterable[float]) -> None:

		"""Replace the absolute times of upcoming rhythm onsets."""

		self.rhythm_onsets = sorted(onsets)


	def record (self, time: float) -> None:

		"""Add an emitted onset to the history."""

		self.history.append(time)


	def prune (self, now: float) -> None:

		"""Forget onsets more than one bar before ``now``."""

		cutoff = now - self.bar_seconds
		self.history = [t for t in self.history if t > cutoff]


	def reset (self) -> None:

		self.history = []
		self.rhythm_onsets = []


	def excitation_at (self, time: float) -> float:

		"""Excitation contributed by onsets in the bar before ``time``."""

		bps = self.bars_per_second
		cutoff = time - self.bar_seconds
		total = 0.0

		for event_time in self.history:
			if cutoff < event_time <= time:
				total += self.excitation * bps * math.exp(-self.decay * bps * (time - event_time))

		return total


	def boost_at (self, time: float) -> float:

		"""Extra intensity for rhythm onsets less than two sixteenths ahead of ``time``."""

		sixteenth = self.sixteenth_seconds
		window = BOOST_WINDOW_SIXTEENTHS * sixteenth
		time_constant = BOOST_TIME_CONSTANT_SIXTEENTHS * sixteenth
		total = 0.0

		for onset in self.rhythm_onsets:
			distance = onset - time
			if 0 < distance < window:
				total += self.rhythm_boost * self.beats_per_second * math.exp(-distance / time_constant)

		return total


	def intensity (self, time: float) -> float:

		"""Onsets per second at ``time``. Never below the base rate."""

		return self.base_rate * self.bars_per_second + self.excitation_at(time) + self.boost_at(time)


	def upper_bound (self) -> float:

		"""
		Conservative bound on the intensity for the thinning proposals.

		Each remembered onset can add at most ``excitation`` per bar. The boost
		peaks at ``rhythm_boost`` per beat for each rhythm onset inside its
		window, and at most two grid onsets fit in the window, so the headroom
		covers twice the per-bar boost peak when that exceeds the fixed floor.
		"""

		headroom = max(BOUND_HEADROOM, 2.0 * self.rhythm_boost * self.beats_per_bar)

		return (self.base_rate + self.excitation * len(self.history) + headroom) * self.bars_per_second


	def sample_next (self, current: float) -> float:

		"""Draw the next onset time after ``current``.

		If no proposal is accepted within one bar, a time in the second half of
		the next bar is returned instead and ``fallback_count`` is incremented.
		"""

		self.prune(current)

		bound = self.upper_bound()
		bar = self.bar_seconds
		t = current

		while True:

			t += self.rng.expovariate(bound)

			if self.rng.random() <= self.intensity(t) / bound:
				return t

			if t > current + bar:
				self.fallback_count += 1
				fallback = current + 0.5 * bar + self.rng.random() * 0.5 * bar
				logger.debug(f"Thinning found no onset within a bar of {current:.3f}s, falling back to {fallback:.3f}s")
				return fallback
