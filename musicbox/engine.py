"""The generative core.

:class:`Engine` owns the two relation graphs and one :class:`GeneratorState`.
It advances a virtual transport bar by bar: at each bar start it regenerates
the phrase when the previous one has run out, announces chord changes and lets
every voice fill the bar. Time is in seconds from the transport origin, with
no wall clock involved, so the live scheduler and the offline renderer drive
exactly the same code.

Notifications (through :attr:`Engine.events`):

- ``"phrase"`` (:class:`~musicbox.phrase.Phrase`) when a phrase is generated.
- ``"chord"`` (:class:`~musicbox.pitch_class_set.PitchClassSet`) when the bar's chord differs from the previous bar's.
- ``"bar"`` (``int``) at each bar start.
- ``"note"`` (:class:`OnsetEvent`) for each generated onset, in time order.
- ``"bpm"`` (``float``) when a tempo change takes effect.

Notifications fire when material is generated, which in live playback is up
to one lookahead window before it sounds.
"""

import copy
import dataclasses
import logging
import random
import typing

import musicbox.config
import musicbox.event_emitter
import musicbox.graph_walker
import musicbox.hawkes
import musicbox.necklaces
import musicbox.phrase
import musicbox.pitch_class_set
import musicbox.relation_graph
import musicbox.rhythm
import musicbox.voices


logger = logging.getLogger(__name__)

OnsetEvent = musicbox.voices.OnsetEvent
PitchClassSet = musicbox.pitch_class_set.PitchClassSet


@dataclasses.dataclass
class Transport:

	"""Position of the virtual transport."""

	bpm: float
	beats_per_bar: int
	bar_index: int = 0
	bar_start: float = 0.0
	cursor: float = 0.0
	bar_started: bool = False


	@property
	def bar_seconds (self) -> float:
		return self.beats_per_bar * 60.0 / self.bpm


	@property
	def bar_end (self) -> float:
		return self.bar_start + self.bar_seconds


@dataclasses.dataclass
class GeneratorState:

	"""
	Every mutable piece of the generator, so it can be copied as one unit.
	"""

	transport: Transport
	phrase_generator: musicbox.phrase.PhraseGenerator
	voices: typing.List[musicbox.voices.Voice]
	rng: random.Random
	phrase: typing.Optional[musicbox.phrase.Phrase] = None
	phrase_start_bar: int = 0
	last_chord: typing.Optional[PitchClassSet] = None
	bar: typing.Optional[musicbox.voices.BarContext] = None
	pending_bpm: typing.Optional[float] = None


def load_chord_graph (config: musicbox.config.EngineConfig) -> musicbox.relation_graph.RelationGraph[PitchClassSet]:

	"""Load the precomputed chord graph if configured, otherwise build it."""

	if config.chord_graph_path:
		graph = musicbox.relation_graph.RelationGraph.load(config.chord_graph_path, musicbox.relation_graph.decode_pitch_class_set)
		graph.log_summary("Chord")
		return graph

	options = config.chord_graph

	return musicbox.relation_graph.build_chord_graph(
		musicbox.necklaces.generate_all_pitch_class_sets(),
		cardinality = options.cardinality,
		consonant_only = options.consonant_only,
		min_common = options.min_common,
		equal_cardinality = options.equal_cardinality,
		interval_similarity = options.interval_similarity
	)


def load_rhythm_graph (config: musicbox.config.EngineConfig) -> musicbox.relation_graph.RelationGraph[str]:

	"""Load the precomputed rhythm graph if configured, otherwise build it from a corpus."""

	if config.rhythm_graph_path:
		graph = musicbox.relation_graph.RelationGraph.load(config.rhythm_graph_path, musicbox.rhythm.normalize_cell)
		graph.log_summary("Rhythm")
		return graph

	return musicbox.rhythm.load_rhythm_graph(config.rhythm_corpus)


class Engine:

	"""
	Turns the phrase grammar and the voices into a time-ordered stream of onsets.
	"""

	def __init__ (
		self,
		config: typing.Optional[musicbox.config.EngineConfig] = None,
		chord_graph: typing.Optional[musicbox.relation_graph.RelationGraph[PitchClassSet]] = None,
		rhythm_graph: typing.Optional[musicbox.relation_graph.RelationGraph[str]] = None,
		rng: typing.Optional[random.Random] = None
	) -> None:

		"""Build or adopt the graphs and create a fresh generator state.

		Parameters:
			config: Engine settings (defaults when omitted).
			chord_graph: A prebuilt chord graph, shared rather than copied.
			rhythm_graph: A prebuilt rhythm graph, shared rather than copied.
			rng: Random source for everything the engine does. Pass a seeded
				``random.Random`` for repeatable output.
		"""

		self.config = config or musicbox.config.EngineConfig()
		self.chord_graph = chord_graph if chord_graph is not None else load_chord_graph(self.config)
		self.rhythm_graph = rhythm_graph if rhythm_graph is not None else load_rhythm_graph(self.config)
		self.rng = rng or random.Random()
		self.events = musicbox.event_emitter.EventEmitter()

		self.state = self._new_state()


	def _new_state (self) -> GeneratorState:

		rng = self.rng

		phrase_generator = musicbox.phrase.PhraseGenerator(
			chord_walker = musicbox.graph_walker.GraphWalker(self.chord_graph, rng),
			rhythm_walker = musicbox.graph_walker.GraphWalker(self.rhythm_graph, rng),
			strategy = musicbox.phrase.PhraseStrategy(self.config.phrase_strategy),
			rng = rng
		)

		# One random stream per voice: the order in which voices fill a window
		# has no effect on what they play.
		voices = [
			musicbox.voices.create_voice(voice_config, self.config, random.Random(rng.getrandbits(64)))
			for voice_config in self.config.voices
		]

		return GeneratorState(
			transport = Transport(bpm=self.config.bpm, beats_per_bar=self.config.beats_per_bar),
			phrase_generator = phrase_generator,
			voices = voices,
			rng = rng
		)


	# -----------------------------------------------------------------------
	# Read-only views
	# -----------------------------------------------------------------------

	@property
	def bpm (self) -> float:
		return self.state.transport.bpm


	@property
	def time (self) -> float:

		"""Transport time up to which onsets have been generated."""

		return self.state.transport.cursor


	@property
	def phrase (self) -> typing.Optional[musicbox.phrase.Phrase]:
		return self.state.phrase


	@property
	def bar_index (self) -> int:
		return self.state.transport.bar_index


	@property
	def voices (self) -> typing.List[musicbox.voices.Voice]:
		return self.state.voices


	def florid_processes (self) -> typing.List[musicbox.hawkes.HawkesProcess]:

		return [voice.process for voice in self.state.voices if isinstance(voice, musicbox.voices.FloridVoice)]


	# -----------------------------------------------------------------------
	# Parameters
	# -----------------------------------------------------------------------

	def set_bpm (self, bpm: float) -> None:

		"""Change tempo from the next bar boundary on. Out-of-range values are clamped."""

		self.state.pending_bpm = musicbox.config.clamp_bpm(bpm)
		self.config.bpm = self.state.pending_bpm

		logger.info(f"BPM will change to {self.state.pending_bpm:.2f} at the next bar")


	def set_hawkes_base_rate (self, rate: float) -> None:

		self.config.hawkes.base_rate = musicbox.config.clamp_base_rate(rate)

		for process in self.florid_processes():
			process.base_rate = self.config.hawkes.base_rate


	def set_hawkes_excitation (self, excitation: float) -> None:

		self.config.hawkes.excitation = musicbox.config.clamp_excitation(excitation)

		for process in self.florid_processes():
			process.excitation = self.config.hawkes.excitation


	def set_hawkes_decay (self, decay: float) -> None:

		self.config.hawkes.decay = musicbox.config.clamp_decay(decay)

		for process in self.florid_processes():
			process.decay = self.config.hawkes.decay


	# -----------------------------------------------------------------------
	# Generation
	# -----------------------------------------------------------------------

	def render_until (self, horizon: float) -> typing.List[OnsetEvent]:

		"""Generate every onset in ``[time, horizon)`` and advance the transport to ``horizon``.

		Each bar is collected in one or more half-open windows, so calling this
		with small steps yields exactly the same onsets as one large call.
		Returns the events sorted by time and emits a ``"note"`` notification
		for each.
		"""

		transport = self.state.transport
		events: typing.List[OnsetEvent] = []

		while transport.cursor < horizon:

			if not transport.bar_started:
				self._start_bar()

			bar = self.state.bar
			bar_end = transport.bar_end
			window_end = min(horizon, bar_end)

			for voice in self.state.voices:
				events.extend(voice.collect(bar, transport.cursor, window_end))  # type: ignore[arg-type]

			transport.cursor = window_end

			if window_end >= bar_end:
				transport.bar_index += 1
				transport.bar_start = bar_end
				transport.bar_started = False

		events.sort()

		for event in events:
			self.events.emit_sync("note", event)

		return events


	def render_bars (self, count: int) -> typing.List[OnsetEvent]:

		"""Generate the next ``count`` whole bars (finishing the current bar first)."""

		transport = self.state.transport
		events: typing.List[OnsetEvent] = []

		for _ in range(count):
			target_bar = transport.bar_index + 1
			while transport.bar_index < target_bar:
				# A pending tempo change only fixes the bar length once the bar starts.
				if not transport.bar_started:
					self._start_bar()
				events.extend(self.render_until(transport.bar_end))

		return events


	def _start_bar (self) -> None:

		state = self.state
		transport = state.transport

		if state.pending_bpm is not None:
			transport.bpm = state.pending_bpm
			state.pending_bpm = None
			logger.info(f"BPM set to {transport.bpm:.2f}")
			self.events.emit_sync("bpm", transport.bpm)

		position = transport.bar_index - state.phrase_start_bar

		if state.phrase is None or position >= musicbox.phrase.BARS_PER_PHRASE:
			state.phrase = state.phrase_generator.generate()
			state.phrase_start_bar = transport.bar_index
			position = 0
			self.events.emit_sync("phrase", state.phrase)

		phrase = state.phrase
		chord = phrase.chord_at(position)

		state.bar = musicbox.voices.BarContext(
			index = transport.bar_index,
			start = transport.bar_start,
			seconds = transport.bar_seconds,
			bpm = transport.bpm,
			chord = chord,
			rhythm = phrase.rhythm_at(position),
			next_rhythm = phrase.rhythm_at(position + 1)
		)

		if chord != state.last_chord:
			state.last_chord = chord
			for voice in state.voices:
				voice.on_chord(chord)
			self.events.emit_sync("chord", chord)

		for voice in state.voices:
			voice.on_bar(state.bar)

		transport.bar_started = True

		logger.debug(f"Bar {transport.bar_index} at {transport.bar_start:.3f}s: chord {chord}, rhythm {state.bar.rhythm}")

		self.events.emit_sync("bar", transport.bar_index)


	# -----------------------------------------------------------------------
	# State management
	# -----------------------------------------------------------------------

	def _copy_state (self, state: GeneratorState) -> GeneratorState:

		# The graphs are immutable and shared by every copy.
		memo = {
			id(self.chord_graph): self.chord_graph,
			id(self.rhythm_graph): self.rhythm_graph,
		}

		return copy.deepcopy(state, memo)


	def snapshot (self) -> GeneratorState:

		"""Return an independent copy of the whole generator state."""

		return self._copy_state(self.state)


	def restore (self, snapshot: GeneratorState) -> None:

		"""Continue from a snapshot. The snapshot itself stays reusable."""

		self.state = self._copy_state(snapshot)


	def reset (self) -> None:

		"""Start over at transport time zero with fresh walkers, phrase and voices."""

		self.state = self._new_state()


	def offline_copy (self, seed: typing.Optional[int] = None) -> "Engine":

		"""
		Create an independent engine on the same graphs and settings.

		The copy has its own random source and notification registry, so using
		it never disturbs this engine.
		"""

		return Engine(
			config = copy.deepcopy(self.config),
			chord_graph = self.chord_graph,
			rhythm_graph = self.rhythm_graph,
			rng = random.Random(seed)
		)
