"""Configuration dataclasses and YAML loading.

Every value that could stall or break generation is clamped into a sane range
instead of being rejected, and each clamp is logged as a warning. A config
file looks like::

	engine:
	  bpm: 52
	  phrase_strategy: graph_walk
	  hawkes:
	    base_rate: 6
	  voices:
	    - name: florid
	      kind: florid
	    - name: strum
	      kind: strum
	      divider: 2
	      channel: 1
	output:
	  device_name: "IAC Driver Bus 1"
	  osc_enabled: true
"""

import dataclasses
import logging
import os
import typing

import yaml

import musicbox.durations


logger = logging.getLogger(__name__)

BPM_RANGE = (20.0, 300.0)
BASE_RATE_RANGE = (0.5, 40.0)
EXCITATION_RANGE = (0.0, 20.0)
DECAY_RANGE = (0.5, 80.0)
OCTAVE_RANGE = (0, 9)
DEFAULT_OCTAVE_MIN = 4
DEFAULT_OCTAVE_MAX = 7
DEFAULT_START_OCTAVE = 5

PHRASE_STRATEGIES = ("scale_subset", "graph_walk")
VOICE_KINDS = ("florid", "strum", "arpeggio")


def clamp (value: float, low: float, high: float, name: str) -> float:

	"""Clamp ``value`` into ``[low, high]``, warning when it had to move."""

	clamped = max(low, min(high, value))

	if clamped != value:
		logger.warning(f"{name} {value} is outside [{low}, {high}], using {clamped}")

	return clamped


def clamp_bpm (bpm: float) -> float:
	return clamp(bpm, *BPM_RANGE, "BPM")


def clamp_base_rate (rate: float) -> float:
	return clamp(rate, *BASE_RATE_RANGE, "Hawkes base rate")


def clamp_excitation (excitation: float) -> float:
	return clamp(excitation, *EXCITATION_RANGE, "Hawkes excitation")


def clamp_decay (decay: float) -> float:
	return clamp(decay, *DECAY_RANGE, "Hawkes decay")


def check_duration (token: str, name: str) -> str:

	"""Return ``token`` if it is a known duration, otherwise a quarter note."""

	if musicbox.durations.is_valid_token(token):
		return token

	logger.warning(f"{name} {token!r} is not a known duration, using {musicbox.durations.DEFAULT_TOKEN!r}")

	return musicbox.durations.DEFAULT_TOKEN


def check_octaves (low: int, high: int, name: str) -> typing.Tuple[int, int]:

	low = int(clamp(low, *OCTAVE_RANGE, f"{name} lowest octave"))
	high = int(clamp(high, *OCTAVE_RANGE, f"{name} highest octave"))

	if low > high:
		logger.warning(f"{name} octave range {low}-{high} is inverted, swapping")
		low, high = high, low

	return low, high


@dataclasses.dataclass
class HawkesConfig:

	"""Per-bar parameters of the self-exciting onset process."""

	base_rate: float = 8.0
	excitation: float = 3.2
	decay: float = 12.0
	rhythm_boost: float = 3.0


	def __post_init__ (self) -> None:

		self.base_rate = clamp_base_rate(self.base_rate)
		self.excitation = clamp_excitation(self.excitation)
		self.decay = clamp_decay(self.decay)
		self.rhythm_boost = clamp(self.rhythm_boost, 0.0, 20.0, "Rhythm boost")


@dataclasses.dataclass
class VoiceConfig:

	"""One voice: the Hawkes-driven florid line, a strummed rhythm voice, or an arpeggio."""

	name: str = "florid"
	kind: str = "florid"
	divider: int = 1
	octave_min: typing.Optional[int] = None
	octave_max: typing.Optional[int] = None
	octave_start: typing.Optional[int] = None
	duration: str = "1/8"
	step: str = "1/8"
	velocity: int = 70
	channel: int = 0


	def __post_init__ (self) -> None:

		if self.kind not in VOICE_KINDS:
			logger.warning(f"Voice {self.name!r} has unknown kind {self.kind!r}, using 'florid'")
			self.kind = "florid"

		if self.divider < 1:
			logger.warning(f"Voice {self.name!r} divider {self.divider} is below 1, using 1")
			self.divider = 1

		self.duration = check_duration(self.duration, f"Voice {self.name!r} duration")
		self.step = check_duration(self.step, f"Voice {self.name!r} step")
		self.velocity = int(clamp(self.velocity, 1, 127, f"Voice {self.name!r} velocity"))
		self.channel = int(clamp(self.channel, 0, 15, f"Voice {self.name!r} channel"))


	def inherit_octaves (self, low: int, high: int) -> None:

		"""Fill unset octave bounds from the engine and check the result."""

		if self.octave_min is None:
			self.octave_min = low

		if self.octave_max is None:
			self.octave_max = high

		self.octave_min, self.octave_max = check_octaves(self.octave_min, self.octave_max, f"Voice {self.name!r}")

		if self.octave_start is None:
			self.octave_start = DEFAULT_START_OCTAVE

		self.octave_start = int(max(self.octave_min, min(self.octave_max, self.octave_start)))


@dataclasses.dataclass
class ChordGraphConfig:

	"""Which pitch-class sets become chord nodes and how they are related."""

	cardinality: typing.Optional[int] = 4
	consonant_only: bool = True
	min_common: int = 3
	equal_cardinality: bool = True
	interval_similarity: bool = False


@dataclasses.dataclass
class SchedulerConfig:

	"""Timing of the live lookahead loop, in seconds."""

	wake_interval: float = 0.05
	lookahead: float = 0.2
	safety_margin: float = 0.02
	resume_in_place: bool = False


	def __post_init__ (self) -> None:

		self.wake_interval = clamp(self.wake_interval, 0.001, 1.0, "Scheduler wake interval")
		self.lookahead = clamp(self.lookahead, self.wake_interval, 5.0, "Scheduler lookahead")
		self.safety_margin = clamp(self.safety_margin, 0.0, self.lookahead, "Scheduler safety margin")


@dataclasses.dataclass
class EngineConfig:

	"""Everything the generative core needs."""

	bpm: float = 45.0
	beats_per_bar: int = 4
	phrase_strategy: str = "scale_subset"
	octave_min: int = DEFAULT_OCTAVE_MIN
	octave_max: int = DEFAULT_OCTAVE_MAX
	max_note_duration: str = "1/4"
	min_onset_gap: float = 0.01
	hawkes: HawkesConfig = dataclasses.field(default_factory=HawkesConfig)
	voices: typing.List[VoiceConfig] = dataclasses.field(default_factory=lambda: [VoiceConfig()])
	chord_graph: ChordGraphConfig = dataclasses.field(default_factory=ChordGraphConfig)
	scheduler: SchedulerConfig = dataclasses.field(default_factory=SchedulerConfig)
	rhythm_corpus: typing.Optional[str] = None
	chord_graph_path: typing.Optional[str] = None
	rhythm_graph_path: typing.Optional[str] = None


	def __post_init__ (self) -> None:

		self.bpm = clamp_bpm(self.bpm)

		if self.beats_per_bar < 1:
			logger.warning(f"Beats per bar {self.beats_per_bar} is below 1, using 4")
			self.beats_per_bar = 4

		if self.phrase_strategy not in PHRASE_STRATEGIES:
			logger.warning(f"Unknown phrase strategy {self.phrase_strategy!r}, using 'scale_subset'")
			self.phrase_strategy = "scale_subset"

		self.octave_min, self.octave_max = check_octaves(self.octave_min, self.octave_max, "Engine")

		for voice in self.voices:
			voice.inherit_octaves(self.octave_min, self.octave_max)

		self.max_note_duration = check_duration(self.max_note_duration, "Maximum note duration")
		self.min_onset_gap = clamp(self.min_onset_gap, 0.0, 1.0, "Minimum onset gap")


@dataclasses.dataclass
class OutputConfig:

	"""Where events and notifications go."""

	device_name: typing.Optional[str] = None
	receive_port: int = 9000
	send_port: int = 9001
	send_host: str = "127.0.0.1"
	osc_enabled: bool = False


@dataclasses.dataclass
class AppConfig:

	engine: EngineConfig = dataclasses.field(default_factory=EngineConfig)
	output: OutputConfig = dataclasses.field(default_factory=OutputConfig)


def _fields_from_dict (cls: typing.Any, data: typing.Optional[typing.Dict[str, typing.Any]], section: str) -> typing.Dict[str, typing.Any]:

	"""Keep the keys that name fields of ``cls``, warning about the rest."""

	if not data:
		return {}

	if not isinstance(data, dict):
		logger.warning(f"Config section {section!r} is not a mapping, ignoring it")
		return {}

	names = {field.name for field in dataclasses.fields(cls)}
	known = {}

	for key, value in data.items():
		if key in names:
			known[key] = value
		else:
			logger.warning(f"Ignoring unknown config key {section}.{key}")

	return known


def engine_config_from_dict (data: typing.Optional[typing.Dict[str, typing.Any]]) -> EngineConfig:

	values = _fields_from_dict(EngineConfig, data, "engine")

	nested: typing.Dict[str, typing.Any] = {
		"hawkes": HawkesConfig,
		"chord_graph": ChordGraphConfig,
		"scheduler": SchedulerConfig,
	}

	for key, cls in nested.items():
		if key in values:
			values[key] = cls(**_fields_from_dict(cls, values[key], f"engine.{key}"))

	if "voices" in values:
		voices = values["voices"] or []
		values["voices"] = [VoiceConfig(**_fields_from_dict(VoiceConfig, v, "engine.voices")) for v in voices]

	return EngineConfig(**values)


def config_from_dict (data: typing.Optional[typing.Dict[str, typing.Any]]) -> AppConfig:

	data = data or {}

	return AppConfig(
		engine = engine_config_from_dict(data.get("engine")),
		output = OutputConfig(**_fields_from_dict(OutputConfig, data.get("output"), "output"))
	)


def load_config (config_path: str = "config.yaml") -> AppConfig:

	"""
	Load configuration from a YAML file. A missing file gives the defaults.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return AppConfig()

	with open(config_path, "r") as f:
		data = yaml.safe_load(f)

	return config_from_dict(data)
