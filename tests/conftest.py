import random
import typing

import mido
import pytest

import musicbox.config
import musicbox.engine
import musicbox.necklaces
import musicbox.relation_graph
import musicbox.rhythm


class FakeMidiOut:

	"""MIDI output stub that keeps everything sent to it."""

	def __init__ (self) -> None:

		self.messages: typing.List[mido.Message] = []
		self.closed = False


	def send (self, message: mido.Message) -> None:

		"""Record an outgoing MIDI message."""

		self.messages.append(message)


	def close (self) -> None:

		self.closed = True


class FakeClock:

	"""A clock that only moves when told to."""

	def __init__ (self, now: float = 100.0) -> None:

		self.now = now


	def __call__ (self) -> float:

		return self.now


	def advance (self, seconds: float) -> None:

		self.now += seconds


# Module-level reference so tests can inspect the most recently opened port.
_current_fake_output: typing.Optional[FakeMidiOut] = None


def _fake_get_output_names () -> list[str]:

	"""Return a fixed list of MIDI output names for tests."""

	return ["Dummy MIDI"]


def _fake_open_output (name: str) -> FakeMidiOut:

	"""Return a fake MIDI output regardless of the name."""

	global _current_fake_output
	fake = FakeMidiOut()
	_current_fake_output = fake
	return fake


@pytest.fixture
def patch_midi (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch mido to use a fake MIDI output for all tests that need it."""

	monkeypatch.setattr(mido, "get_output_names", _fake_get_output_names)
	monkeypatch.setattr(mido, "open_output", _fake_open_output)


@pytest.fixture(scope="session")
def chord_graph () -> musicbox.relation_graph.RelationGraph:

	"""The default tetrad graph, built once per test session."""

	return musicbox.relation_graph.build_chord_graph(musicbox.necklaces.generate_all_pitch_class_sets())


@pytest.fixture(scope="session")
def rhythm_graph () -> musicbox.relation_graph.RelationGraph:

	"""The rhythm graph of the bundled corpus."""

	return musicbox.rhythm.load_rhythm_graph()


@pytest.fixture
def make_engine (chord_graph: musicbox.relation_graph.RelationGraph, rhythm_graph: musicbox.relation_graph.RelationGraph) -> typing.Callable[..., musicbox.engine.Engine]:

	"""Factory for seeded engines sharing the session graphs."""

	def factory (config: typing.Optional[musicbox.config.EngineConfig] = None, seed: int = 1) -> musicbox.engine.Engine:
		return musicbox.engine.Engine(config, chord_graph, rhythm_graph, random.Random(seed))

	return factory
