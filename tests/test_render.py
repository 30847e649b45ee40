import mido
import pytest

import musicbox.render


def _summary (events) -> list:
	return [(e.time, e.voice, e.pitch_class, e.octave, e.duration) for e in events]


def test_render_phrases (make_engine) -> None:

	"""Two phrases cover sixteen bars; the live engine is not touched."""

	engine = make_engine()
	events = musicbox.render.render_events(engine, 2, seed=4)
	bar_seconds = 4 * 60.0 / engine.config.bpm

	assert events
	assert all(0.0 <= e.time < 16 * bar_seconds for e in events)
	assert engine.time == 0.0
	assert engine.phrase is None


def test_seeded_renders_repeat (make_engine) -> None:

	engine = make_engine()

	first = musicbox.render.render_events(engine, 1, seed=11)
	second = musicbox.render.render_events(engine, 1, seed=11)

	assert _summary(first) == _summary(second)


def test_render_can_continue_from_live (make_engine) -> None:

	"""Continuing from the live state renders exactly what the live engine would play next."""

	engine = make_engine(seed=6)
	engine.render_bars(3)
	start = engine.time

	rendered = musicbox.render.render_events(engine, 1, continue_from_live=True)

	assert engine.time == start
	assert all(e.time >= start for e in rendered)
	assert _summary(rendered) == _summary(engine.render_bars(8))


def test_zero_and_negative_phrase_counts (make_engine) -> None:

	engine = make_engine()

	assert musicbox.render.render_events(engine, 0) == []

	with pytest.raises(ValueError):
		musicbox.render.render_events(engine, -1)


def test_render_to_midi_file (tmp_path, make_engine) -> None:

	engine = make_engine()
	path = str(tmp_path / "phrase.mid")

	assert musicbox.render.render_to_midi_file(engine, 1, path, seed=2)

	loaded = mido.MidiFile(path)
	tempo = [m for m in loaded.tracks[0] if m.type == "set_tempo"]

	assert tempo[0].tempo == mido.bpm2tempo(45.0)
	assert any(m.type == "note_on" for m in loaded.tracks[0])
