import asyncio
import json
import os
import random
import signal

import mido
import pytest

import conftest

import musicbox.__main__
import musicbox.config
import musicbox.engine


def test_render_command (tmp_path) -> None:

	"""The render command writes a MIDI file at the requested tempo."""

	out = str(tmp_path / "out.mid")

	musicbox.__main__.main(["--config", str(tmp_path / "none.yaml"), "render", out, "--phrases", "1", "--seed", "3", "--bpm", "60"])

	loaded = mido.MidiFile(out)
	tempo = [m for m in loaded.tracks[0] if m.type == "set_tempo"]

	assert tempo[0].tempo == mido.bpm2tempo(60.0)
	assert any(m.type == "note_on" for m in loaded.tracks[0])


def test_build_graphs_command (tmp_path) -> None:

	"""Precomputed graphs load back and drive an engine."""

	musicbox.__main__.main(["--config", str(tmp_path / "none.yaml"), "build-graphs", "--out-dir", str(tmp_path)])

	chord_path = tmp_path / "chord_graph.json"
	rhythm_path = tmp_path / "rhythm_graph.json"

	with open(chord_path) as f:
		data = json.load(f)

	assert len(data["nodes"]) == 105
	assert all(len(node) == 12 for node in data["nodes"])

	config = musicbox.config.EngineConfig(chord_graph_path=str(chord_path), rhythm_graph_path=str(rhythm_path))
	engine = musicbox.engine.Engine(config, rng=random.Random(1))

	assert len(engine.chord_graph) == 105
	assert len(engine.rhythm_graph) == 15
	assert engine.render_bars(8)


def test_config_file_is_used (tmp_path) -> None:

	config_path = tmp_path / "config.yaml"
	config_path.write_text("engine:\n  bpm: 72\n")
	out = str(tmp_path / "out.mid")

	musicbox.__main__.main(["--config", str(config_path), "render", out, "--phrases", "1", "--seed", "1"])

	tempo = [m for m in mido.MidiFile(out).tracks[0] if m.type == "set_tempo"]

	assert tempo[0].tempo == mido.bpm2tempo(72.0)


@pytest.mark.asyncio
async def test_run_live_stops_on_sigterm (patch_midi, make_engine) -> None:

	"""A termination signal ends live playback, silences the port and closes it."""

	app = musicbox.config.AppConfig()
	live = asyncio.ensure_future(musicbox.__main__.run_live(app, make_engine()))

	await asyncio.sleep(0.05)
	assert not live.done()

	os.kill(os.getpid(), signal.SIGTERM)
	await asyncio.wait_for(live, timeout=2.0)

	port = conftest._current_fake_output
	assert port is not None
	assert port.closed
	assert any(m.type == "control_change" and m.control == 123 for m in port.messages)
