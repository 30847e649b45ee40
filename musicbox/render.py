"""Offline rendering.

Rendering always runs on a separate engine that shares the live engine's
graphs and settings, so a live session can keep playing while a render is in
progress and never notices it.
"""

import logging
import typing

import musicbox.engine
import musicbox.midi_file
import musicbox.phrase
import musicbox.voices


logger = logging.getLogger(__name__)


def render_events (
	engine: musicbox.engine.Engine,
	phrases: int,
	seed: typing.Optional[int] = None,
	continue_from_live: bool = False
) -> typing.List[musicbox.voices.OnsetEvent]:

	"""Generate ``phrases`` whole phrases and return their onsets in time order.

	Parameters:
		engine: The engine whose graphs and settings are used. It is not modified.
		phrases: Number of eight-bar phrases to render.
		seed: Seed for the render's random source.
		continue_from_live: Start from a copy of ``engine``'s current state
			(phrase, cursors, history) instead of a fresh start at time zero.
			The copy keeps the live random state, so ``seed`` has no effect.
	"""

	if phrases < 0:
		raise ValueError("Phrase count cannot be negative")

	offline = engine.offline_copy(seed)

	if continue_from_live:
		offline.restore(engine.snapshot())

	events = offline.render_bars(phrases * musicbox.phrase.BARS_PER_PHRASE)

	fallbacks = sum(process.fallback_count for process in offline.florid_processes())

	logger.info(f"Rendered {phrases} phrases: {len(events)} notes, {fallbacks} thinning fallbacks")

	return events


def render_to_midi_file (
	engine: musicbox.engine.Engine,
	phrases: int,
	filename: str,
	seed: typing.Optional[int] = None
) -> bool:

	"""Render ``phrases`` phrases and save them as a MIDI file at the engine's tempo."""

	events = render_events(engine, phrases, seed)

	return musicbox.midi_file.write_midi_file(events, filename, engine.config.bpm)
