import logging
import typing

import mido

import musicbox.voices


logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480


def seconds_to_ticks (seconds: float, bpm: float, ticks_per_beat: int = TICKS_PER_BEAT) -> int:

	return int(round(seconds * bpm / 60.0 * ticks_per_beat))


def build_midi_file (
	events: typing.Iterable[musicbox.voices.OnsetEvent],
	bpm: float,
	ticks_per_beat: int = TICKS_PER_BEAT
) -> mido.MidiFile:

	"""
	Lay events out in a single-track file at a constant tempo.

	At equal ticks note-offs come before note-ons, so a note that ends where
	the same pitch starts again does not cut the new note short. When notes of
	the same pitch overlap, the later note-on retriggers the pitch and only the
	last note-off is written, so every note-on has exactly one note-off.
	"""

	timeline: typing.List[typing.Tuple[int, int, mido.Message]] = []

	for event in events:

		start = seconds_to_ticks(event.time, bpm, ticks_per_beat)
		end = max(start + 1, seconds_to_ticks(event.time + event.duration, bpm, ticks_per_beat))

		timeline.append((start, 1, mido.Message("note_on", channel=event.channel, note=event.midi_note, velocity=event.velocity)))
		timeline.append((end, 0, mido.Message("note_off", channel=event.channel, note=event.midi_note, velocity=0)))

	timeline.sort(key=lambda item: (item[0], item[1]))

	mid = mido.MidiFile(type=0, ticks_per_beat=ticks_per_beat)
	track = mido.MidiTrack()
	mid.tracks.append(track)

	track.append(mido.MetaMessage("set_tempo", tempo=mido.bpm2tempo(bpm), time=0))

	sounding: typing.Dict[typing.Tuple[int, int], int] = {}
	last_tick = 0

	for tick, _, message in timeline:

		key = (message.channel, message.note)
		count = sounding.get(key, 0)
		outgoing: typing.List[mido.Message] = []

		if message.type == "note_on":
			if count > 0:
				outgoing.append(mido.Message("note_off", channel=message.channel, note=message.note, velocity=0))
			outgoing.append(message)
			sounding[key] = count + 1
		elif count > 1:
			sounding[key] = count - 1
		else:
			del sounding[key]
			outgoing.append(message)

		for outgoing_message in outgoing:
			outgoing_message.time = tick - last_tick
			track.append(outgoing_message)
			last_tick = tick

	track.append(mido.MetaMessage("end_of_track", time=0))

	return mid


def write_midi_file (
	events: typing.Sequence[musicbox.voices.OnsetEvent],
	filename: str,
	bpm: float,
	ticks_per_beat: int = TICKS_PER_BEAT
) -> bool:

	"""Save events as a Standard MIDI File. Returns whether the file was written."""

	logger.info(f"Saving MIDI file ({len(events)} notes) to {filename}...")

	mid = build_midi_file(events, bpm, ticks_per_beat)

	try:
		mid.save(filename)
		logger.info(f"Saved {filename}")
		return True
	except Exception as e:
		logger.error(f"Failed to save MIDI file: {e}")
		return False
