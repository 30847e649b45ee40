import pytest

import musicbox.midi_output
import musicbox.voices


def _event (time: float = 0.0, duration: float = 0.5) -> musicbox.voices.OnsetEvent:
	return musicbox.voices.OnsetEvent(time=time, voice="florid", pitch_class=0, octave=5, duration=duration, velocity=80, channel=1)


def test_select_named_device (patch_midi: None) -> None:

	name, port = musicbox.midi_output.select_output_device("Dummy MIDI")

	assert name == "Dummy MIDI"
	assert port is not None


def test_select_single_device_without_name (patch_midi: None) -> None:

	name, _ = musicbox.midi_output.select_output_device()

	assert name == "Dummy MIDI"


def test_missing_device (patch_midi: None) -> None:

	assert musicbox.midi_output.select_output_device("Nope") == (None, None)


def test_send_waits_until_due (patch_midi: None) -> None:

	"""Note-on plays at its time and note-off one duration later."""

	sink = musicbox.midi_output.MidiSink("Dummy MIDI")

	assert sink.open()

	port = sink.port
	sink.send(_event(), 1.0)

	assert sink.next_due() == 1.0
	assert sink.process(0.9) == 0
	assert sink.process(1.0) == 1
	assert port.messages[0].type == "note_on"
	assert port.messages[0].note == 60
	assert port.messages[0].channel == 1
	assert port.messages[0].velocity == 80
	assert sink.sounding == {(1, 60): 1}

	assert sink.process(1.5) == 1
	assert port.messages[1].type == "note_off"
	assert sink.sounding == {}
	assert sink.next_due() is None


def test_overlapping_same_pitch_keeps_the_later_note (patch_midi: None) -> None:

	"""The earlier note-off of two overlapping notes must not cut the later one short."""

	sink = musicbox.midi_output.MidiSink("Dummy MIDI")
	sink.open()
	port = sink.port

	sink.send(_event(duration=1.0), 0.0)
	sink.send(_event(duration=1.0), 0.5)

	sink.process(0.0)
	sink.process(0.5)

	assert [m.type for m in port.messages] == ["note_on", "note_off", "note_on"]
	assert sink.sounding == {(1, 60): 2}

	sink.process(1.0)

	assert len(port.messages) == 3
	assert sink.sounding == {(1, 60): 1}

	sink.process(1.5)

	assert [m.type for m in port.messages] == ["note_on", "note_off", "note_on", "note_off"]
	assert sink.sounding == {}


def test_release_all_silences_everything (patch_midi: None) -> None:

	sink = musicbox.midi_output.MidiSink("Dummy MIDI")
	sink.open()
	port = sink.port

	sink.send(_event(), 0.0)
	sink.send(_event(duration=1.0), 0.5)
	sink.process(0.1)
	port.messages.clear()

	sink.release_all()

	assert sink.queue == []
	assert sink.sounding == {}
	assert port.messages[0].type == "note_off"
	assert port.messages[0].note == 60

	controls = [m for m in port.messages if m.type == "control_change"]

	assert len(controls) == 32
	assert {m.control for m in controls} == {120, 123}


def test_send_failure_is_logged (caplog: pytest.LogCaptureFixture) -> None:

	class BrokenPort:
		def send (self, message) -> None:
			raise OSError("unplugged")

	sink = musicbox.midi_output.MidiSink(port=BrokenPort())
	sink.send(_event(), 0.0)

	assert sink.process(1.0) == 2
	assert "MIDI send failed" in caplog.text


def test_close (patch_midi: None) -> None:

	sink = musicbox.midi_output.MidiSink("Dummy MIDI")
	sink.open()
	port = sink.port

	sink.close()

	assert port.closed
	assert sink.port is None
