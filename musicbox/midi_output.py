import dataclasses
import heapq
import itertools
import logging
import typing

import mido

import musicbox.voices


logger = logging.getLogger(__name__)

MIDI_CHANNELS = 16


def select_output_device (device_name: typing.Optional[str] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Select and open a MIDI output port.

	A named device must exist. Without a name, a single available port is used
	directly and several ports are offered as a numbered console prompt.

	Returns:
		``(device_name, port)`` or ``(None, None)`` on failure.
	"""

	try:
		outputs = mido.get_output_names()
		logger.info(f"Available MIDI outputs: {outputs}")

		if not outputs:
			logger.error("No MIDI output devices found.")
			return None, None

		if device_name is not None:

			if device_name not in outputs:
				logger.error(f"MIDI output device '{device_name}' not found. Available devices: {outputs}")
				return None, None

			port = mido.open_output(device_name)
			logger.info(f"Opened MIDI output: {device_name}")
			return device_name, port

		if len(outputs) == 1:
			port = mido.open_output(outputs[0])
			logger.info(f"One MIDI output found - using '{outputs[0]}'")
			return outputs[0], port

		print("\nAvailable MIDI output devices:\n")
		for i, name in enumerate(outputs, 1):
			print(f"  {i}. {name}")
		print()

		while True:
			try:
				choice = int(input(f"Select a device (1-{len(outputs)}): "))
				if 1 <= choice <= len(outputs):
					break
			except (ValueError, EOFError):
				pass
			print(f"Enter a number between 1 and {len(outputs)}.")

		selected = outputs[choice - 1]
		port = mido.open_output(selected)
		logger.info(f"Opened MIDI output: {selected}")

		print(f"\nTip: To skip this prompt, pass the device name directly:\n")
		print(f"  musicbox play --device \"{selected}\"\n")

		return selected, port

	except Exception as e:
		logger.error(f"Failed to open MIDI output: {e}")
		return None, None


@dataclasses.dataclass(order=True)
class PendingMessage:

	"""A MIDI message waiting for its send time (loop clock seconds)."""

	due: float
	sequence: int
	message: mido.Message = dataclasses.field(compare=False)


class MidiSink:

	"""
	Plays onset events on a MIDI output port.

	Events arrive ahead of time with a target clock time. Note-on and note-off
	messages wait in a queue until :meth:`process` is called at or after their
	due time.
	"""

	def __init__ (self, device_name: typing.Optional[str] = None, port: typing.Optional[typing.Any] = None) -> None:

		self.device_name = device_name
		self.port = port
		self.queue: typing.List[PendingMessage] = []
		# Overlapping notes per (channel, note) that have started and not yet ended.
		self.sounding: typing.Dict[typing.Tuple[int, int], int] = {}
		self._sequence = itertools.count()


	def open (self) -> bool:

		"""Open the configured port unless one was given. Returns whether a port is available."""

		if self.port is None:
			self.device_name, self.port = select_output_device(self.device_name)

		return self.port is not None


	def send (self, event: musicbox.voices.OnsetEvent, at: float) -> None:

		"""Queue the note-on at ``at`` and its note-off ``event.duration`` later."""

		note = event.midi_note

		heapq.heappush(self.queue, PendingMessage(
			due = at,
			sequence = next(self._sequence),
			message = mido.Message("note_on", channel=event.channel, note=note, velocity=event.velocity)
		))

		heapq.heappush(self.queue, PendingMessage(
			due = at + event.duration,
			sequence = next(self._sequence),
			message = mido.Message("note_off", channel=event.channel, note=note, velocity=0)
		))


	def next_due (self) -> typing.Optional[float]:

		return self.queue[0].due if self.queue else None


	def process (self, now: float) -> int:

		"""Send every queued message due at ``now`` or earlier. Returns how many were sent."""

		sent = 0

		while self.queue and self.queue[0].due <= now:
			pending = heapq.heappop(self.queue)
			self._send_message(pending.message)
			sent += 1

		return sent


	def _send_message (self, message: mido.Message) -> None:

		"""
		Send one note message, keeping overlapping notes of the same pitch paired.

		A note-on for a pitch that is already sounding retriggers it: the old
		note is ended and the new one started. Only the note-off that closes the
		last overlapping note reaches the port, so an earlier note-off never cuts
		a later note short.
		"""

		key = (message.channel, message.note)
		count = self.sounding.get(key, 0)
		outgoing: typing.List[mido.Message] = []

		if message.type == "note_on":
			if count > 0:
				outgoing.append(mido.Message("note_off", channel=message.channel, note=message.note, velocity=0))
			outgoing.append(message)
			self.sounding[key] = count + 1
		elif count > 1:
			self.sounding[key] = count - 1
		elif count == 1:
			del self.sounding[key]
			outgoing.append(message)

		if self.port is None:
			return

		try:
			for outgoing_message in outgoing:
				self.port.send(outgoing_message)
		except Exception:
			logger.exception("MIDI send failed (device may be disconnected)")


	def release_all (self) -> None:

		"""Drop queued messages and silence everything that is sounding."""

		self.queue = []

		if self.port is None:
			self.sounding.clear()
			return

		try:
			for channel, note in sorted(self.sounding):
				self.port.send(mido.Message("note_off", channel=channel, note=note, velocity=0))

			# All Notes Off (CC 123) and All Sound Off (CC 120) on every channel.
			for channel in range(MIDI_CHANNELS):
				self.port.send(mido.Message("control_change", channel=channel, control=123, value=0))
				self.port.send(mido.Message("control_change", channel=channel, control=120, value=0))

		except Exception:
			logger.exception("MIDI panic failed (device may be disconnected)")

		self.sounding.clear()

		logger.info("Released all sounding notes")


	def close (self) -> None:

		if self.port is None:
			return

		self.release_all()

		try:
			self.port.close()
		except Exception:
			logger.exception("Failed to close MIDI output")

		self.port = None
