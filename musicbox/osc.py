"""OSC control and state broadcasting.

The server listens on a UDP port (default 9000) for control messages and sends
state updates to a target host/port (default 127.0.0.1:9001).

Receive handlers
────────────────
- ``/bpm <float>``: Set tempo (from the next bar)
- ``/hawkes/base_rate <float>``: Background onsets per bar
- ``/hawkes/excitation <float>``: Intensity jump after each onset
- ``/hawkes/decay <float>``: Excitation decay per bar
- ``/play``, ``/stop``, ``/toggle``: Transport control (needs a scheduler)

Sent messages
─────────────
- ``/chord <string>``: 12-character bit string of the new chord
- ``/note <int>``: Pitch class of each onset
- ``/phrase <int> <int>``: Scale rotation and key of a new phrase (-1 when unset)
- ``/playing <int>``: 1 when playback starts, 0 when it stops
- ``/bpm <float>``: When a tempo change takes effect
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import musicbox.engine
import musicbox.phrase
import musicbox.pitch_class_set
import musicbox.voices

if typing.TYPE_CHECKING:
	from musicbox.scheduler import LiveScheduler


logger = logging.getLogger(__name__)


class OscServer:

	"""Async OSC server/client for bi-directional communication."""

	def __init__ (
		self,
		engine: musicbox.engine.Engine,
		scheduler: typing.Optional["LiveScheduler"] = None,
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._engine = engine
		self._scheduler = scheduler
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/bpm", self._float_handler(engine.set_bpm, "BPM"))
		self._dispatcher.map("/hawkes/base_rate", self._float_handler(engine.set_hawkes_base_rate, "Hawkes base rate"))
		self._dispatcher.map("/hawkes/excitation", self._float_handler(engine.set_hawkes_excitation, "Hawkes excitation"))
		self._dispatcher.map("/hawkes/decay", self._float_handler(engine.set_hawkes_decay, "Hawkes decay"))
		self._dispatcher.map("/play", self._handle_transport)
		self._dispatcher.map("/stop", self._handle_transport)
		self._dispatcher.map("/toggle", self._handle_transport)

		engine.events.on("chord", self._on_chord)
		engine.events.on("note", self._on_note)
		engine.events.on("phrase", self._on_phrase)
		engine.events.on("playing", self._on_playing)
		engine.events.on("bpm", self._on_bpm)


	@property
	def dispatcher (self) -> pythonosc.dispatcher.Dispatcher:
		return self._dispatcher


	async def start (self) -> None:

		"""Start the OSC server and client."""

		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self._receive_port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server."""

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, list(args))
			except Exception as e:
				logger.warning(f"OSC send error: {e}")


	# Outgoing state

	def _on_chord (self, chord: musicbox.pitch_class_set.PitchClassSet) -> None:
		self.send("/chord", chord.to_binary_string())

	def _on_note (self, event: musicbox.voices.OnsetEvent) -> None:
		self.send("/note", event.pitch_class)

	def _on_phrase (self, phrase: musicbox.phrase.Phrase) -> None:
		rotation = phrase.rotation if phrase.rotation is not None else -1
		key = phrase.key if phrase.key is not None else -1
		self.send("/phrase", rotation, key)

	def _on_playing (self, playing: bool) -> None:
		self.send("/playing", 1 if playing else 0)

	def _on_bpm (self, bpm: float) -> None:
		self.send("/bpm", float(bpm))


	# Handlers

	def _float_handler (self, setter: typing.Callable[[float], None], label: str) -> typing.Callable[..., None]:

		def handler (address: str, *args: typing.Any) -> None:
			if not args:
				return
			try:
				value = float(args[0])
			except (ValueError, TypeError):
				logger.warning(f"Invalid OSC {label} argument: {args[0]}")
				return
			setter(value)

		return handler


	def _handle_transport (self, address: str, *args: typing.Any) -> None:

		if self._scheduler is None:
			logger.warning(f"OSC {address} ignored: no scheduler attached")
			return

		scheduler = self._scheduler
		action = {
			"/play": scheduler.start,
			"/stop": scheduler.stop,
			"/toggle": scheduler.toggle,
		}[address]

		asyncio.ensure_future(action())
