import asyncio
import logging
import time
import typing

import musicbox.config
import musicbox.engine
import musicbox.voices


logger = logging.getLogger(__name__)


class EventSink (typing.Protocol):

	"""
	Receives dated onsets ahead of time and plays them when they fall due.
	"""

	def send (self, event: musicbox.voices.OnsetEvent, at: float) -> None:
		...

	def process (self, now: float) -> int:
		...

	def next_due (self) -> typing.Optional[float]:
		...

	def release_all (self) -> None:
		...


class LiveScheduler:

	"""
	Drives an engine against the wall clock.

	Every wake generates whatever falls inside the lookahead window, hands it
	to the sink stamped with a clock time no earlier than ``now`` plus the
	safety margin, and lets the sink send what is due. Each wake re-evaluates
	what is due from the clock, so late or early timer firing only shifts
	when work happens, never what is played.
	"""

	def __init__ (
		self,
		engine: musicbox.engine.Engine,
		sink: EventSink,
		config: typing.Optional[musicbox.config.SchedulerConfig] = None,
		clock: typing.Callable[[], float] = time.perf_counter
	) -> None:

		"""Attach the scheduler to an engine and a sink.

		Parameters:
			engine: Generative core to drive.
			sink: Where dated events go (a :class:`~musicbox.midi_output.MidiSink`).
			config: Wake interval, lookahead and safety margin, in seconds.
			clock: Monotonic clock in seconds; tests pass a fake.
		"""

		self.engine = engine
		self.sink = sink
		self.config = config or musicbox.config.SchedulerConfig()
		self.clock = clock

		self.running = False
		self.task: typing.Optional[asyncio.Task] = None
		self.shutdown_event = asyncio.Event()

		# Clock time at which transport time zero falls.
		self.origin = 0.0
		self.has_played = False


	@property
	def is_playing (self) -> bool:
		return self.running


	def transport_time (self) -> float:

		return self.clock() - self.origin


	async def start (self) -> None:

		"""Start playback, resuming in place or from a fresh state as configured."""

		if self.running:
			return

		if self.has_played and self.config.resume_in_place:
			# Continue from where generation stopped.
			self.origin = self.clock() - self.engine.time
			logger.info(f"Resuming at {self.engine.time:.2f}s")
		else:
			if self.has_played:
				self.engine.reset()
			self.origin = self.clock()

		self.has_played = True
		self.running = True
		self.task = asyncio.create_task(self._run_loop())

		logger.info("Scheduler started")

		await self.engine.events.emit_async("playing", True)


	async def stop (self) -> None:

		"""Stop the loop and silence the sink. Generator state stays valid."""

		if not self.running:
			return

		logger.info("Stopping scheduler...")

		self.running = False

		if self.task:
			try:
				await self.task
			except asyncio.CancelledError:
				pass
			self.task = None

		self.sink.release_all()

		logger.info("Scheduler stopped")

		await self.engine.events.emit_async("playing", False)


	async def toggle (self) -> None:

		if self.running:
			await self.stop()
		else:
			await self.start()


	def request_shutdown (self) -> None:

		"""
		Ask a running :meth:`play` to stop playback and return. Safe to call from a signal handler.
		"""

		self.shutdown_event.set()


	async def play (self) -> None:

		"""
		Start playback and keep the session alive until :meth:`request_shutdown` is called.

		Stopping and starting the transport in between (from OSC, say) pauses and
		resumes playback without ending the session. Cancelling the task also
		ends it. Either way the loop is stopped and the sink silenced on the way out.
		"""

		self.shutdown_event.clear()

		await self.start()

		try:
			await self.shutdown_event.wait()
		finally:
			await self.stop()


	def tick (self) -> int:

		"""Run one wake of the loop. Returns the number of events generated."""

		now = self.clock()
		horizon = now - self.origin + self.config.lookahead

		events = self.engine.render_until(horizon)

		for event in events:
			at = max(self.origin + event.time, now + self.config.safety_margin)
			self.sink.send(event, at)

		self.sink.process(now)

		if events:
			logger.debug(f"Scheduled {len(events)} events up to {horizon:.3f}s")

		return len(events)


	def _sleep_time (self) -> float:

		sleep = self.config.wake_interval
		due = self.sink.next_due()

		if due is not None:
			sleep = min(sleep, due - self.clock())

		return max(0.0, sleep)


	async def _run_loop (self) -> None:

		while self.running:
			self.tick()
			await asyncio.sleep(self._sleep_time())
