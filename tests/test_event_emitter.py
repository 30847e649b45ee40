import logging

import pytest

import musicbox.event_emitter


def test_on_and_emit_sync () -> None:

	"""Registered sync callbacks are called on emit_sync."""

	emitter = musicbox.event_emitter.EventEmitter()
	received: list[int] = []

	emitter.on("bar", lambda v: received.append(v))
	emitter.emit_sync("bar", 42)

	assert received == [42]


def test_off_removes_callback () -> None:

	"""off() prevents a previously registered callback from being called."""

	emitter = musicbox.event_emitter.EventEmitter()
	received: list[int] = []

	def cb (v: int) -> None:
		received.append(v)

	emitter.on("bar", cb)
	emitter.off("bar", cb)
	emitter.emit_sync("bar", 1)

	assert received == []
	assert emitter.listener_count("bar") == 0


def test_off_only_removes_target_callback () -> None:

	"""off() leaves other callbacks for the same event intact."""

	emitter = musicbox.event_emitter.EventEmitter()
	a: list[int] = []
	b: list[int] = []

	def cb_a (v: int) -> None:
		a.append(v)

	def cb_b (v: int) -> None:
		b.append(v)

	emitter.on("bar", cb_a)
	emitter.on("bar", cb_b)
	emitter.off("bar", cb_a)
	emitter.emit_sync("bar", 7)

	assert a == []
	assert b == [7]


def test_off_raises_for_unregistered_callback () -> None:

	"""off() raises ValueError when the callback was never registered."""

	emitter = musicbox.event_emitter.EventEmitter()

	with pytest.raises(ValueError, match="bar"):
		emitter.off("bar", lambda: None)


def test_off_raises_after_already_removed () -> None:

	"""off() raises ValueError when called twice for the same callback."""

	emitter = musicbox.event_emitter.EventEmitter()

	def cb (v: int) -> None:
		pass

	emitter.on("bar", cb)
	emitter.off("bar", cb)

	with pytest.raises(ValueError):
		emitter.off("bar", cb)


# ---------------------------------------------------------------------------
# Listener failures
# ---------------------------------------------------------------------------


def test_failing_listener_is_isolated (caplog: pytest.LogCaptureFixture) -> None:

	"""A raising listener is logged and the following listeners still run."""

	emitter = musicbox.event_emitter.EventEmitter()
	received: list[str] = []

	def broken (v: str) -> None:
		raise RuntimeError("broken listener")

	emitter.on("chord", broken)
	emitter.on("chord", received.append)

	with caplog.at_level(logging.ERROR, logger="musicbox.event_emitter"):
		emitter.emit_sync("chord", "C")

	assert received == ["C"]
	assert "chord" in caplog.text


def test_emit_sync_skips_async_listeners () -> None:

	emitter = musicbox.event_emitter.EventEmitter()
	called: list[bool] = []

	async def listener (v: bool) -> None:
		called.append(v)

	emitter.on("playing", listener)
	emitter.emit_sync("playing", True)

	assert called == []


@pytest.mark.asyncio
async def test_emit_async_runs_both_kinds () -> None:

	"""Sync listeners run at once; async ones are awaited, and one failing does not stop the other."""

	emitter = musicbox.event_emitter.EventEmitter()
	received: list[str] = []

	async def async_listener (v: str) -> None:
		received.append(f"async {v}")

	async def async_broken (v: str) -> None:
		raise RuntimeError("nope")

	emitter.on("playing", lambda v: received.append(f"sync {v}"))
	emitter.on("playing", async_broken)
	emitter.on("playing", async_listener)

	await emitter.emit_async("playing", "on")

	assert sorted(received) == ["async on", "sync on"]
