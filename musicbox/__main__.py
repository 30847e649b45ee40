import argparse
import asyncio
import logging
import os
import random
import signal
import typing

import musicbox.config
import musicbox.engine
import musicbox.midi_output
import musicbox.osc
import musicbox.relation_graph
import musicbox.render
import musicbox.scheduler


logger = logging.getLogger(__name__)


def build_parser () -> argparse.ArgumentParser:

	parser = argparse.ArgumentParser(prog="musicbox", description="Generative ambient note stream")
	parser.add_argument("--config", default="config.yaml", help="YAML config file (default: config.yaml)")
	parser.add_argument("--verbose", action="store_true", help="Log per-event detail")

	commands = parser.add_subparsers(dest="command", required=True)

	play = commands.add_parser("play", help="Play live to a MIDI output")
	play.add_argument("--device", default=None, help="MIDI output device name")
	play.add_argument("--bpm", type=float, default=None, help="Tempo override")
	play.add_argument("--seed", type=int, default=None, help="Random seed")
	play.add_argument("--osc", action="store_true", help="Enable OSC control and feedback")

	render = commands.add_parser("render", help="Render phrases to a MIDI file")
	render.add_argument("output", help="Output .mid filename")
	render.add_argument("--phrases", type=int, default=4, help="Number of eight-bar phrases (default: 4)")
	render.add_argument("--bpm", type=float, default=None, help="Tempo override")
	render.add_argument("--seed", type=int, default=None, help="Random seed")

	graphs = commands.add_parser("build-graphs", help="Precompute the chord and rhythm graphs as JSON")
	graphs.add_argument("--out-dir", default=".", help="Directory for chord_graph.json and rhythm_graph.json")

	return parser


def create_engine (config: musicbox.config.EngineConfig, seed: typing.Optional[int]) -> musicbox.engine.Engine:

	return musicbox.engine.Engine(config, rng=random.Random(seed))


async def run_live (app: musicbox.config.AppConfig, engine: musicbox.engine.Engine) -> None:

	"""Play until SIGINT or SIGTERM. OSC transport commands pause and resume in between."""

	sink = musicbox.midi_output.MidiSink(app.output.device_name)

	if not sink.open():
		logger.error("No MIDI output available, giving up")
		return

	scheduler = musicbox.scheduler.LiveScheduler(engine, sink, app.engine.scheduler)
	osc_server: typing.Optional[musicbox.osc.OscServer] = None

	if app.output.osc_enabled:
		osc_server = musicbox.osc.OscServer(
			engine,
			scheduler,
			receive_port = app.output.receive_port,
			send_port = app.output.send_port,
			send_host = app.output.send_host
		)
		await osc_server.start()

	loop = asyncio.get_running_loop()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, scheduler.request_shutdown)

	logger.info("Playing. Press Ctrl+C to stop.")

	try:
		await scheduler.play()
	finally:
		if osc_server is not None:
			await osc_server.stop()
		sink.close()
		for sig in (signal.SIGINT, signal.SIGTERM):
			loop.remove_signal_handler(sig)


def build_graphs (config: musicbox.config.EngineConfig, out_dir: str) -> None:

	chord_graph = musicbox.engine.load_chord_graph(config)
	rhythm_graph = musicbox.engine.load_rhythm_graph(config)

	os.makedirs(out_dir, exist_ok=True)

	chord_graph.save(os.path.join(out_dir, "chord_graph.json"), musicbox.relation_graph.encode_pitch_class_set)
	rhythm_graph.save(os.path.join(out_dir, "rhythm_graph.json"))


def main (argv: typing.Optional[typing.List[str]] = None) -> None:

	"""
	Main entry point for the musicbox command.
	"""

	args = build_parser().parse_args(argv)

	logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

	app = musicbox.config.load_config(args.config)

	if getattr(args, "bpm", None) is not None:
		app.engine.bpm = musicbox.config.clamp_bpm(args.bpm)

	if args.command == "build-graphs":
		build_graphs(app.engine, args.out_dir)
		return

	if args.command == "render":
		engine = create_engine(app.engine, args.seed)
		musicbox.render.render_to_midi_file(engine, args.phrases, args.output, seed=args.seed)
		return

	if args.device is not None:
		app.output.device_name = args.device

	if args.osc:
		app.output.osc_enabled = True

	engine = create_engine(app.engine, args.seed)

	logger.info("musicbox starting...")

	try:
		asyncio.run(run_live(app, engine))
	except KeyboardInterrupt:
		logger.info("Stopping...")


if __name__ == "__main__":
	main()
