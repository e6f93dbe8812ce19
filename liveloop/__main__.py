import argparse
import asyncio
import logging
import signal
import sys
import typing

import liveloop.config
import liveloop.monitor
import liveloop.output
import liveloop.player
import liveloop.sinks
import liveloop.timer


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_args (argv: typing.Optional[typing.List[str]] = None) -> argparse.Namespace:

	"""
	Parse command-line arguments.
	"""

	parser = argparse.ArgumentParser(prog="liveloop", description="Play a live-coded script, reloading it whenever it changes.")
	parser.add_argument("script", nargs="?", help="script to play (overrides 'script' in the config file)")
	parser.add_argument("--config", default="config.yaml", help="YAML config file (default: config.yaml)")
	parser.add_argument("--device", help="MIDI output device name (overrides the config file)")
	parser.add_argument("--no-midi", action="store_true", help="log notes instead of sending MIDI")

	return parser.parse_args(argv)


async def run (settings: liveloop.config.Settings, script: str, use_midi: bool = True) -> int:

	"""
	Play ``script`` until interrupted or until no working version of it is left.

	Returns the process exit code.
	"""

	scheduler = liveloop.timer.Scheduler()
	await scheduler.start()

	sink: liveloop.output.SoundSink
	midi_sink = liveloop.sinks.open_output(settings.device_name) if use_midi else None

	if midi_sink is None:
		logger.warning("No MIDI output - notes will only be logged")
		sink = liveloop.sinks.LogSink()
	else:
		sink = midi_sink

	output = liveloop.output.Output(sink, scheduler, bpm=settings.bpm, channels=settings.channels)

	try:
		monitor = liveloop.monitor.Monitor(
			script,
			scheduler,
			seed = liveloop.player.Player(settings.bpm),
			namespace = {"output": output},
			poll_interval = settings.poll_interval
		)

	except liveloop.monitor.MonitorError as exc:
		logger.error(f"Cannot play {script}: {exc!r}")
		await scheduler.stop()
		return 2

	def _follow_tempo (player: liveloop.player.Player) -> None:

		"""Keep note lengths in step with the active generation's tempo."""

		output.bpm = player.bpm()

	monitor.on_event("activate", _follow_tempo)

	if monitor.current is not None:
		_follow_tempo(monitor.current)

	stop_event = asyncio.Event()
	loop = asyncio.get_running_loop()

	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, stop_event.set)

	monitor.on_event("exhausted", stop_event.set)

	logger.info("Playing. Press Ctrl+C to stop.")

	monitor.start()

	try:
		await stop_event.wait()

	finally:
		monitor.stop()
		await scheduler.stop()

		if midi_sink is not None:
			midi_sink.panic()
			midi_sink.close()

	return 0 if monitor.healthy else 1


def main (argv: typing.Optional[typing.List[str]] = None) -> int:

	"""
	Main entry point for the liveloop application.
	"""

	args = parse_args(argv)
	settings = liveloop.config.load_config(args.config)

	logging.getLogger().setLevel(settings.log_level.upper())

	if args.device is not None:
		settings.device_name = args.device

	script = args.script or settings.script

	if script is None:
		logger.error("No script given - pass one on the command line or set 'script' in the config file")
		return 2

	return asyncio.run(run(settings, script, use_midi=not args.no_midi))


if __name__ == "__main__":
	sys.exit(main())
