"""Play a pattern once over a metronome, without a live script.

Usage:
    python examples/metronome.py
"""

import asyncio
import logging

import liveloop
import liveloop.metronome
import liveloop.sinks


logging.basicConfig(level=logging.INFO)

BPM = 100


async def main () -> None:

	scheduler = liveloop.Scheduler()
	await scheduler.start()

	sink = liveloop.sinks.open_output() or liveloop.sinks.LogSink()
	output = liveloop.Output(sink, scheduler, bpm=BPM)

	metronome = liveloop.metronome.Metronome(output, BPM)
	melody = liveloop.metronome.PatternPlayer(output.instrument(0), BPM, liveloop.Pattern(60, "0 2 4 5 7= 5 4 2 0=="))

	now = scheduler.now()
	metronome.start(now)
	melody.start(now)

	while not melody.finished:
		await asyncio.sleep(0.1)

	await asyncio.sleep(1.0)

	metronome.stop()
	await scheduler.stop()


if __name__ == "__main__":
	asyncio.run(main())
