"""Timer lateness benchmark.

Schedules a self-rescheduling chain of events on one Timer and measures how
late each callback runs relative to its scheduled time. Lateness is bounded
by the resolution plus event loop wake-up latency.

Usage:
    python benchmarks/timer_lateness.py [--bpm BPM] [--beats N] [--divisions D]

Options:
    --bpm BPM           Tempo of the chain in BPM (default: 120)
    --beats N           Number of events to measure (default: 64)
    --divisions D       Timer resolution = beat / D (default: 10)
"""

import argparse
import asyncio
import logging
import statistics

# Suppress timer logging during benchmark - we want clean output.
logging.basicConfig(level=logging.ERROR)

import liveloop.timer


def _run_benchmark (bpm: float, beats: int, divisions: int) -> list[float]:

	"""Run the chain for *beats* events and return per-event lateness (seconds)."""

	lateness: list[float] = []
	interval = 60.0 / bpm
	resolution = interval / divisions

	async def _run () -> None:

		scheduler = liveloop.timer.Scheduler()
		timer = scheduler.get(resolution)
		done = asyncio.Event()

		def _beat (fire_time: float) -> None:

			lateness.append(scheduler.now() - fire_time)

			if len(lateness) >= beats:
				done.set()
				return

			timer.at(fire_time + interval, _beat)

		await scheduler.start()
		timer.at(scheduler.now() + interval, _beat)

		await asyncio.wait_for(done.wait(), timeout=interval * beats + 2.0)
		await scheduler.stop()

	asyncio.run(_run())

	return lateness


def _print_report (lateness: list[float], bpm: float, divisions: int) -> None:

	if not lateness:
		print("No lateness data collected.")
		return

	ms = [value * 1000 for value in lateness]
	resolution_ms = 60.0 / bpm / divisions * 1000

	print(f"\nTimer Lateness Benchmark - {len(ms)} beats at {bpm:.0f} BPM (resolution {resolution_ms:.1f} ms)")
	print(f"{'─' * 62}")
	print(f"  Mean lateness   : {statistics.mean(ms):>8.3f} ms")
	print(f"  Median lateness : {statistics.median(ms):>8.3f} ms")
	print(f"  Std deviation   : {(statistics.stdev(ms) if len(ms) > 1 else 0.0):>8.3f} ms")
	print(f"  P95 lateness    : {sorted(ms)[int(len(ms) * 0.95)]:>8.3f} ms")
	print(f"  Max lateness    : {max(ms):>8.3f} ms")
	print(f"{'─' * 62}")

	within = sum(1 for value in ms if value <= resolution_ms)
	print(f"  Within one resolution window: {within}/{len(ms)}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--bpm",       type=float, default=120, help="Tempo in BPM (default: 120)")
	parser.add_argument("--beats",     type=int,   default=64,  help="Events to measure (default: 64)")
	parser.add_argument("--divisions", type=int,   default=10,  help="Timer resolution = beat / D (default: 10)")
	args = parser.parse_args()

	lateness = _run_benchmark(args.bpm, args.beats, args.divisions)
	_print_report(lateness, args.bpm, args.divisions)


if __name__ == "__main__":
	main()
