import logging
import typing

import liveloop.constants
import liveloop.output
import liveloop.pattern
import liveloop.timer


logger = logging.getLogger(__name__)


class Metronome:

	"""
	Clicks once per beat through its own channel.

	Each beat schedules the next one from the time it was due (not the time
	it ran), so the click does not drift.
	"""

	def __init__ (self, output: liveloop.output.Output, bpm: float, channel: typing.Optional[int] = None) -> None:

		"""
		Allocate a channel on ``output`` (the lowest free one unless given) and select the click sound.
		"""

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.output = output
		self.interval = liveloop.constants.SECONDS_PER_MINUTE / bpm
		self.instrument = output.instrument(liveloop.constants.METRONOME_PRESET, channel)
		self.timer = output.scheduler.get(self.interval / liveloop.constants.TIMER_DIVISIONS)
		self.beats = 0

		self._pending: typing.Optional[liveloop.timer.ScheduledEvent] = None
		self._released = False

	def start (self, now: typing.Optional[float] = None) -> None:

		"""Click now (or at ``now``) and every beat after."""

		if self._pending is not None:
			return

		if self._released:
			raise RuntimeError("Metronome was stopped and its channel released")

		self._register_next_bang(now if now is not None else self.output.scheduler.now())

	def stop (self) -> None:

		"""Stop clicking and give the channel back. Safe to call more than once."""

		if self._pending is not None:
			self._pending.cancel()
			self._pending = None

		if not self._released:
			self.output.release(self.instrument)
			self._released = True

	def _register_next_bang (self, time: float) -> None:

		self._pending = self.timer.at(time, self._bang)

	def _bang (self, time: float) -> None:

		self._register_next_bang(time + self.interval)
		self.beats += 1

		self.instrument.play(
			liveloop.constants.METRONOME_NOTE,
			liveloop.constants.METRONOME_LENGTH,
			time = self.output.scheduler.now() + liveloop.constants.METRONOME_DELAY
		)


class PatternPlayer:

	"""
	Plays every cell of a Pattern once, one cell per beat, then stops.
	"""

	def __init__ (self, instrument: liveloop.output.Instrument, bpm: float, pattern: liveloop.pattern.Pattern) -> None:

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self.instrument = instrument
		self.pattern = pattern
		self.interval = liveloop.constants.SECONDS_PER_MINUTE / bpm
		self.timer = instrument.output.scheduler.get(self.interval / liveloop.constants.TIMER_DIVISIONS)
		self.count = 0

		self._pending: typing.Optional[liveloop.timer.ScheduledEvent] = None

	@property
	def finished (self) -> bool:

		return self.count >= len(self.pattern)

	def start (self, now: typing.Optional[float] = None) -> None:

		if self._pending is not None or self.finished:
			return

		self._pending = self.timer.at(now if now is not None else self.instrument.output.scheduler.now(), self._play)

	def stop (self) -> None:

		if self._pending is not None:
			self._pending.cancel()
			self._pending = None

	def _play (self, time: float) -> None:

		self._pending = None

		note, duration = self.pattern[self.count]
		self.count += 1

		if note is not None:
			length = self.interval * duration - self.interval * liveloop.constants.NOTE_GAP
			self.instrument.play(note, length, time=time)

		if self.finished:
			logger.info(f"Finished playing {self.pattern!r}")
			return

		self._pending = self.timer.at(time + self.interval, self._play)


class Tapper:

	"""
	Plays the next cell of a Pattern each time :meth:`trigger` is called.

	Useful for tapping a rhythm in by hand, from a key press or a MIDI pad.
	Each note lasts ``length`` seconds per beat of its cell. Rests advance
	the pattern silently.
	"""

	def __init__ (self, instrument: liveloop.output.Instrument, length: float, pattern: liveloop.pattern.Pattern) -> None:

		if length <= 0:
			raise ValueError("length must be positive")

		self.instrument = instrument
		self.length = length
		self.pattern = pattern
		self.count = 0

	def trigger (self, time: typing.Optional[float] = None) -> typing.Tuple[typing.Optional[int], int]:

		"""
		Play the next cell at ``time`` (default: now) and return it.
		"""

		note, duration = self.pattern[self.count]
		self.count += 1

		if note is not None:
			self.instrument.play(note, self.length * duration, time=time)

		return note, duration
