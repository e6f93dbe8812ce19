import logging
import typing

import liveloop.channels
import liveloop.constants
import liveloop.pattern
import liveloop.timer


logger = logging.getLogger(__name__)


@typing.runtime_checkable
class SoundSink (typing.Protocol):

	"""
	Anything that can sound discrete note and program events.
	"""

	def note_on (self, channel: int, pitch: int, velocity: int) -> None:
		...

	def note_off (self, channel: int, pitch: int, velocity: int) -> None:
		...

	def program_change (self, channel: int, preset: int) -> None:
		...


class Output:

	"""
	Schedules notes on a Sound Sink and hands out channels to instruments.

	Each :meth:`play` queues a ``note_on`` and a matching ``note_off`` on a
	Timer whose resolution is a tenth of the beat interval.
	"""

	def __init__ (
		self,
		sink: SoundSink,
		scheduler: liveloop.timer.Scheduler,
		bpm: float = liveloop.constants.DEFAULT_BPM,
		channels: int = liveloop.constants.MIDI_CHANNELS
	) -> None:

		"""
		Parameters:
			sink: Where note and program events are sent.
			scheduler: Supplies the note Timer and the clock.
			bpm: Tempo used to size pattern notes.
			channels: Size of the channel pool.
		"""

		self.sink = sink
		self.scheduler = scheduler
		self.channel_manager = liveloop.channels.ChannelManager(channels)

		self.interval: float = 0.0
		self._bpm: float = 0
		self._timer: typing.Optional[liveloop.timer.Timer] = None

		self.bpm = bpm

	@property
	def bpm (self) -> float:

		return self._bpm

	@bpm.setter
	def bpm (self, value: float) -> None:

		if value <= 0:
			raise ValueError("BPM must be positive")

		if value == self._bpm:
			return

		self._bpm = value
		self.interval = liveloop.constants.SECONDS_PER_MINUTE / value
		self._timer = self.scheduler.get(self.interval / liveloop.constants.TIMER_DIVISIONS)

		logger.info(f"Output BPM set to {value:.2f}")

	@property
	def timer (self) -> liveloop.timer.Timer:

		assert self._timer is not None, "Timer is set by the bpm setter"
		return self._timer

	def instrument (self, preset: int, channel: typing.Optional[int] = None) -> "Instrument":

		"""
		Allocate a channel (the lowest free one unless given), select ``preset`` on it
		and return an Instrument bound to it.
		"""

		channel = self.channel_manager.allocate(channel)
		self.sink.program_change(channel, preset)

		logger.debug(f"Instrument: preset {preset} on channel {channel}")

		return Instrument(self, channel)

	def release (self, instrument: "Instrument") -> None:

		"""
		Return an instrument's channel to the pool.
		"""

		self.channel_manager.release(instrument.channel)

	def reset (self) -> None:

		"""
		Free every channel. Call at the top of a script so each reload allocates from scratch.
		"""

		self.channel_manager.reset()

	def play (
		self,
		channel: int,
		note: int,
		duration: float,
		velocity: int = liveloop.constants.DEFAULT_VELOCITY,
		time: typing.Optional[float] = None
	) -> typing.Tuple[liveloop.timer.ScheduledEvent, liveloop.timer.ScheduledEvent]:

		"""
		Sound ``note`` at ``time`` (default: now) for ``duration`` seconds.

		Returns the scheduled ``note_on`` and ``note_off`` events.
		"""

		on_time = time if time is not None else self.scheduler.now()
		off_time = on_time + duration

		on_event = self.timer.at(on_time, lambda _: self.sink.note_on(channel, note, velocity))
		off_event = self.timer.at(off_time, lambda _: self.sink.note_off(channel, note, velocity))

		return on_event, off_event


class Instrument:

	"""
	A channel on an Output, with a preset already selected.
	"""

	def __init__ (self, output: Output, channel: int) -> None:

		self.output = output
		self.channel = channel

	def __repr__ (self) -> str:

		return f"Instrument(channel={self.channel})"

	def play (
		self,
		note: int,
		duration: float,
		velocity: int = liveloop.constants.DEFAULT_VELOCITY,
		time: typing.Optional[float] = None
	) -> typing.Tuple[liveloop.timer.ScheduledEvent, liveloop.timer.ScheduledEvent]:

		return self.output.play(self.channel, note, duration, velocity, time)

	def pattern (self, base: int, string: str, velocity: int = liveloop.constants.DEFAULT_VELOCITY) -> typing.Callable[[int], None]:

		"""
		Return a bang subscriber that plays cell ``tick`` of ``Pattern(base, string)``.

		Each note lasts its cell's duration in beats, less a short gap so repeated
		notes re-articulate. Rests play nothing. The beat length is read from the
		Output on every tick, so tempo changes apply straight away.
		"""

		pattern = liveloop.pattern.Pattern(base, string)

		def _bang (tick: int) -> None:

			note, duration = pattern[tick]

			if note is None:
				return

			interval = self.output.interval
			length = interval * duration - interval * liveloop.constants.NOTE_GAP
			self.play(note, length, velocity)

		return _bang
