"""Resolution-based dispatch loops for time-stamped callbacks.

A :class:`Timer` wakes every ``resolution`` seconds, fires every queued
callback whose target time has passed and keeps the rest. Timers are shared
per resolution through a :class:`Scheduler`, which owns their lifecycle:

    ```python
    scheduler = liveloop.timer.Scheduler()
    await scheduler.start()

    timer = scheduler.get(0.01)
    event = timer.at(scheduler.now() + 0.5, lambda fire_time: print(fire_time))

    event.cancel()
    await scheduler.stop()
    ```

Each callback receives the time it was scheduled for (not the time it actually
ran), so self-rescheduling chains accumulate no drift. Callbacks may be plain
functions or coroutine functions; coroutines are awaited inline.
"""

import asyncio
import dataclasses
import logging
import threading
import time
import typing


logger = logging.getLogger(__name__)

TimerCallback = typing.Callable[[float], typing.Any]
Clock = typing.Callable[[], float]


@dataclasses.dataclass (eq=False)
class ScheduledEvent:

	"""
	A callback waiting in a Timer queue, and the handle used to cancel it.
	"""

	fire_time: float
	callback: TimerCallback
	cancelled: bool = False
	fired: bool = False

	def cancel (self) -> bool:

		"""
		Prevent the callback from firing.

		Returns False if the event already fired or was already cancelled.
		"""

		if self.fired or self.cancelled:
			return False

		self.cancelled = True
		return True

	@property
	def pending (self) -> bool:

		"""True while the event is neither fired nor cancelled."""

		return not (self.fired or self.cancelled)


class Timer:

	"""
	A background dispatch loop firing queued callbacks at a fixed resolution.

	Within one dispatch tick, ready callbacks fire in the order they were
	enqueued. Across ticks, ordering is only as fine as the resolution.
	"""

	def __init__ (self, resolution: float, clock: Clock = time.perf_counter) -> None:

		"""
		Create an idle timer. Call :meth:`start` from inside a running event loop.

		Parameters:
			resolution: Seconds between dispatch passes.
			clock: Monotonic time source shared with whoever schedules events.
		"""

		if resolution <= 0:
			raise ValueError("Timer resolution must be positive")

		self.resolution = resolution
		self._clock = clock

		# at() may be called from any thread; the loop drains on the event loop thread.
		self._queue: typing.List[ScheduledEvent] = []
		self._queue_lock = threading.Lock()

		self.task: typing.Optional[asyncio.Task] = None
		self.running = False

	def __repr__ (self) -> str:

		return f"Timer(resolution={self.resolution!r}, pending={self.pending})"

	def now (self) -> float:

		"""Read the timer's clock."""

		return self._clock()

	@property
	def pending (self) -> int:

		"""Number of queued events that can still fire."""

		with self._queue_lock:
			return sum(1 for event in self._queue if event.pending)

	def at (self, fire_time: float, callback: TimerCallback) -> ScheduledEvent:

		"""
		Queue ``callback(fire_time)`` to run once ``fire_time`` has passed.

		Never blocks. Returns a handle whose ``cancel()`` withdraws the event.
		"""

		event = ScheduledEvent(fire_time=float(fire_time), callback=callback)

		with self._queue_lock:
			self._queue.append(event)

		return event

	def start (self) -> None:

		"""Start the dispatch loop as a task on the running event loop."""

		if self.running:
			return

		# Raises RuntimeError off the loop thread, before any state changes.
		loop = asyncio.get_running_loop()

		self.task = loop.create_task(self._run_loop())
		self.running = True

		logger.debug(f"Timer started at resolution {self.resolution}s")

	async def stop (self, timeout: typing.Optional[float] = None) -> int:

		"""
		Stop the loop and discard whatever is still queued.

		The loop is given ``timeout`` seconds (default: two resolutions) to finish
		its current pass before it is cancelled. Returns the number of discarded events.
		"""

		if timeout is None:
			timeout = self.resolution * 2

		self.running = False

		if self.task is not None:

			try:
				await asyncio.wait_for(self.task, timeout=timeout)

			except asyncio.TimeoutError:
				logger.warning(f"Timer at resolution {self.resolution}s did not stop within {timeout}s - cancelled")

			self.task = None

		with self._queue_lock:
			discarded = sum(1 for event in self._queue if event.pending)
			self._queue = []

		if discarded:
			logger.info(f"Timer at resolution {self.resolution}s stopped with {discarded} pending events discarded")

		return discarded

	async def dispatch (self) -> int:

		"""
		Fire every event that is due, in enqueue order. Returns the number fired.

		Events enqueued while this pass runs wait for the next pass.
		"""

		now = self._clock()

		# Switch to a heap if queues ever grow large enough for this to matter.
		with self._queue_lock:
			ready = [event for event in self._queue if event.pending and event.fire_time <= now]
			self._queue = [event for event in self._queue if event.pending and event.fire_time > now]

		fired = 0

		for event in ready:

			# Cancelled by an earlier callback in this same pass.
			if event.cancelled:
				continue

			event.fired = True
			fired += 1
			await self._invoke(event)

		return fired

	async def _invoke (self, event: ScheduledEvent) -> None:

		"""Run one callback, containing any failure to that callback."""

		try:
			result = event.callback(event.fire_time)

			if asyncio.iscoroutine(result):
				await result

		# A callback calling sys.exit() must not end the dispatch loop.
		except (Exception, SystemExit):
			name = getattr(event.callback, "__qualname__", repr(event.callback))
			logger.exception(f"Scheduled callback {name} (due {event.fire_time:.3f}) failed")

	async def _run_loop (self) -> None:

		"""Dispatch, then sleep one resolution, until stopped."""

		while self.running:
			await self.dispatch()
			await asyncio.sleep(self.resolution)


class Scheduler:

	"""
	Registry of shared Timers keyed by resolution, with an explicit lifecycle.

	The first :meth:`get` for a resolution creates its Timer; later requests
	share it. Timers created while the scheduler is running start immediately.
	"""

	def __init__ (self, clock: Clock = time.perf_counter) -> None:

		"""
		Create a stopped scheduler.

		Parameters:
			clock: Time source handed to every Timer. All fire times are on this clock.
		"""

		self._clock = clock
		self._timers: typing.Dict[float, Timer] = {}
		self._timers_lock = threading.Lock()
		self._loop: typing.Optional[asyncio.AbstractEventLoop] = None
		self.running = False

	def now (self) -> float:

		"""Read the scheduler clock."""

		return self._clock()

	@property
	def timers (self) -> typing.Dict[float, Timer]:

		"""A snapshot of the registered timers."""

		with self._timers_lock:
			return dict(self._timers)

	def get (self, resolution: float) -> Timer:

		"""
		Return the shared Timer for ``resolution``, creating it on first use.

		May be called from any thread. A Timer created off the event loop
		thread while the scheduler runs is started on that loop shortly after.
		"""

		with self._timers_lock:

			timer = self._timers.get(resolution)

			if timer is None:
				timer = Timer(resolution, clock=self._clock)
				self._timers[resolution] = timer

				if self.running and self._loop is not None:

					if self._on_loop_thread():
						timer.start()
					else:
						self._loop.call_soon_threadsafe(self._start_timer, timer)

		return timer

	def _on_loop_thread (self) -> bool:

		try:
			return asyncio.get_running_loop() is self._loop

		except RuntimeError:
			return False

	def _start_timer (self, timer: Timer) -> None:

		"""Start a Timer created off the loop thread, unless the scheduler stopped meanwhile."""

		if self.running:
			timer.start()

	async def start (self) -> None:

		"""Start every registered Timer. Must be awaited from the event loop that will run them."""

		if self.running:
			return

		with self._timers_lock:
			self._loop = asyncio.get_running_loop()
			self.running = True
			timers = list(self._timers.values())

		for timer in timers:
			timer.start()

		logger.info("Scheduler started")

	async def stop (self, timeout: typing.Optional[float] = None) -> None:

		"""
		Stop every Timer, discarding events that have not fired.

		``timeout`` bounds how long each Timer may take to finish its current pass.
		"""

		with self._timers_lock:
			self.running = False
			self._loop = None
			timers = list(self._timers.values())

		for timer in timers:
			await timer.stop(timeout=timeout)

		logger.info("Scheduler stopped")
