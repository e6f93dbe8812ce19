"""Hot-reload supervisor for a live-coded script.

A :class:`Monitor` watches a Python script and keeps a stack of
:class:`~liveloop.player.Player` generations, newest last. Each time the file
changes, the script is evaluated against a fresh clone of the newest Player
(same tempo, no subscribers). If evaluation succeeds the clone is pushed and
becomes active; if it fails, the error is reported and the previous generation
keeps playing.

The script sees a narrow namespace:

- ``bpm(value=None)`` - set or read the tempo.
- ``bang(callback)`` - call ``callback(tick)`` every beat. Usable as a decorator.
- ``close(callback)`` - call ``callback()`` when this generation is retired.
- ``player`` - the Player being built.
- ``Pattern`` - :class:`liveloop.pattern.Pattern`.

plus whatever names the host passes as ``namespace``.

Every beat the active generation's bang subscribers run. When one of them
raises, that generation is discarded for good and the one below it takes the
same tick, down the stack until a generation survives. If none does the
Monitor is exhausted: it stops scheduling ticks and reports itself unhealthy.

Script changes are picked up by a poll on its own coarse cadence
(``poll_interval``), independent of tempo, and also checked at the start of
each tick (never more often than ``poll_interval``).
"""

import builtins
import enum
import logging
import os
import pathlib
import threading
import typing

import liveloop.constants
import liveloop.event_emitter
import liveloop.pattern
import liveloop.player
import liveloop.timer


logger = logging.getLogger(__name__)

_BLOCKED_BUILTINS = ("help", "input", "breakpoint", "exit", "quit")


class MonitorError (Exception):
	pass


class ScriptNotFoundError (MonitorError):
	pass


class ScriptUnreadableError (MonitorError):
	pass


class ReloadEvaluationError (MonitorError):

	"""
	The script could not be read or evaluated. The previous generation keeps playing.
	"""

	def __init__ (self, path: pathlib.Path, cause: BaseException) -> None:

		super().__init__(f"{path}: {type(cause).__name__}: {cause}")

		self.path = path
		self.__cause__ = cause


class TickRuntimeError (MonitorError):

	"""
	A bang subscriber raised. The generation that owned it is discarded.
	"""

	def __init__ (self, tick: int, generation: int, cause: BaseException) -> None:

		super().__init__(f"tick {tick}, generation {generation}: {type(cause).__name__}: {cause}")

		self.tick = tick
		self.generation = generation
		self.__cause__ = cause


class MonitorState (enum.Enum):

	STARTUP = "startup"
	RUNNING = "running"
	RELOADING = "reloading"
	FALLBACK = "fallback"
	EXHAUSTED = "exhausted"
	STOPPED = "stopped"


class Monitor:

	"""
	Re-evaluates a script on change and drives ticks against the newest working Player.

	Notices can be observed with :meth:`on_event`:

	- ``"activate"`` ``(player)`` - a generation became active (reload or fallback).
	- ``"reload_error"`` ``(error)`` - a :class:`ReloadEvaluationError`.
	- ``"tick_error"`` ``(error)`` - a :class:`TickRuntimeError`.
	- ``"exhausted"`` ``()`` - no generation is left; playback has stopped.

	Listener failures are logged and never reach the scheduler.
	"""

	def __init__ (
		self,
		path: typing.Union[str, os.PathLike],
		scheduler: liveloop.timer.Scheduler,
		seed: typing.Optional[liveloop.player.Player] = None,
		namespace: typing.Optional[typing.Dict[str, typing.Any]] = None,
		poll_interval: float = liveloop.constants.RELOAD_POLL_SECONDS
	) -> None:

		"""
		Check the script is readable and load it once.

		Parameters:
			path: The script to watch.
			scheduler: Supplies the Timers for ticks and polling, and the clock.
			seed: Bottom generation of the stack (default: an empty 120 bpm Player).
				It is also what the first load clones its tempo from.
			namespace: Extra names visible to the script.
			poll_interval: Seconds between checks for script changes.
		"""

		self.path = pathlib.Path(path)

		if not self.path.is_file():
			raise ScriptNotFoundError(str(self.path))

		if not os.access(self.path, os.R_OK):
			raise ScriptUnreadableError(str(self.path))

		if poll_interval <= 0:
			raise ValueError("poll_interval must be positive")

		self.scheduler = scheduler
		self.poll_interval = poll_interval

		self.players: typing.List[liveloop.player.Player] = [seed if seed is not None else liveloop.player.Player()]
		self.bangs = 0
		self.state = MonitorState.STARTUP
		self.events = liveloop.event_emitter.EventEmitter()

		# File modification stamp (ns) of the last successful load.
		self.load_stamp: typing.Optional[int] = None

		self._extra_namespace: typing.Dict[str, typing.Any] = dict(namespace or {})
		self._failed_stamp: typing.Optional[int] = None
		self._missing = False
		self._last_check: typing.Optional[float] = None
		self._pending_tick: typing.Optional[liveloop.timer.ScheduledEvent] = None
		self._pending_poll: typing.Optional[liveloop.timer.ScheduledEvent] = None
		self._lock = threading.Lock()

		self.ingest()

	@property
	def current (self) -> typing.Optional[liveloop.player.Player]:

		"""The active generation, or None once exhausted."""

		return self.players[-1] if self.players else None

	@property
	def generations (self) -> int:

		return len(self.players)

	@property
	def healthy (self) -> bool:

		"""False once every generation has failed."""

		return self.state is not MonitorState.EXHAUSTED

	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for a Monitor notice.
		"""

		self.events.on(event_name, callback)

	def start (self, now: typing.Optional[float] = None) -> None:

		"""
		Fire the first tick and start polling the script for changes.
		"""

		if self.state is not MonitorState.STARTUP:
			return

		if now is None:
			now = self.scheduler.now()

		self.state = MonitorState.RUNNING

		logger.info(f"Monitoring {self.path} (poll every {self.poll_interval}s)")

		self._schedule_poll(now + self.poll_interval)
		self.run(now)

	def stop (self) -> None:

		"""
		Cancel pending ticks and polls and retire the active generation.
		"""

		for event in (self._pending_tick, self._pending_poll):
			if event is not None:
				event.cancel()

		self._pending_tick = None
		self._pending_poll = None

		if self.state in (MonitorState.EXHAUSTED, MonitorState.STOPPED):
			return

		self.state = MonitorState.STOPPED

		if self.players:
			self._retire(self.players[-1])

		logger.info(f"Stopped monitoring {self.path}")

	def modified (self) -> bool:

		"""
		True when the script's modification stamp differs from the last successful load.
		"""

		try:
			stamp = self.path.stat().st_mtime_ns

		except OSError as exc:
			if not self._missing:
				logger.warning(f"Cannot read {self.path}: {exc} - keeping the current generation")
				self._missing = True
			return False

		self._missing = False

		return stamp != self.load_stamp

	def check (self, now: typing.Optional[float] = None) -> bool:

		"""
		Reload the script if it changed, at most once per ``poll_interval``.

		Returns True if a new generation was loaded.
		"""

		if now is None:
			now = self.scheduler.now()

		if self._last_check is not None and now - self._last_check < self.poll_interval:
			return False

		self._last_check = now

		if not self.modified():
			return False

		return self.ingest()

	def ingest (self) -> bool:

		"""
		Evaluate the script against a clone of the newest generation.

		On success the clone is pushed and becomes active. On failure the stack is
		left untouched. Returns True on success. Never raises for script errors.
		"""

		if not self.players:
			return False

		previous_state = self.state
		self.state = MonitorState.RELOADING

		try:
			return self._ingest()

		finally:
			self.state = previous_state if previous_state is MonitorState.STARTUP else MonitorState.RUNNING

	def run (self, now: typing.Optional[float] = None) -> None:

		"""
		Deliver one tick to the newest working generation and schedule the next.

		Normally called by a Timer with the time the tick was due. Only one call
		runs at a time; an overlapping call is skipped.
		"""

		if not self._lock.acquire(blocking=False):
			logger.warning("Tick skipped: the previous tick is still running")
			return

		try:
			self._tick(now)

		finally:
			self._lock.release()

	def _ingest (self) -> bool:

		stamp: typing.Optional[int] = None

		try:
			stamp = self.path.stat().st_mtime_ns
			code = self.path.read_text(encoding="utf-8")

		except (OSError, UnicodeDecodeError) as exc:
			self._report_reload_error(ReloadEvaluationError(self.path, exc), stamp)
			return False

		candidate = self.players[-1].clone()

		try:
			exec(compile(code, str(self.path), "exec"), self._build_namespace(candidate))

		except (Exception, SystemExit) as exc:
			self._report_reload_error(ReloadEvaluationError(self.path, exc), stamp)
			return False

		self.players.append(candidate)
		self.load_stamp = stamp
		self._failed_stamp = None

		logger.info(
			f"Loaded {self.path.name}: generation {len(self.players)}, "
			f"{candidate.bpm():g} bpm, {len(candidate.bangs)} bang subscribers"
		)

		self.events.emit_safe("activate", candidate)

		return True

	def _report_reload_error (self, error: ReloadEvaluationError, stamp: typing.Optional[int]) -> None:

		"""Log and announce a failed load, once per version of the file."""

		if stamp is not None and stamp == self._failed_stamp:
			logger.debug(f"Load error (unchanged file): {error}")
			return

		self._failed_stamp = stamp

		logger.error(f"Load error, keeping generation {len(self.players)}: {error}", exc_info=error)
		self.events.emit_safe("reload_error", error)

	def _tick (self, now: typing.Optional[float]) -> None:

		if now is None:
			now = self.scheduler.now()

		# A direct call supersedes any tick already queued, so only one chain exists.
		if self._pending_tick is not None:
			self._pending_tick.cancel()
			self._pending_tick = None

		if self.state in (MonitorState.EXHAUSTED, MonitorState.STOPPED):
			return

		self.check(now)

		while self.players:

			player = self.players[-1]

			try:
				player.on_bang(self.bangs)
				break

			# SystemExit from a script is a tick failure like any other.
			except (Exception, SystemExit) as exc:
				self._fall_back(TickRuntimeError(self.bangs, len(self.players), exc))

		else:
			self._exhaust()
			return

		self.state = MonitorState.RUNNING
		self.bangs += 1

		self._schedule_tick(now + self.players[-1].interval)

	def _fall_back (self, error: TickRuntimeError) -> None:

		"""Discard the failing generation and activate the one below it, if any."""

		self.state = MonitorState.FALLBACK

		logger.error(f"Run error: {error}", exc_info=error)

		self._retire(self.players.pop())
		self.events.emit_safe("tick_error", error)

		if self.players:
			logger.warning(f"Falling back to generation {len(self.players)}")
			self.events.emit_safe("activate", self.players[-1])

	def _exhaust (self) -> None:

		self.state = MonitorState.EXHAUSTED

		if self._pending_poll is not None:
			self._pending_poll.cancel()
			self._pending_poll = None

		logger.critical(f"No working generation of {self.path.name} left - playback stopped")

		self.events.emit_safe("exhausted")

	def _retire (self, player: liveloop.player.Player) -> None:

		"""Run a generation's close subscribers, containing any failure."""

		try:
			player.on_close()

		except (Exception, SystemExit):
			logger.exception("Close subscriber failed")

	def _schedule_tick (self, fire_time: float) -> None:

		resolution = self.players[-1].interval / liveloop.constants.TIMER_DIVISIONS

		self._pending_tick = self.scheduler.get(resolution).at(fire_time, self.run)

	def _schedule_poll (self, fire_time: float) -> None:

		self._pending_poll = self.scheduler.get(self.poll_interval).at(fire_time, self._poll)

	def _poll (self, fire_time: float) -> None:

		"""Check the script on the coarse cadence, then reschedule."""

		self._pending_poll = None

		if self.state in (MonitorState.EXHAUSTED, MonitorState.STOPPED):
			return

		if self._lock.acquire(blocking=False):

			try:
				self.check(fire_time)

			finally:
				self._lock.release()

		self._schedule_poll(fire_time + self.poll_interval)

	def _build_namespace (self, player: liveloop.player.Player) -> typing.Dict[str, typing.Any]:

		"""Build the script namespace, with builtins that could block the scheduler disabled."""

		safe_builtins = {name: getattr(builtins, name) for name in dir(builtins)}

		for name in _BLOCKED_BUILTINS:
			safe_builtins[name] = _blocked(name)

		namespace: typing.Dict[str, typing.Any] = {
			"__builtins__": safe_builtins,
			"__name__": "__live__",
			"bpm": player.bpm,
			"bang": player.bang,
			"close": player.close,
			"player": player,
			"Pattern": liveloop.pattern.Pattern,
		}

		namespace.update(self._extra_namespace)

		return namespace


def _blocked (name: str) -> typing.Callable:

	"""Return a function that raises RuntimeError when called."""

	def _raise (*args: typing.Any, **kwargs: typing.Any) -> None:
		raise RuntimeError(f"{name}() is not available in a live script - it would block the scheduler.")

	_raise.__name__ = name
	_raise.__qualname__ = name

	return _raise
