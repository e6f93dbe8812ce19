import logging
import typing

import liveloop.constants
import liveloop.event_emitter


logger = logging.getLogger(__name__)

BangCallback = typing.Callable[[int], typing.Any]
CloseCallback = typing.Callable[[], typing.Any]

_BANG = "bang"
_CLOSE = "close"


class Player:

	"""
	A synchronous tick bus: a tempo plus ordered "bang" and "close" subscribers.

	A Player does not schedule anything itself. Whoever drives it calls
	:meth:`on_bang` once per tick; subscriber failures propagate to that caller.
	Live scripts register against a Player through :meth:`bpm`, :meth:`bang`
	and :meth:`close`, which also work as decorators:

		```python
		bpm(96)

		@bang
		def kick (tick):
			...
		```
	"""

	def __init__ (self, bpm: float = liveloop.constants.DEFAULT_BPM) -> None:

		"""
		Create a Player with no subscribers.
		"""

		self._events = liveloop.event_emitter.EventEmitter()
		self._bpm: float = 0
		self.interval: float = 0.0

		self.bpm(bpm)

	def __repr__ (self) -> str:

		return f"Player(bpm={self._bpm!r}, bangs={len(self.bangs)}, closes={len(self.closes)})"

	def bpm (self, beats_per_minute: typing.Optional[float] = None) -> float:

		"""
		Set the tempo when a value is given, and return the current tempo.
		"""

		if beats_per_minute is not None:

			if beats_per_minute <= 0:
				raise ValueError("BPM must be positive")

			self._bpm = beats_per_minute
			self.interval = liveloop.constants.SECONDS_PER_MINUTE / beats_per_minute

			logger.debug(f"BPM set to {beats_per_minute:.2f}")

		return self._bpm

	def bang (self, callback: BangCallback) -> BangCallback:

		"""
		Subscribe ``callback(tick)`` to every tick.
		"""

		self._events.on(_BANG, callback)
		return callback

	def close (self, callback: CloseCallback) -> CloseCallback:

		"""
		Subscribe ``callback()`` to the retirement of this Player.
		"""

		self._events.on(_CLOSE, callback)
		return callback

	@property
	def bangs (self) -> typing.List[BangCallback]:

		return self._events.listeners(_BANG)

	@property
	def closes (self) -> typing.List[CloseCallback]:

		return self._events.listeners(_CLOSE)

	def on_bang (self, tick: int) -> None:

		"""
		Call every bang subscriber with ``tick``, in registration order.
		"""

		self._events.emit_sync(_BANG, tick)

	def on_close (self) -> None:

		"""
		Call every close subscriber, in registration order.
		"""

		self._events.emit_sync(_CLOSE)

	def reset (self) -> None:

		"""
		Drop all subscribers. The tempo is kept.
		"""

		self._events.clear()

	def clone (self) -> "Player":

		"""
		Return a new Player at the same tempo with no subscribers.
		"""

		return Player(self._bpm)
