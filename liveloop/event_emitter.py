import inspect
import logging
import typing


logger = logging.getLogger(__name__)

CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	A named-event registry with ordered, synchronous dispatch.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if not callable(callback):
			raise TypeError(f"Listener for {event_name!r} must be callable, got {callback!r}")

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)

	def listeners (self, event_name: str) -> typing.List[CallbackType]:

		"""
		Return a copy of the callbacks registered for an event, in registration order.
		"""

		return list(self._listeners.get(event_name, []))

	def clear (self) -> None:

		"""
		Drop every registered callback for every event.
		"""

		self._listeners = {}


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and call listeners immediately, in registration order.

		A failing listener propagates to the caller and the remaining listeners
		are not called.
		"""

		for callback in self.listeners(event_name):

			if inspect.iscoroutinefunction(callback):
				raise ValueError("Async callback encountered in emit_sync")

			callback(*args, **kwargs)


	def emit_safe (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> int:

		"""
		Emit an event, isolating each listener.

		A failing listener is logged and skipped. Returns the number of listeners that failed.
		"""

		failures = 0

		for callback in self.listeners(event_name):

			try:
				callback(*args, **kwargs)

			except Exception:
				failures += 1
				logger.exception(f"Listener for {event_name!r} failed")

		return failures
