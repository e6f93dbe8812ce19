import threading
import typing

import liveloop.constants


class ChannelError (Exception):
	pass


class ResourceExhaustedError (ChannelError):

	"""
	Raised when every channel in the pool is allocated.
	"""


class ResourceConflictError (ChannelError):

	"""
	Raised when an explicitly requested channel is already allocated.
	"""


class ChannelManager:

	"""
	Hands out output channel ids from a fixed pool.

	Every id in ``0..capacity-1`` is either free or allocated, never both.
	The free list is kept sorted, so automatic allocation is deterministic:
	it always returns the lowest free id.
	"""

	def __init__ (self, capacity: int = liveloop.constants.MIDI_CHANNELS) -> None:

		"""
		Create a pool with every channel free.
		"""

		if capacity <= 0:
			raise ValueError("Channel capacity must be positive")

		self.capacity = capacity
		self._lock = threading.Lock()
		self._free: typing.List[int] = []

		self.reset()

	def __repr__ (self) -> str:

		return f"ChannelManager(capacity={self.capacity}, free={self.free})"

	@property
	def free (self) -> typing.List[int]:

		"""Free channel ids, ascending."""

		with self._lock:
			return list(self._free)

	@property
	def allocated (self) -> typing.List[int]:

		"""Allocated channel ids, ascending."""

		with self._lock:
			free = set(self._free)

		return [channel for channel in range(self.capacity) if channel not in free]

	def reset (self) -> None:

		"""
		Free every channel, discarding all current allocations.
		"""

		with self._lock:
			self._free = list(range(self.capacity))

	def allocate (self, channel: typing.Optional[int] = None) -> int:

		"""
		Take a channel out of the pool.

		With no argument the lowest free channel is returned, or
		``ResourceExhaustedError`` is raised when none is left. An explicit
		channel is returned if it is free, otherwise ``ResourceConflictError``
		is raised.
		"""

		with self._lock:

			if channel is None:

				if not self._free:
					raise ResourceExhaustedError(f"All {self.capacity} channels are allocated")

				return self._free.pop(0)

			self._check_range(channel)

			if channel not in self._free:
				raise ResourceConflictError(f"Channel {channel} is already in use")

			self._free.remove(channel)
			return channel

	def release (self, channel: int) -> None:

		"""
		Return a channel to the pool.

		Releasing a channel that is already free raises ``ValueError``.
		"""

		with self._lock:

			self._check_range(channel)

			if channel in self._free:
				raise ValueError(f"Channel {channel} is not allocated")

			self._free.append(channel)
			self._free.sort()

	def _check_range (self, channel: int) -> None:

		if not 0 <= channel < self.capacity:
			raise ValueError(f"Channel {channel} is outside 0..{self.capacity - 1}")
